"""健康检查相关的数据模型"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional, Union


class TargetKind(str, Enum):
    """被监控目标类型"""
    SERVICE = 'service'
    CLIENT = 'client'


class HealthStatus(str, Enum):
    """健康状态

    服务使用 healthy/unhealthy，客户端使用 online/offline，
    未启用或配置不完整的目标为 unknown。
    """
    UNKNOWN = 'unknown'
    HEALTHY = 'healthy'
    UNHEALTHY = 'unhealthy'
    ONLINE = 'online'
    OFFLINE = 'offline'

    @property
    def is_alive(self) -> bool:
        return self in (HealthStatus.HEALTHY, HealthStatus.ONLINE)


def utc_now() -> datetime:
    """当前UTC时间（带时区）"""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    解析注册表中的时间戳

    注册表中保存的是 ISO-8601 字符串（可能以 Z 结尾），
    不带时区的时间按UTC处理。

    Args:
        value: 时间戳字符串或datetime

    Returns:
        带时区的datetime，无法解析时返回None
    """
    if value is None or value == '':
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """格式化为 ISO-8601 字符串（毫秒精度，Z 结尾）"""
    if value is None:
        return None
    value = value.astimezone(timezone.utc)
    return value.strftime('%Y-%m-%dT%H:%M:%S.') + f"{value.microsecond // 1000:03d}Z"


@dataclass
class StatusRecord:
    """单个目标最近一次检查的结果

    不保留历史，每次检查都会覆盖同一目标的上一条记录。
    """
    status: HealthStatus
    target_id: Optional[str] = None
    target_kind: Optional[TargetKind] = None
    last_checked: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    ping_time: Optional[float] = None  # 毫秒
    response_time: Optional[float] = None  # 秒

    @property
    def is_alive(self) -> bool:
        return self.status.is_alive

    def to_dict(self, include_id: bool = False) -> Dict[str, Any]:
        """转换为接口返回的JSON结构

        Args:
            include_id: 是否附带 serviceId / clientId 字段
        """
        data: Dict[str, Any] = {}
        if include_id and self.target_id is not None:
            kind = self.target_kind.value if self.target_kind else 'target'
            data[f"{kind}Id"] = self.target_id

        data.update({
            'status': self.status.value,
            'lastChecked': format_timestamp(self.last_checked),
            'lastSeen': format_timestamp(self.last_seen),
            'error': self.error
        })

        if self.status_code is not None:
            data['statusCode'] = self.status_code
        if self.ping_time is not None:
            data['pingTime'] = self.ping_time
        if self.response_time is not None:
            data['responseTime'] = round(self.response_time, 3)

        return data
