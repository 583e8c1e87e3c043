"""健康检查设置模型"""

from dataclasses import dataclass
from typing import Dict, Any, Optional

from .health_check import TargetKind
from ..utils.log_manager import get_logger

DEFAULT_SERVICE_FREQUENCY = 30  # 秒
DEFAULT_SERVICE_TIMEOUT = 5000  # 毫秒
DEFAULT_CLIENT_FREQUENCY = 60  # 秒
DEFAULT_CLIENT_TIMEOUT = 3  # 秒

# 设置存储中的字段名 -> (模型属性, 默认值)
_SETTINGS_FIELDS = {
    'serviceFrequency': ('service_frequency', DEFAULT_SERVICE_FREQUENCY),
    'serviceTimeout': ('service_timeout_ms', DEFAULT_SERVICE_TIMEOUT),
    'clientFrequency': ('client_frequency', DEFAULT_CLIENT_FREQUENCY),
    'clientTimeout': ('client_timeout', DEFAULT_CLIENT_TIMEOUT),
}

logger = get_logger('settings')


def _positive_number(value: Any) -> bool:
    return (not isinstance(value, bool)
            and isinstance(value, (int, float))
            and value > 0)


@dataclass(frozen=True)
class HealthCheckSettings:
    """健康检查频率和超时设置"""
    service_frequency: float = DEFAULT_SERVICE_FREQUENCY
    service_timeout_ms: float = DEFAULT_SERVICE_TIMEOUT
    client_frequency: float = DEFAULT_CLIENT_FREQUENCY
    client_timeout: float = DEFAULT_CLIENT_TIMEOUT

    @classmethod
    def from_settings(cls, settings: Optional[Dict[str, Any]]) -> 'HealthCheckSettings':
        """
        从设置存储的内容构造

        读取 settings['healthCheck']，缺失的字段使用默认值。
        非正数或非数值的频率/超时不会被用来生成调度，
        而是记录警告并回退到默认值。

        Args:
            settings: 设置存储返回的完整设置字典

        Returns:
            HealthCheckSettings: 设置对象
        """
        health_check = (settings or {}).get('healthCheck') or {}
        if not isinstance(health_check, dict):
            logger.warning(f"healthCheck 设置不是字典类型，使用默认值: {health_check!r}")
            health_check = {}

        values = {}
        for key, (attr, default) in _SETTINGS_FIELDS.items():
            value = health_check.get(key)
            if value is None:
                values[attr] = default
            elif _positive_number(value):
                values[attr] = value
            else:
                logger.warning(f"健康检查设置 {key}={value!r} 无效，使用默认值 {default}")
                values[attr] = default

        return cls(**values)

    def frequency_for(self, kind: TargetKind) -> float:
        """获取指定目标类型的检查间隔（秒）"""
        if kind == TargetKind.SERVICE:
            return self.service_frequency
        return self.client_frequency

    def timeout_for(self, kind: TargetKind) -> float:
        """获取指定目标类型的超时（服务为毫秒，客户端为秒）"""
        if kind == TargetKind.SERVICE:
            return self.service_timeout_ms
        return self.client_timeout

    def same_cadence(self, other: Optional['HealthCheckSettings']) -> bool:
        """两份设置的检查间隔是否一致"""
        if other is None:
            return False
        return (self.service_frequency == other.service_frequency
                and self.client_frequency == other.client_frequency)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'serviceFrequency': self.service_frequency,
            'serviceTimeout': self.service_timeout_ms,
            'clientFrequency': self.client_frequency,
            'clientTimeout': self.client_timeout
        }
