"""客户端（ICMP ping）健康检查器"""

import asyncio
from typing import Dict, Any

from icmplib import ICMPLibError, async_ping

from .base import BaseHealthChecker
from .factory import register_checker
from ..models.health_check import HealthStatus, StatusRecord, TargetKind
from ..utils.exceptions import MisconfiguredTargetError, ProbeTimeoutError, ProbeTransportError

PING_CHECK_TYPE = 'health-check'

# icmplib 自身按 timeout 结束等待，这里额外留出的硬性截止余量（秒）
DEADLINE_GRACE = 1.0


@register_checker(TargetKind.CLIENT)
class ClientHealthChecker(BaseHealthChecker):
    """客户端健康检查器

    对 type 为 health-check 的客户端发送一个ICMP回显请求，
    收到至少一个回复为 online，否则为 offline。
    """

    target_kind = TargetKind.CLIENT
    alive_status = HealthStatus.ONLINE
    dead_status = HealthStatus.OFFLINE

    @property
    def privileged(self) -> bool:
        """是否使用原始套接字（需要root或CAP_NET_RAW）"""
        return bool(self.options.get('icmp_privileged', False))

    def is_eligible(self, target: Dict[str, Any]) -> bool:
        return target.get('type') == PING_CHECK_TYPE

    def validate_target(self, target: Dict[str, Any]) -> None:
        if not target.get('ipAddress'):
            raise MisconfiguredTargetError("IP address not configured",
                                           target_id=target.get('id'))

    async def probe(self, target: Dict[str, Any], timeout: float) -> StatusRecord:
        """
        执行ICMP探测

        Args:
            target: 客户端记录
            timeout: 超时（秒）

        Returns:
            StatusRecord: online（附带往返时间）或 offline

        Raises:
            ProbeTimeoutError: 超过硬性截止时间
            ProbeTransportError: 地址解析失败、套接字权限不足等
        """
        address = str(target['ipAddress']).strip()

        try:
            host = await asyncio.wait_for(
                async_ping(address, count=1, timeout=timeout, privileged=self.privileged),
                timeout=timeout + DEADLINE_GRACE
            )
        except asyncio.TimeoutError:
            raise ProbeTimeoutError(f"ping timeout of {timeout:g}s exceeded",
                                    target_id=target.get('id'))
        except ICMPLibError as e:
            raise ProbeTransportError(str(e) or type(e).__name__,
                                      target_id=target.get('id'), cause=e)

        if host.is_alive:
            record = self._record(target, self.alive_status)
            record.ping_time = host.avg_rtt
            return record

        return self._record(target, self.dead_status)
