"""服务（HTTP接口）健康检查器"""

import asyncio
from typing import Dict, Any

import aiohttp

from .base import BaseHealthChecker
from .factory import register_checker
from ..models.health_check import HealthStatus, StatusRecord, TargetKind
from ..utils.exceptions import MisconfiguredTargetError, ProbeTimeoutError, ProbeTransportError

SUPPORTED_METHODS = ['GET', 'POST', 'PUT', 'DELETE', 'HEAD', 'OPTIONS', 'PATCH']
DEFAULT_EXPECTED_STATUS = 200


def _positive_number(value: Any) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float)) and value > 0


@register_checker(TargetKind.SERVICE)
class ServiceHealthChecker(BaseHealthChecker):
    """服务健康检查器

    对 healthCheck.url 发起一次HTTP请求。只要收到响应就算送达，
    状态码等于 expectedStatus 为 healthy，否则为 unhealthy。
    """

    target_kind = TargetKind.SERVICE
    alive_status = HealthStatus.HEALTHY
    dead_status = HealthStatus.UNHEALTHY

    def is_eligible(self, target: Dict[str, Any]) -> bool:
        health_check = target.get('healthCheck')
        return isinstance(health_check, dict) and bool(health_check.get('enabled'))

    def validate_target(self, target: Dict[str, Any]) -> None:
        """
        验证服务的健康检查配置

        Raises:
            MisconfiguredTargetError: URL缺失或HTTP方法不支持
        """
        health_check = target['healthCheck']

        url = health_check.get('url')
        if not isinstance(url, str) or not url.startswith(('http://', 'https://')):
            raise MisconfiguredTargetError("Health check URL not configured",
                                           target_id=target.get('id'))

        method = str(health_check.get('method') or 'GET').upper()
        if method not in SUPPORTED_METHODS:
            raise MisconfiguredTargetError(f"Unsupported HTTP method: {method}",
                                           target_id=target.get('id'))

    @staticmethod
    def _expected_status(health_check: Dict[str, Any]) -> int:
        expected = health_check.get('expectedStatus', DEFAULT_EXPECTED_STATUS)
        try:
            return int(expected)
        except (TypeError, ValueError):
            return DEFAULT_EXPECTED_STATUS

    @staticmethod
    def resolve_timeout(health_check: Dict[str, Any], default_timeout_ms: float) -> float:
        """目标自身的超时优先于设置中的默认超时（毫秒）"""
        timeout = health_check.get('timeout')
        if _positive_number(timeout):
            return timeout
        return default_timeout_ms

    async def probe(self, target: Dict[str, Any], timeout: float) -> StatusRecord:
        """
        执行HTTP探测

        Args:
            target: 服务记录
            timeout: 设置中的默认超时（毫秒）

        Returns:
            StatusRecord: healthy 或 unhealthy，附带状态码

        Raises:
            ProbeTimeoutError: 超过超时时间
            ProbeTransportError: DNS解析失败、连接被拒绝等
        """
        health_check = target['healthCheck']
        url = health_check['url']
        method = str(health_check.get('method') or 'GET').upper()
        expected_status = self._expected_status(health_check)
        timeout_ms = self.resolve_timeout(health_check, timeout)

        client_timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)

        try:
            async with aiohttp.ClientSession(timeout=client_timeout) as session:
                async with session.request(method, url) as response:
                    status_code = response.status
        except asyncio.TimeoutError:
            raise ProbeTimeoutError(f"timeout of {timeout_ms:g}ms exceeded",
                                    target_id=target.get('id'))
        except aiohttp.ClientError as e:
            raise ProbeTransportError(str(e) or type(e).__name__,
                                      target_id=target.get('id'), cause=e)

        status = self.alive_status if status_code == expected_status else self.dead_status
        record = self._record(target, status)
        record.status_code = status_code
        return record
