"""健康检查器基类"""

import time
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

from ..models.health_check import HealthStatus, StatusRecord, TargetKind, utc_now
from ..registry.base import BaseRegistry
from ..services.reconciler import LastSeenReconciler
from ..utils.exceptions import MisconfiguredTargetError, ProbeError
from ..utils.log_manager import get_logger


class BaseHealthChecker(ABC):
    """健康检查器抽象基类

    check() 负责完整的检查流程：资格判断、配置校验、探测、
    lastSeen 协调。任何失败都会转换为状态记录，不会向调用方抛出异常。
    """

    target_kind: TargetKind
    alive_status: HealthStatus
    dead_status: HealthStatus

    def __init__(self, reconciler: LastSeenReconciler, **options):
        """
        初始化健康检查器

        Args:
            reconciler: lastSeen 协调器
            options: 检查器特有的选项
        """
        self.reconciler = reconciler
        self.options = options
        self.logger = get_logger(f'checker.{self.target_kind.value}')

    @abstractmethod
    def is_eligible(self, target: Dict[str, Any]) -> bool:
        """
        目标是否启用了健康检查

        Args:
            target: 目标记录

        Returns:
            bool: 是否需要检查
        """

    def validate_target(self, target: Dict[str, Any]) -> None:
        """
        校验目标的检查配置

        Raises:
            MisconfiguredTargetError: 缺少必需字段
        """

    @abstractmethod
    async def probe(self, target: Dict[str, Any], timeout: float) -> StatusRecord:
        """
        执行一次网络探测并分类

        Args:
            target: 目标记录
            timeout: 超时设置（单位由子类决定）

        Returns:
            StatusRecord: 只包含分类和诊断信息的状态记录

        Raises:
            ProbeError: 超时或传输层错误
        """

    def _record(self, target: Dict[str, Any], status: HealthStatus,
                error: Optional[str] = None) -> StatusRecord:
        return StatusRecord(
            status=status,
            target_id=target.get('id'),
            target_kind=self.target_kind,
            error=error
        )

    def _unknown(self, target: Dict[str, Any], error: Optional[str] = None) -> StatusRecord:
        # 不检查的目标沿用已知的 lastSeen，不访问注册表
        record = self._record(target, HealthStatus.UNKNOWN, error=error)
        record.last_seen = self.reconciler.known_last_seen(target)
        return record

    async def check(self, target: Dict[str, Any], timeout: float,
                    registry: BaseRegistry) -> StatusRecord:
        """
        检查单个目标

        Args:
            target: 目标记录
            timeout: 设置中的默认超时
            registry: 目标注册表，用于协调 lastSeen

        Returns:
            StatusRecord: 检查结果
        """
        target_id = target.get('id')

        if not self.is_eligible(target):
            return self._unknown(target)

        try:
            self.validate_target(target)
        except MisconfiguredTargetError as e:
            self.logger.debug(f"{self.target_kind.value} {target_id} 配置不完整: {e.message}")
            return self._unknown(target, error=e.message)

        start_time = time.time()
        try:
            record = await self.probe(target, timeout)
        except ProbeError as e:
            record = self._record(target, self.dead_status, error=e.message)
        except Exception as e:
            self.logger.error(f"检查 {self.target_kind.value} {target_id} 时发生异常: {e}",
                              exc_info=True)
            record = self._record(target, self.dead_status, error=str(e) or type(e).__name__)

        record.response_time = time.time() - start_time
        record.last_checked = utc_now()

        if record.is_alive:
            record.last_seen = await self.reconciler.persist_last_seen(
                self.target_kind, target, record.last_checked, registry)
        else:
            record.last_seen = await self.reconciler.resolve_last_seen(
                self.target_kind, target, registry)

        self.logger.debug(
            f"{self.target_kind.value} {target_id} 检查完成: {record.status.value}, "
            f"耗时: {record.response_time:.3f}s")
        return record
