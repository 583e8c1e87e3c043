"""健康监控门面

组合检查器、状态缓存、lastSeen 协调器和调度器，
为接口层提供按需检查和缓存快照。每个进程只创建一个实例，
由应用显式注入到接口层。
"""

import asyncio
from typing import Dict, Any, List, Optional

from .checkers import health_checker_factory
from .checkers.base import BaseHealthChecker
from .models.health_check import StatusRecord, TargetKind
from .models.settings import HealthCheckSettings
from .registry.base import BaseRegistry
from .services.reconciler import LastSeenReconciler
from .services.scheduler import HealthCheckScheduler, SETTINGS_POLL_INTERVAL
from .services.status_cache import StatusCache
from .utils.exceptions import SchedulerSetupError, TargetNotFoundError
from .utils.log_manager import get_logger


class HealthMonitor:
    """健康监控器

    定时检查和按需检查走同一条 检查器 -> 协调器 -> 状态缓存 路径，
    缓存中的结果与触发方式无关。
    """

    def __init__(self, registry: BaseRegistry,
                 settings_store: Optional[BaseRegistry] = None,
                 settings_poll_interval: float = SETTINGS_POLL_INTERVAL,
                 checker_options: Optional[Dict[str, Any]] = None):
        """
        初始化健康监控器

        Args:
            registry: 目标注册表
            settings_store: 设置存储，默认与注册表相同
            settings_poll_interval: 设置轮询间隔（秒）
            checker_options: 传给检查器的选项，例如 icmp_privileged
        """
        self.registry = registry
        self.settings_store = settings_store or registry
        self.status_cache = StatusCache()
        self.reconciler = LastSeenReconciler(self.status_cache)
        self.checkers: Dict[TargetKind, BaseHealthChecker] = health_checker_factory.create_all(
            self.reconciler, **(checker_options or {}))

        self.scheduler = HealthCheckScheduler(
            registry=self.registry,
            checkers=self.checkers,
            settings_store=self.settings_store,
            settings_poll_interval=settings_poll_interval
        )
        self.scheduler.set_check_result_callback(self._store_result)
        self.logger = get_logger('monitor')

    async def _store_result(self, record: StatusRecord) -> None:
        self.status_cache.set(record.target_id, record)

    async def _current_settings(self) -> HealthCheckSettings:
        """按需检查使用的设置，读取失败时使用调度器当前的设置"""
        try:
            return await self.scheduler.fetch_settings()
        except SchedulerSetupError as e:
            self.logger.warning(f"{e.message}，使用当前设置")
            return self.scheduler.current_settings or HealthCheckSettings()

    async def check_target(self, kind: TargetKind, target: Dict[str, Any],
                           settings: Optional[HealthCheckSettings] = None) -> StatusRecord:
        """
        检查一个目标并写入状态缓存

        Args:
            kind: 目标类型
            target: 目标记录
            settings: 使用的设置，为None时读取最新设置

        Returns:
            StatusRecord: 检查结果
        """
        if settings is None:
            settings = await self._current_settings()

        checker = self.checkers[kind]
        record = await checker.check(target, settings.timeout_for(kind), self.registry)
        await self._store_result(record)
        return record

    async def get_status(self, kind: TargetKind, target_id: str) -> StatusRecord:
        """
        立即检查单个目标

        Args:
            kind: 目标类型
            target_id: 目标ID

        Returns:
            StatusRecord: 检查结果

        Raises:
            TargetNotFoundError: 目标不存在
        """
        kind = TargetKind(kind)
        target = await self.registry.get_target(kind, target_id)
        if not target:
            raise TargetNotFoundError(kind.value, target_id)

        return await self.check_target(kind, target)

    async def get_all_statuses(self, kind: TargetKind) -> List[StatusRecord]:
        """
        立即检查某一类型的全部目标

        未启用检查的目标直接返回 unknown，不发起网络请求。

        Args:
            kind: 目标类型

        Returns:
            与注册表顺序一致的检查结果列表
        """
        kind = TargetKind(kind)
        targets = await self.registry.list_targets(kind)
        settings = await self._current_settings()

        return list(await asyncio.gather(
            *(self.check_target(kind, target, settings) for target in targets)
        ))

    def get_cached_snapshot(self) -> Dict[str, StatusRecord]:
        """获取缓存中的全部状态记录，不触发检查"""
        return self.status_cache.get_all()

    async def start(self):
        """启动定时检查"""
        await self.scheduler.start()

    async def stop(self):
        """停止定时检查"""
        await self.scheduler.stop()

    async def reschedule(self, settings: Optional[HealthCheckSettings] = None) -> bool:
        """按设置重新调度定时检查"""
        return await self.scheduler.reschedule(settings)

    async def refresh_settings(self) -> bool:
        """重新读取设置，检查频率变化时重新调度"""
        return await self.scheduler.refresh_settings()

    def get_stats(self) -> Dict[str, Any]:
        """获取监控器状态信息"""
        return {
            'cached_targets': len(self.status_cache),
            'scheduler': self.scheduler.get_scheduler_stats()
        }
