"""监控调度器模块

负责按服务/客户端两种检查频率定时执行健康检查，
并定期轮询设置，在检查频率变化时重新调度
"""

import asyncio
from typing import Dict, Any, Optional, Set, Callable, Awaitable

from ..checkers.base import BaseHealthChecker
from ..models.health_check import StatusRecord, TargetKind
from ..models.settings import HealthCheckSettings
from ..registry.base import BaseRegistry
from ..utils.exceptions import SchedulerSetupError
from ..utils.log_manager import get_logger

SETTINGS_POLL_INTERVAL = 300  # 5分钟


class HealthCheckScheduler:
    """健康检查调度器

    每种目标类型只保留一个定时任务。定时任务每到一个间隔就启动一轮检查，
    本轮内对所有需要检查的目标并发执行，结果逐个通过回调写出。
    检查间隔只在重新调度时读取，超时在每一轮开始时重新读取。
    """

    def __init__(self, registry: BaseRegistry,
                 checkers: Dict[TargetKind, BaseHealthChecker],
                 settings_store: Optional[BaseRegistry] = None,
                 settings_poll_interval: float = SETTINGS_POLL_INTERVAL):
        """初始化调度器

        Args:
            registry: 目标注册表
            checkers: 目标类型 -> 健康检查器
            settings_store: 设置存储，默认与注册表相同
            settings_poll_interval: 设置轮询间隔（秒）
        """
        self.registry = registry
        self.checkers = checkers
        self.settings_store = settings_store or registry
        self.settings_poll_interval = settings_poll_interval

        self.timers: Dict[TargetKind, asyncio.Task] = {}
        self.poll_task: Optional[asyncio.Task] = None
        self.running_tasks: Set[asyncio.Task] = set()
        self.current_settings: Optional[HealthCheckSettings] = None
        self.is_running = False
        self.tick_counts: Dict[TargetKind, int] = {kind: 0 for kind in TargetKind}
        self._reschedule_lock = asyncio.Lock()
        self.logger = get_logger('scheduler')

        # 回调函数
        self.on_check_result: Optional[
            Callable[[StatusRecord], Awaitable[None]]] = None
        self.on_check_error: Optional[
            Callable[[str, Exception], Awaitable[None]]] = None

    def set_check_result_callback(self, callback: Callable[
        [StatusRecord], Awaitable[None]]):
        """设置检查结果回调函数

        Args:
            callback: 每个检查完成时调用
        """
        self.on_check_result = callback

    def set_check_error_callback(self,
                                 callback: Callable[[str, Exception], Awaitable[None]]):
        """设置检查错误回调函数

        Args:
            callback: 单个目标检查抛出异常时调用，参数为(目标ID, 异常)
        """
        self.on_check_error = callback

    async def fetch_settings(self) -> HealthCheckSettings:
        """读取最新设置

        Raises:
            SchedulerSetupError: 设置存储读取失败
        """
        try:
            raw = await self.settings_store.get_settings()
        except Exception as e:
            raise SchedulerSetupError(f"读取健康检查设置失败: {e}", cause=e)
        return HealthCheckSettings.from_settings(raw)

    async def start(self):
        """启动调度器"""
        if self.is_running:
            self.logger.warning("调度器已经在运行")
            return

        self.is_running = True

        try:
            settings = await self.fetch_settings()
        except SchedulerSetupError as e:
            self.logger.error(f"{e.message}，使用默认设置启动")
            settings = HealthCheckSettings()

        await self.reschedule(settings)

        self.poll_task = asyncio.create_task(self._settings_poll_loop())
        self.logger.info(f"调度器已启动，设置轮询间隔: {self.settings_poll_interval}秒")

    async def stop(self):
        """停止调度器，取消定时任务和进行中的检查"""
        if not self.is_running:
            return

        self.is_running = False
        self.logger.info("正在停止调度器...")

        tasks = list(self.timers.values()) + list(self.running_tasks)
        if self.poll_task:
            tasks.append(self.poll_task)

        for task in tasks:
            if not task.done():
                task.cancel()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self.timers.clear()
        self.running_tasks.clear()
        self.poll_task = None

        self.logger.info("调度器已停止")

    async def reschedule(self, settings: Optional[HealthCheckSettings] = None) -> bool:
        """按设置重新创建服务和客户端定时任务

        先取消旧的定时任务再创建新的，同一时刻每种目标类型
        只有一个定时任务。并发调用会被串行化。
        正在进行的检查不受影响。

        Args:
            settings: 新设置，为None时从设置存储读取

        Returns:
            bool: 是否完成重新调度，读取设置失败时返回False并保留原调度
        """
        async with self._reschedule_lock:
            if settings is None:
                try:
                    settings = await self.fetch_settings()
                except SchedulerSetupError as e:
                    self.logger.error(f"{e.message}，保留原有调度")
                    return False

            old_timers = list(self.timers.values())
            for timer in old_timers:
                timer.cancel()
            if old_timers:
                await asyncio.gather(*old_timers, return_exceptions=True)
            self.timers.clear()

            self.current_settings = settings

            if not self.is_running:
                return True

            for kind in self.checkers:
                interval = settings.frequency_for(kind)
                self.timers[kind] = asyncio.create_task(self._timer_loop(kind, interval))

            self.logger.info(
                f"重新调度完成: 服务每 {settings.service_frequency}秒, "
                f"客户端每 {settings.client_frequency}秒")
            return True

    async def refresh_settings(self) -> bool:
        """读取设置，检查频率变化时才重新调度

        Returns:
            bool: 是否执行了重新调度
        """
        try:
            settings = await self.fetch_settings()
        except SchedulerSetupError as e:
            self.logger.warning(f"{e.message}，保留原有调度")
            return False

        if settings.same_cadence(self.current_settings) and self.timers:
            # 超时每轮都会重新读取，这里只同步一下
            self.current_settings = settings
            return False

        return await self.reschedule(settings)

    async def _settings_poll_loop(self):
        """设置轮询循环"""
        while self.is_running:
            await asyncio.sleep(self.settings_poll_interval)
            try:
                await self.refresh_settings()
            except Exception as e:
                self.logger.error(f"设置轮询异常: {e}", exc_info=True)

    async def _timer_loop(self, kind: TargetKind, interval: float):
        """单个目标类型的定时循环

        每个间隔启动一轮检查任务，不等待上一轮结束，
        因此取消定时任务不会中断已经开始的检查。
        """
        while True:
            await asyncio.sleep(interval)
            task = asyncio.create_task(self.run_tick(kind))
            self.running_tasks.add(task)
            task.add_done_callback(self.running_tasks.discard)

    async def run_tick(self, kind: TargetKind):
        """执行一轮检查

        Args:
            kind: 目标类型
        """
        self.tick_counts[kind] += 1
        checker = self.checkers[kind]

        try:
            settings = await self.fetch_settings()
        except SchedulerSetupError as e:
            self.logger.warning(f"{e.message}，本轮使用上次的设置")
            settings = self.current_settings or HealthCheckSettings()

        try:
            targets = await self.registry.list_targets(kind)
        except Exception as e:
            self.logger.error(f"获取 {kind.value} 列表失败，跳过本轮检查: {e}")
            return

        eligible = [t for t in targets if checker.is_eligible(t)]
        if not eligible:
            return

        timeout = settings.timeout_for(kind)
        self.logger.debug(f"开始 {kind.value} 检查，共 {len(eligible)} 个目标")

        await asyncio.gather(
            *(self._check_target(checker, target, timeout) for target in eligible)
        )

    async def _check_target(self, checker: BaseHealthChecker, target: Dict[str, Any],
                            timeout: float):
        """检查单个目标，异常不会影响同一轮的其他目标"""
        target_id = target.get('id')
        try:
            result = await checker.check(target, timeout, self.registry)

            if self.on_check_result:
                await self.on_check_result(result)

        except Exception as e:
            self.logger.error(f"检查 {checker.target_kind.value} {target_id} 时发生异常: {e}")

            if self.on_check_error:
                try:
                    await self.on_check_error(target_id, e)
                except Exception as callback_error:
                    self.logger.error(f"错误回调执行失败: {callback_error}")

    def get_scheduler_stats(self) -> Dict[str, Any]:
        """获取调度器统计信息

        Returns:
            调度器统计信息
        """
        return {
            'is_running': self.is_running,
            'active_timers': {kind.value: not task.done()
                              for kind, task in self.timers.items()},
            'running_tasks_count': len(self.running_tasks),
            'tick_counts': {kind.value: count for kind, count in self.tick_counts.items()},
            'settings': self.current_settings.to_dict() if self.current_settings else None,
            'settings_poll_interval': self.settings_poll_interval
        }
