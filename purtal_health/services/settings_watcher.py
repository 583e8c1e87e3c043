"""注册表数据文件监控器"""

import asyncio
import os
from typing import Callable, Awaitable, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ..utils.exceptions import ConfigError
from ..utils.log_manager import get_logger


class DataFileHandler(FileSystemEventHandler):
    """数据文件变更事件处理器"""

    def __init__(self, data_file: str, callback: Callable[[], None]):
        """
        初始化事件处理器

        Args:
            data_file: 数据文件绝对路径
            callback: 文件变更时调用（在watchdog线程中执行）
        """
        self.data_file = data_file
        self.callback = callback
        self.logger = get_logger('settings_watcher')

    def _matches(self, event) -> bool:
        if event.is_directory:
            return False
        paths = [getattr(event, 'src_path', None), getattr(event, 'dest_path', None)]
        return any(p and os.path.abspath(p) == self.data_file for p in paths)

    def on_modified(self, event):
        if self._matches(event):
            self._notify()

    def on_created(self, event):
        if self._matches(event):
            self._notify()

    def on_moved(self, event):
        if self._matches(event):
            self._notify()

    def _notify(self):
        try:
            self.callback()
        except Exception as e:
            self.logger.error(f"处理数据文件变更失败: {e}")


class SettingsWatcher:
    """设置变更监控器

    监控注册表数据文件，文件变化时在事件循环中调用刷新回调。
    lastSeen 的写入也会修改数据文件，因此刷新回调需要自行判断
    检查频率是否真的变化。
    """

    def __init__(self, data_file: str, on_change: Callable[[], Awaitable[bool]],
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        初始化设置监控器

        Args:
            data_file: 注册表数据文件路径
            on_change: 异步刷新回调
            loop: 回调所在的事件循环，默认在 start_watching 时取当前运行的循环
        """
        self.data_file = os.path.abspath(data_file)
        self.on_change = on_change
        self.loop = loop
        self.observer: Optional[Observer] = None
        self._pending: Optional[asyncio.Future] = None
        self._dirty = False
        self._running = False
        self.logger = get_logger('settings_watcher')

    def _on_file_changed(self):
        """在watchdog线程中调用，把刷新调度到事件循环"""
        if self.loop is None or self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self._schedule_refresh)

    def _schedule_refresh(self):
        # 刷新进行中收到的通知合并为刷新结束后的一次重跑
        if self._pending is not None and not self._pending.done():
            self._dirty = True
            return
        self._pending = asyncio.ensure_future(self._refresh())

    async def _refresh(self):
        while True:
            self._dirty = False
            try:
                changed = await self.on_change()
                if changed:
                    self.logger.info("检测到检查频率变化，已重新调度")
            except Exception as e:
                self.logger.error(f"刷新健康检查设置失败: {e}")

            if not self._dirty:
                break

    def start_watching(self):
        """开始监控数据文件"""
        if self._running:
            self.logger.warning("设置监控器已经在运行")
            return

        if self.loop is None:
            self.loop = asyncio.get_running_loop()

        try:
            watch_dir = os.path.dirname(self.data_file)
            self.observer = Observer()
            self.observer.schedule(DataFileHandler(self.data_file, self._on_file_changed),
                                   watch_dir, recursive=False)
            self.observer.start()
            self._running = True

            self.logger.info(f"开始监控数据文件: {self.data_file}")

        except Exception as e:
            self.logger.error(f"启动数据文件监控失败: {e}")
            raise ConfigError(f"启动数据文件监控失败: {e}", cause=e)

    def stop_watching(self):
        """停止监控数据文件"""
        if not self._running:
            return

        if self.observer:
            self.observer.stop()
            self.observer.join()
            self.observer = None

        if self._pending is not None and not self._pending.done():
            self._pending.cancel()

        self._running = False
        self.logger.info("数据文件监控已停止")

    def is_running(self) -> bool:
        return self._running
