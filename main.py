#!/usr/bin/env python3
"""
Purtal 健康监控主应用程序入口

集成注册表、健康监控器、设置监控和HTTP接口，
实现应用程序启动和优雅关闭，添加信号处理和异常捕获。
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import Optional, Dict, Any

from aiohttp import web

from purtal_health import __version__
from purtal_health.api import create_app
from purtal_health.models.health_check import HealthStatus, TargetKind
from purtal_health.monitor import HealthMonitor
from purtal_health.registry.file_registry import FileRegistry
from purtal_health.services.config_manager import ConfigManager
from purtal_health.services.scheduler import SETTINGS_POLL_INTERVAL
from purtal_health.services.settings_watcher import SettingsWatcher
from purtal_health.utils.exceptions import HealthMonitorError, ConfigError
from purtal_health.utils.log_manager import log_manager, get_logger


class PortalHealthApp:
    """健康监控主应用程序类"""

    def __init__(self, config_path: str, log_overrides: Optional[Dict[str, Any]] = None):
        """初始化应用程序

        Args:
            config_path: 配置文件路径
            log_overrides: 命令行传入的日志配置，覆盖配置文件
        """
        self.config_path = config_path
        self.log_overrides = log_overrides or {}
        self.logger: Optional[logging.Logger] = None
        self.is_running = False
        self.shutdown_event = asyncio.Event()

        # 核心组件
        self.config_manager: Optional[ConfigManager] = None
        self.registry: Optional[FileRegistry] = None
        self.monitor: Optional[HealthMonitor] = None
        self.settings_watcher: Optional[SettingsWatcher] = None
        self.runner: Optional[web.AppRunner] = None

    def initialize(self):
        """初始化应用程序组件"""
        self.config_manager = ConfigManager(self.config_path)
        self.config_manager.load_config()
        global_config = self.config_manager.get_global_config()

        self._configure_logging(global_config)
        self.logger = get_logger('main')
        self.logger.info("开始初始化健康监控系统")

        self.registry = FileRegistry(self.config_manager.get_data_file())
        self.monitor = HealthMonitor(
            self.registry,
            settings_poll_interval=global_config.get('settings_poll_interval',
                                                     SETTINGS_POLL_INTERVAL),
            checker_options={'icmp_privileged': global_config.get('icmp_privileged', False)}
        )

        if global_config.get('watch_data_file', True):
            self.settings_watcher = SettingsWatcher(self.registry.data_file,
                                                    self.monitor.refresh_settings)

        self.logger.info("应用程序组件初始化完成")

    def _configure_logging(self, global_config: Dict[str, Any]):
        """配置日志系统

        Args:
            global_config: 全局配置
        """
        log_config = {
            'log_level': global_config.get('log_level', 'INFO'),
            'enable_console': True
        }

        if global_config.get('log_file'):
            log_config['log_file'] = global_config['log_file']
            log_config['max_file_size'] = global_config.get('max_log_size',
                                                            10 * 1024 * 1024)
            log_config['backup_count'] = global_config.get('log_backup_count', 5)

        log_config.update(self.log_overrides)
        log_manager.configure(log_config)

    async def start(self):
        """启动应用程序，直到收到关闭信号"""
        if self.is_running:
            self.logger.warning("应用程序已经在运行")
            return

        try:
            self.is_running = True
            self.logger.info("启动健康监控系统")

            await self.monitor.start()

            if self.settings_watcher:
                self.settings_watcher.start_watching()

            api_config = self.config_manager.get_api_config()
            self.runner = web.AppRunner(create_app(self.monitor))
            await self.runner.setup()
            site = web.TCPSite(self.runner, api_config['host'], api_config['port'])
            await site.start()

            self.logger.info(
                f"健康监控系统启动完成，接口地址: http://{api_config['host']}:{api_config['port']}")

            await self.shutdown_event.wait()

        except Exception as e:
            self.logger.error(f"应用程序运行异常: {e}", exc_info=True)
            raise
        finally:
            await self.stop()

    async def stop(self):
        """停止应用程序"""
        if not self.is_running:
            return

        self.logger.info("正在停止健康监控系统...")
        self.is_running = False

        try:
            if self.runner:
                await self.runner.cleanup()
                self.runner = None

            if self.settings_watcher:
                self.settings_watcher.stop_watching()

            if self.monitor:
                await self.monitor.stop()

            self.logger.info("健康监控系统已停止")
            log_manager.cleanup()

        except Exception as e:
            self.logger.error(f"停止应用程序时发生异常: {e}", exc_info=True)

    def shutdown(self):
        """触发应用程序关闭"""
        if self.logger:
            self.logger.info("收到关闭信号")
        self.shutdown_event.set()

    def get_status(self) -> Dict[str, Any]:
        """获取应用程序状态

        Returns:
            应用程序状态信息
        """
        status = {
            'is_running': self.is_running,
            'config_path': self.config_path
        }

        if self.monitor:
            status['monitor'] = self.monitor.get_stats()

        return status


def create_argument_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='purtal-health',
        description='Purtal 健康监控 - 定时检查服务和客户端的可达性并提供状态接口',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  %(prog)s config.yaml                    # 使用指定配置文件启动监控和接口
  %(prog)s --validate config.yaml        # 验证配置文件格式
  %(prog)s --check-once config.yaml      # 检查所有目标一次后退出
  %(prog)s --version                      # 显示版本信息

配置文件格式请参考 config/example.yaml
        """
    )

    parser.add_argument(
        'config_file',
        nargs='?',
        help='YAML配置文件路径'
    )

    parser.add_argument(
        '--version', '-v',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--validate',
        action='store_true',
        help='验证配置文件格式并退出'
    )

    parser.add_argument(
        '--check-once',
        action='store_true',
        help='执行一次健康检查后退出'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='设置日志级别（覆盖配置文件设置）'
    )

    parser.add_argument(
        '--log-file',
        help='日志文件路径（覆盖配置文件设置）'
    )

    return parser


def validate_config_file(config_path: str) -> bool:
    """验证配置文件

    Args:
        config_path: 配置文件路径

    Returns:
        验证是否成功
    """
    try:
        print(f"正在验证配置文件: {config_path}")

        config_manager = ConfigManager(config_path)
        config_manager.load_config()
        api_config = config_manager.get_api_config()

        print("✅ 配置文件验证成功!")
        print(f"   - 数据文件: {config_manager.get_data_file()}")
        print(f"   - 接口地址: {api_config['host']}:{api_config['port']}")
        return True

    except Exception as e:
        print(f"❌ 配置文件验证失败: {e}")
        return False


async def check_once(config_path: str, log_overrides: Optional[Dict[str, Any]] = None) -> bool:
    """对所有目标执行一次健康检查

    Args:
        config_path: 配置文件路径
        log_overrides: 日志配置覆盖

    Returns:
        是否没有不健康/离线的目标
    """
    try:
        print(f"正在执行健康检查: {config_path}")

        app = PortalHealthApp(config_path, log_overrides)
        app.initialize()

        all_alive = True
        for kind in TargetKind:
            records = await app.monitor.get_all_statuses(kind)
            print(f"✅ {kind.value} 检查完成，共 {len(records)} 个:")

            for record in records:
                if record.status == HealthStatus.UNKNOWN:
                    detail = f" - {record.error}" if record.error else ""
                    print(f"   ➖ {record.target_id}: 未启用检查{detail}")
                elif record.is_alive:
                    print(f"   ✅ {record.target_id}: {record.status.value} "
                          f"(响应时间: {record.response_time:.3f}s)")
                else:
                    print(f"   ❌ {record.target_id}: {record.status.value} - {record.error}")
                    all_alive = False

        return all_alive

    except Exception as e:
        print(f"❌ 健康检查失败: {e}")
        return False


async def main():
    """主函数"""
    parser = create_argument_parser()
    args = parser.parse_args()

    if not args.config_file:
        parser.print_help()
        sys.exit(1)

    config_path = args.config_file

    if not os.path.exists(config_path):
        print(f"配置文件不存在: {config_path}", file=sys.stderr)
        sys.exit(1)

    log_overrides: Dict[str, Any] = {}
    if args.log_level:
        log_overrides['log_level'] = args.log_level
    if args.log_file:
        log_overrides['log_file'] = args.log_file

    if args.validate:
        sys.exit(0 if validate_config_file(config_path) else 1)

    if args.check_once:
        success = await check_once(config_path, log_overrides)
        sys.exit(0 if success else 1)

    app = PortalHealthApp(config_path, log_overrides)

    try:
        app.initialize()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, app.shutdown)
            except NotImplementedError:
                # Windows 不支持 add_signal_handler
                signal.signal(sig, lambda signum, frame: app.shutdown())

        print(f"Purtal 健康监控 v{__version__} 已启动")
        print(f"配置文件: {config_path}")
        print("按 Ctrl+C 停止程序")

        await app.start()

    except ConfigError as e:
        print(f"配置错误: {e}", file=sys.stderr)
        sys.exit(1)
    except HealthMonitorError as e:
        print(f"健康监控系统错误: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        await app.stop()


def run():
    """命令行入口"""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n用户中断程序")


if __name__ == "__main__":
    run()
