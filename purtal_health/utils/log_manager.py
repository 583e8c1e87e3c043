"""
日志管理器模块

提供统一的日志记录功能，支持控制台和轮转文件输出，
并在内存中保留最近的错误日志供接口查询。
"""

import logging
import logging.handlers
import sys
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, List
from enum import Enum


class LogLevel(Enum):
    """日志级别枚举"""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class RecentErrorHandler(logging.Handler):
    """
    最近错误日志处理器

    只保留最近 max_entries 条 ERROR 及以上级别的日志，
    最新的记录排在最前面。
    """

    def __init__(self, max_entries: int = 10):
        super().__init__(level=logging.ERROR)
        self.max_entries = max_entries
        self._entries: deque = deque(maxlen=max_entries)
        self._sequence = 0

    def emit(self, record: logging.LogRecord) -> None:
        # handle() 不检查处理器级别，只有经过 Logger 分发的记录才会被过滤
        if record.levelno < self.level:
            return

        self._sequence += 1
        stack = None
        if record.exc_info:
            stack = logging.Formatter().formatException(record.exc_info)

        self._entries.appendleft({
            'id': f"error-{int(record.created * 1000)}-{self._sequence}",
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'message': record.getMessage(),
            'stack': stack,
            'context': {
                'logger': record.name,
                'level': record.levelname
            }
        })

    def get_entries(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        entries = list(self._entries)
        if limit is not None:
            entries = entries[:limit]
        return entries

    def clear(self) -> None:
        self._entries.clear()

    def count(self) -> int:
        return len(self._entries)


class LogManager:
    """
    日志管理器类

    提供统一的日志记录功能，支持：
    - 文件和控制台日志输出
    - 日志级别配置
    - 日志轮转和文件大小管理
    - 最近错误日志的内存缓存
    """

    _instance: Optional['LogManager'] = None
    _initialized: bool = False

    def __new__(cls) -> 'LogManager':
        """单例模式实现"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """初始化日志管理器"""
        if self._initialized:
            return

        self._loggers: Dict[str, logging.Logger] = {}
        self._default_format = (
            '%(asctime)s - %(name)s - %(levelname)s - '
            '[%(filename)s:%(lineno)d] - %(message)s'
        )
        self._console_format = (
            '%(asctime)s - %(levelname)s - %(name)s - %(message)s'
        )
        self._date_format = '%Y-%m-%d %H:%M:%S'

        # 默认配置
        self._log_level = LogLevel.INFO
        self._log_file: Optional[str] = None
        self._max_file_size = 10 * 1024 * 1024  # 10MB
        self._backup_count = 5
        self._enable_console = True
        self._enable_file = False

        self.error_handler = RecentErrorHandler(max_entries=10)

        self._initialized = True

    def configure(self, config: Dict[str, Any]) -> None:
        """
        配置日志管理器

        Args:
            config: 日志配置字典，包含以下可选键：
                - log_level: 日志级别 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
                - log_file: 日志文件路径
                - max_file_size: 最大文件大小（字节）
                - backup_count: 备份文件数量
                - enable_console: 是否启用控制台输出
                - max_error_entries: 内存中保留的错误日志条数

        已经创建的日志记录器会按新配置重建处理器。
        """
        if 'log_level' in config:
            level_str = str(config['log_level']).upper()
            if hasattr(LogLevel, level_str):
                self._log_level = LogLevel[level_str]
            else:
                raise ValueError(f"无效的日志级别: {level_str}")

        if config.get('log_file'):
            self._log_file = config['log_file']
            self._enable_file = True

        if 'max_file_size' in config:
            self._max_file_size = config['max_file_size']

        if 'backup_count' in config:
            self._backup_count = config['backup_count']

        if 'enable_console' in config:
            self._enable_console = config['enable_console']

        if 'max_error_entries' in config:
            old_entries = self.error_handler.get_entries()
            self.error_handler = RecentErrorHandler(config['max_error_entries'])
            for entry in reversed(old_entries[:self.error_handler.max_entries]):
                self.error_handler._entries.appendleft(entry)

        for logger in self._loggers.values():
            self._setup_handlers(logger)

    def get_logger(self, name: str) -> logging.Logger:
        """
        获取指定名称的日志记录器

        Args:
            name: 日志记录器名称，会自动加上 purtal 前缀

        Returns:
            配置好的日志记录器实例
        """
        if name in self._loggers:
            return self._loggers[name]

        logger = logging.getLogger(f"purtal.{name}")
        self._setup_handlers(logger)

        # 防止日志向上传播
        logger.propagate = False

        self._loggers[name] = logger
        return logger

    def _setup_handlers(self, logger: logging.Logger) -> None:
        """按当前配置为日志记录器重建处理器"""
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            if isinstance(handler, logging.handlers.RotatingFileHandler):
                handler.close()

        logger.setLevel(self._log_level.value)

        if self._enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(self._log_level.value)
            console_handler.setFormatter(logging.Formatter(
                self._console_format,
                datefmt=self._date_format
            ))
            logger.addHandler(console_handler)

        if self._enable_file and self._log_file:
            Path(self._log_file).parent.mkdir(parents=True, exist_ok=True)

            # 使用RotatingFileHandler实现日志轮转
            file_handler = logging.handlers.RotatingFileHandler(
                self._log_file,
                maxBytes=self._max_file_size,
                backupCount=self._backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(self._log_level.value)
            file_handler.setFormatter(logging.Formatter(
                self._default_format,
                datefmt=self._date_format
            ))
            logger.addHandler(file_handler)

        logger.addHandler(self.error_handler)

    def get_recent_errors(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """获取最近的错误日志，最新的在前"""
        return self.error_handler.get_entries(limit)

    def clear_recent_errors(self) -> None:
        """清空内存中的错误日志"""
        self.error_handler.clear()

    def get_error_count(self) -> int:
        """内存中错误日志的条数"""
        return self.error_handler.count()

    def cleanup(self) -> None:
        """关闭文件处理器"""
        for logger in self._loggers.values():
            for handler in logger.handlers:
                if isinstance(handler, logging.handlers.RotatingFileHandler):
                    handler.close()


# 全局日志管理器实例
log_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """
    获取日志记录器的便捷函数

    Args:
        name: 日志记录器名称

    Returns:
        配置好的日志记录器实例
    """
    return log_manager.get_logger(name)


def configure_logging(config: Dict[str, Any]) -> None:
    """
    配置日志系统的便捷函数

    Args:
        config: 日志配置字典
    """
    log_manager.configure(config)
