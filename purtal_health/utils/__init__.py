"""工具模块"""

from .exceptions import (HealthMonitorError, ConfigError, TargetNotFoundError,
                         PersistenceError, SchedulerSetupError)
from .log_manager import LogManager, LogLevel, get_logger, configure_logging, log_manager

__all__ = [
    'HealthMonitorError', 'ConfigError', 'TargetNotFoundError', 'PersistenceError',
    'SchedulerSetupError', 'LogManager', 'LogLevel', 'get_logger', 'configure_logging',
    'log_manager'
]
