"""数据模型模块"""

from .health_check import (HealthStatus, StatusRecord, TargetKind, utc_now,
                           parse_timestamp, format_timestamp)
from .settings import HealthCheckSettings

__all__ = ['HealthStatus', 'StatusRecord', 'TargetKind', 'HealthCheckSettings',
           'utc_now', 'parse_timestamp', 'format_timestamp']
