"""健康检查器模块"""

from .base import BaseHealthChecker
from .factory import HealthCheckerFactory, health_checker_factory, register_checker
from .service_checker import ServiceHealthChecker
from .client_checker import ClientHealthChecker

__all__ = ['BaseHealthChecker', 'HealthCheckerFactory', 'health_checker_factory',
           'register_checker', 'ServiceHealthChecker', 'ClientHealthChecker']
