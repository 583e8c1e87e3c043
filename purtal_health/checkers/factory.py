"""健康检查器工厂"""

from typing import Dict, Type, Any

from .base import BaseHealthChecker
from ..models.health_check import TargetKind
from ..services.reconciler import LastSeenReconciler
from ..utils.exceptions import ConfigError


class HealthCheckerFactory:
    """健康检查器工厂类，按目标类型创建检查器"""

    def __init__(self):
        """初始化工厂"""
        self._checkers: Dict[TargetKind, Type[BaseHealthChecker]] = {}

    def register_checker(self, kind: TargetKind, checker_class: Type[BaseHealthChecker]):
        """
        注册健康检查器类

        Args:
            kind: 目标类型
            checker_class: 健康检查器类

        Raises:
            ConfigError: 注册失败
        """
        if not issubclass(checker_class, BaseHealthChecker):
            raise ConfigError(f"检查器类 {checker_class.__name__} 必须继承自 BaseHealthChecker")

        if kind in self._checkers:
            raise ConfigError(f"目标类型 '{kind.value}' 已经注册了检查器")

        if getattr(checker_class, 'target_kind', None) != kind:
            raise ConfigError(f"检查器类 {checker_class.__name__} 的目标类型与 '{kind.value}' 不一致")

        self._checkers[kind] = checker_class

    def create_checker(self, kind: TargetKind, reconciler: LastSeenReconciler,
                       **options: Any) -> BaseHealthChecker:
        """
        创建健康检查器实例

        Args:
            kind: 目标类型
            reconciler: lastSeen 协调器
            options: 检查器选项

        Returns:
            BaseHealthChecker: 健康检查器实例

        Raises:
            ConfigError: 目标类型不支持
        """
        if kind not in self._checkers:
            raise ConfigError(f"不支持的目标类型: '{kind}'")

        return self._checkers[kind](reconciler, **options)

    def create_all(self, reconciler: LastSeenReconciler,
                   **options: Any) -> Dict[TargetKind, BaseHealthChecker]:
        """为每种已注册的目标类型创建检查器"""
        return {kind: self.create_checker(kind, reconciler, **options)
                for kind in self._checkers}

    def get_supported_kinds(self) -> list:
        """
        获取支持的目标类型列表

        Returns:
            list: 支持的目标类型列表
        """
        return list(self._checkers.keys())


# 全局工厂实例
health_checker_factory = HealthCheckerFactory()


def register_checker(kind: TargetKind):
    """
    装饰器：注册健康检查器类

    Args:
        kind: 目标类型

    Returns:
        装饰器函数
    """
    def decorator(checker_class: Type[BaseHealthChecker]):
        health_checker_factory.register_checker(kind, checker_class)
        return checker_class

    return decorator
