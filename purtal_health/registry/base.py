"""目标注册表基类"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

from ..models.health_check import TargetKind
from ..utils.log_manager import get_logger

logger = get_logger('registry')


class BaseRegistry(ABC):
    """目标注册表抽象基类

    保存服务、客户端及门户设置。所有方法都可能抛出异常，
    调用方需要自行降级处理。
    """

    @abstractmethod
    async def get_services(self) -> List[Dict[str, Any]]:
        """获取全部服务"""

    @abstractmethod
    async def get_service(self, service_id: str) -> Optional[Dict[str, Any]]:
        """获取单个服务，不存在时返回None"""

    @abstractmethod
    async def update_service(self, service_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """合并更新服务字段"""

    @abstractmethod
    async def get_clients(self) -> List[Dict[str, Any]]:
        """获取全部客户端"""

    @abstractmethod
    async def get_client(self, client_id: str) -> Optional[Dict[str, Any]]:
        """获取单个客户端，不存在时返回None"""

    @abstractmethod
    async def update_client(self, client_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """合并更新客户端字段"""

    @abstractmethod
    async def get_settings(self) -> Dict[str, Any]:
        """获取门户设置（包含 healthCheck 子项）"""

    async def list_targets(self, kind: TargetKind) -> List[Dict[str, Any]]:
        """按目标类型获取全部目标，跳过不是对象的异常条目"""
        if kind == TargetKind.SERVICE:
            targets = await self.get_services()
        else:
            targets = await self.get_clients()

        valid = [t for t in targets or [] if isinstance(t, dict)]
        if len(valid) != len(targets or []):
            logger.warning(f"注册表中有 {len(targets) - len(valid)} 个无效的 {kind.value} 条目，已跳过")
        return valid

    async def get_target(self, kind: TargetKind, target_id: str) -> Optional[Dict[str, Any]]:
        """按目标类型获取单个目标"""
        if kind == TargetKind.SERVICE:
            return await self.get_service(target_id)
        return await self.get_client(target_id)

    async def update_target(self, kind: TargetKind, target_id: str,
                            updates: Dict[str, Any]) -> Dict[str, Any]:
        """按目标类型更新单个目标"""
        if kind == TargetKind.SERVICE:
            return await self.update_service(target_id, updates)
        return await self.update_client(target_id, updates)
