"""基于JSON文件的目标注册表"""

import json
import os
from pathlib import Path
from typing import Dict, Any, List, Optional

from .base import BaseRegistry
from ..models.health_check import TargetKind, utc_now, format_timestamp
from ..models.settings import HealthCheckSettings
from ..utils.exceptions import PersistenceError, TargetNotFoundError
from ..utils.log_manager import get_logger


def default_document() -> Dict[str, Any]:
    """新建数据文件时的默认内容"""
    return {
        'services': [],
        'clients': [],
        'settings': {
            'title': 'Purtal',
            'theme': 'default',
            'layout': 'grid',
            'healthCheck': HealthCheckSettings().to_dict()
        }
    }


class FileRegistry(BaseRegistry):
    """JSON文件注册表

    整个文档 {services, clients, settings} 保存在一个文件中，
    每次读取都从磁盘加载，保证外部修改（管理后台）立即可见。
    """

    def __init__(self, data_file: str):
        """
        初始化文件注册表

        Args:
            data_file: 数据文件路径，不存在时按默认内容创建
        """
        self.data_file = data_file
        self.logger = get_logger('registry.file')

        if not os.path.exists(self.data_file):
            self.logger.info(f"数据文件不存在，创建默认数据文件: {self.data_file}")
            self._write_document(default_document())

    def _read_document(self) -> Dict[str, Any]:
        try:
            with open(self.data_file, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"读取数据文件失败: {e}", cause=e,
                                   details={'data_file': self.data_file})

        if not isinstance(document, dict):
            raise PersistenceError("数据文件根节点必须是对象",
                                   details={'data_file': self.data_file})
        return document

    def _write_document(self, document: Dict[str, Any]) -> None:
        try:
            Path(self.data_file).parent.mkdir(parents=True, exist_ok=True)
            with open(self.data_file, 'w', encoding='utf-8') as f:
                json.dump(document, f, ensure_ascii=False, indent=2)
        except (OSError, TypeError) as e:
            raise PersistenceError(f"写入数据文件失败: {e}", cause=e,
                                   details={'data_file': self.data_file})

    @staticmethod
    def _collection_key(kind: TargetKind) -> str:
        return 'services' if kind == TargetKind.SERVICE else 'clients'

    def _list(self, kind: TargetKind) -> List[Dict[str, Any]]:
        return list(self._read_document().get(self._collection_key(kind)) or [])

    def _find(self, kind: TargetKind, target_id: str) -> Optional[Dict[str, Any]]:
        for item in self._list(kind):
            if isinstance(item, dict) and item.get('id') == target_id:
                return item
        return None

    def _update(self, kind: TargetKind, target_id: str,
                updates: Dict[str, Any]) -> Dict[str, Any]:
        # 读-改-写之间没有await，在同一个事件循环内不会交错
        document = self._read_document()
        key = self._collection_key(kind)
        items = document.get(key) or []

        for index, item in enumerate(items):
            if isinstance(item, dict) and item.get('id') == target_id:
                items[index] = {
                    **item,
                    **updates,
                    'updatedAt': format_timestamp(utc_now())
                }
                document[key] = items
                self._write_document(document)
                return items[index]

        raise TargetNotFoundError(kind.value, target_id)

    async def get_services(self) -> List[Dict[str, Any]]:
        return self._list(TargetKind.SERVICE)

    async def get_service(self, service_id: str) -> Optional[Dict[str, Any]]:
        return self._find(TargetKind.SERVICE, service_id)

    async def update_service(self, service_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return self._update(TargetKind.SERVICE, service_id, updates)

    async def get_clients(self) -> List[Dict[str, Any]]:
        return self._list(TargetKind.CLIENT)

    async def get_client(self, client_id: str) -> Optional[Dict[str, Any]]:
        return self._find(TargetKind.CLIENT, client_id)

    async def update_client(self, client_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return self._update(TargetKind.CLIENT, client_id, updates)

    async def get_settings(self) -> Dict[str, Any]:
        return self._read_document().get('settings') or {}
