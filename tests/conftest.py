"""测试公共夹具"""

import copy
from typing import Dict, Any, List, Optional

import pytest

from purtal_health.models.health_check import TargetKind
from purtal_health.registry.base import BaseRegistry
from purtal_health.utils.exceptions import PersistenceError, TargetNotFoundError


class InMemoryRegistry(BaseRegistry):
    """内存注册表，可以模拟读写失败"""

    def __init__(self):
        self.services: Dict[str, Dict[str, Any]] = {}
        self.clients: Dict[str, Dict[str, Any]] = {}
        self.settings: Dict[str, Any] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.fail_settings = False
        self.update_calls: List[tuple] = []

    def add_service(self, service_id: str, **fields) -> Dict[str, Any]:
        self.services[service_id] = {'id': service_id, **fields}
        return self.services[service_id]

    def add_client(self, client_id: str, **fields) -> Dict[str, Any]:
        self.clients[client_id] = {'id': client_id, **fields}
        return self.clients[client_id]

    def set_health_settings(self, **health_check):
        self.settings = {'healthCheck': health_check}

    def _check_read(self):
        if self.fail_reads:
            raise PersistenceError("registry unavailable")

    def _update(self, store: Dict[str, Dict[str, Any]], kind: TargetKind,
                target_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        self.update_calls.append((kind, target_id, dict(updates)))
        if self.fail_writes:
            raise PersistenceError("registry write failed")
        if target_id not in store:
            raise TargetNotFoundError(kind.value, target_id)
        store[target_id].update(updates)
        return copy.deepcopy(store[target_id])

    async def get_services(self) -> List[Dict[str, Any]]:
        self._check_read()
        return [copy.deepcopy(s) for s in self.services.values()]

    async def get_service(self, service_id: str) -> Optional[Dict[str, Any]]:
        self._check_read()
        service = self.services.get(service_id)
        return copy.deepcopy(service) if service else None

    async def update_service(self, service_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return self._update(self.services, TargetKind.SERVICE, service_id, updates)

    async def get_clients(self) -> List[Dict[str, Any]]:
        self._check_read()
        return [copy.deepcopy(c) for c in self.clients.values()]

    async def get_client(self, client_id: str) -> Optional[Dict[str, Any]]:
        self._check_read()
        client = self.clients.get(client_id)
        return copy.deepcopy(client) if client else None

    async def update_client(self, client_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return self._update(self.clients, TargetKind.CLIENT, client_id, updates)

    async def get_settings(self) -> Dict[str, Any]:
        if self.fail_settings:
            raise PersistenceError("settings unavailable")
        return copy.deepcopy(self.settings)


@pytest.fixture
def registry():
    """空的内存注册表"""
    return InMemoryRegistry()
