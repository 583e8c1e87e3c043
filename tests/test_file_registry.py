"""JSON文件注册表测试"""

import json
import os
import shutil
import tempfile

import pytest

from purtal_health.models.health_check import TargetKind
from purtal_health.registry.file_registry import FileRegistry
from purtal_health.utils.exceptions import PersistenceError, TargetNotFoundError


class TestFileRegistry:
    """测试 FileRegistry 类"""

    def setup_method(self):
        """测试前准备"""
        self.temp_dir = tempfile.mkdtemp()
        self.data_file = os.path.join(self.temp_dir, 'data', 'config.json')

    def teardown_method(self):
        """测试后清理"""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def write_document(self, document):
        os.makedirs(os.path.dirname(self.data_file), exist_ok=True)
        with open(self.data_file, 'w', encoding='utf-8') as f:
            json.dump(document, f)

    @pytest.mark.asyncio
    async def test_creates_default_document(self):
        """测试数据文件不存在时创建默认内容"""
        registry = FileRegistry(self.data_file)

        assert os.path.exists(self.data_file)
        assert await registry.get_services() == []
        assert await registry.get_clients() == []

        settings = await registry.get_settings()
        assert settings['healthCheck'] == {
            'serviceFrequency': 30,
            'serviceTimeout': 5000,
            'clientFrequency': 60,
            'clientTimeout': 3
        }

    @pytest.mark.asyncio
    async def test_get_targets(self):
        """测试读取服务和客户端"""
        self.write_document({
            'services': [{'id': 'svc-1', 'name': 'Grafana'}],
            'clients': [{'id': 'c-1', 'type': 'health-check', 'ipAddress': '10.0.0.5'}],
            'settings': {}
        })
        registry = FileRegistry(self.data_file)

        assert (await registry.get_service('svc-1'))['name'] == 'Grafana'
        assert await registry.get_service('missing') is None
        assert (await registry.get_target(TargetKind.CLIENT, 'c-1'))['ipAddress'] == '10.0.0.5'
        assert [c['id'] for c in await registry.list_targets(TargetKind.CLIENT)] == ['c-1']

    @pytest.mark.asyncio
    async def test_malformed_entries_are_skipped(self):
        """测试数据文件中的 null 条目不影响读取和更新"""
        self.write_document({
            'services': [None, {'id': 'svc-1'}, 'oops'],
            'clients': [],
            'settings': {}
        })
        registry = FileRegistry(self.data_file)

        assert [s['id'] for s in await registry.list_targets(TargetKind.SERVICE)] == ['svc-1']
        assert (await registry.get_service('svc-1'))['id'] == 'svc-1'

        updated = await registry.update_service('svc-1', {'lastSeen': '2024-05-01T10:00:00.000Z'})
        assert updated['lastSeen'] == '2024-05-01T10:00:00.000Z'

    @pytest.mark.asyncio
    async def test_external_changes_are_visible(self):
        """测试外部修改数据文件后立即可见"""
        registry = FileRegistry(self.data_file)
        self.write_document({'services': [{'id': 'svc-9'}], 'clients': [], 'settings': {}})

        assert [s['id'] for s in await registry.get_services()] == ['svc-9']

    @pytest.mark.asyncio
    async def test_update_target(self):
        """测试更新目标字段"""
        self.write_document({
            'services': [{'id': 'svc-1', 'name': 'Grafana'}],
            'clients': [],
            'settings': {}
        })
        registry = FileRegistry(self.data_file)

        updated = await registry.update_target(TargetKind.SERVICE, 'svc-1',
                                               {'lastSeen': '2024-05-01T10:00:00.000Z'})

        assert updated['lastSeen'] == '2024-05-01T10:00:00.000Z'
        assert updated['name'] == 'Grafana'
        assert 'updatedAt' in updated

        with open(self.data_file, 'r', encoding='utf-8') as f:
            stored = json.load(f)
        assert stored['services'][0]['lastSeen'] == '2024-05-01T10:00:00.000Z'

    @pytest.mark.asyncio
    async def test_update_unknown_target(self):
        """测试更新不存在的目标"""
        registry = FileRegistry(self.data_file)

        with pytest.raises(TargetNotFoundError) as exc_info:
            await registry.update_client('missing', {'lastSeen': None})

        assert exc_info.value.message == "Client not found"

    @pytest.mark.asyncio
    async def test_corrupt_file(self):
        """测试数据文件损坏时抛出持久化异常"""
        os.makedirs(os.path.dirname(self.data_file), exist_ok=True)
        with open(self.data_file, 'w', encoding='utf-8') as f:
            f.write('{not json')
        registry = FileRegistry(self.data_file)

        with pytest.raises(PersistenceError, match="读取数据文件失败"):
            await registry.get_services()

        with pytest.raises(PersistenceError):
            await registry.update_service('svc-1', {'lastSeen': None})

    @pytest.mark.asyncio
    async def test_root_not_object(self):
        """测试数据文件根节点不是对象"""
        self.write_document([1, 2, 3])
        registry = FileRegistry(self.data_file)

        with pytest.raises(PersistenceError, match="根节点必须是对象"):
            await registry.get_settings()
