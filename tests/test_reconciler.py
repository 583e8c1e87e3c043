"""lastSeen 协调器测试模块"""

from datetime import datetime, timezone, timedelta

import pytest

from purtal_health.models.health_check import (HealthStatus, StatusRecord, TargetKind,
                                               format_timestamp)
from purtal_health.services.reconciler import LastSeenReconciler
from purtal_health.services.status_cache import StatusCache

T0 = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)


class TestLastSeenReconciler:
    """lastSeen 协调器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.cache = StatusCache()
        self.reconciler = LastSeenReconciler(self.cache)

    @pytest.mark.asyncio
    async def test_resolve_from_registry(self, registry):
        """测试从注册表读取 lastSeen"""
        service = registry.add_service('svc-1', lastSeen=format_timestamp(T0))

        last_seen = await self.reconciler.resolve_last_seen(TargetKind.SERVICE, service, registry)

        assert last_seen == T0

    @pytest.mark.asyncio
    async def test_resolve_never_seen(self, registry):
        """测试从未在线的目标返回None"""
        service = registry.add_service('svc-1')

        assert await self.reconciler.resolve_last_seen(TargetKind.SERVICE, service, registry) is None

    @pytest.mark.asyncio
    async def test_resolve_falls_back_to_cache(self, registry):
        """测试注册表读取失败时回退到缓存"""
        client = registry.add_client('c-1', lastSeen=format_timestamp(T0))
        self.cache.set('c-1', StatusRecord(status=HealthStatus.OFFLINE, last_seen=T0 - timedelta(hours=1)))
        registry.fail_reads = True

        last_seen = await self.reconciler.resolve_last_seen(TargetKind.CLIENT, client, registry)

        assert last_seen == T0 - timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_resolve_total_miss(self, registry):
        """测试注册表失败且缓存为空时返回None"""
        client = registry.add_client('c-1')
        registry.fail_reads = True

        assert await self.reconciler.resolve_last_seen(TargetKind.CLIENT, client, registry) is None

    @pytest.mark.asyncio
    async def test_persist_writes_registry(self, registry):
        """测试保存 lastSeen 到注册表"""
        service = registry.add_service('svc-1')

        effective = await self.reconciler.persist_last_seen(TargetKind.SERVICE, service, T0, registry)

        assert effective == T0
        assert registry.services['svc-1']['lastSeen'] == format_timestamp(T0)
        assert registry.update_calls == [(TargetKind.SERVICE, 'svc-1', {'lastSeen': format_timestamp(T0)})]

    @pytest.mark.asyncio
    async def test_persist_failure_keeps_in_memory_value(self, registry):
        """测试注册表写入失败时进程内的值仍然生效"""
        service = registry.add_service('svc-1', lastSeen=format_timestamp(T0 - timedelta(days=1)))
        registry.fail_writes = True

        effective = await self.reconciler.persist_last_seen(TargetKind.SERVICE, service, T0, registry)
        assert effective == T0

        # 注册表中仍然是旧值，解析时取进程内确认的较新值
        registry.fail_writes = False
        last_seen = await self.reconciler.resolve_last_seen(TargetKind.SERVICE, service, registry)
        assert last_seen == T0

    @pytest.mark.asyncio
    async def test_persist_never_regresses(self, registry):
        """测试较早的时间不会覆盖较晚的 lastSeen"""
        service = registry.add_service('svc-1')

        await self.reconciler.persist_last_seen(TargetKind.SERVICE, service, T0, registry)
        effective = await self.reconciler.persist_last_seen(
            TargetKind.SERVICE, service, T0 - timedelta(seconds=5), registry)

        assert effective == T0
        assert registry.services['svc-1']['lastSeen'] == format_timestamp(T0)

    @pytest.mark.asyncio
    async def test_resolve_not_earlier_than_observed(self, registry):
        """测试注册表的旧值不会让 lastSeen 倒退"""
        service = registry.add_service('svc-1')
        await self.reconciler.persist_last_seen(TargetKind.SERVICE, service, T0, registry)

        # 外部把注册表改回更早的值
        registry.services['svc-1']['lastSeen'] = format_timestamp(T0 - timedelta(days=3))

        last_seen = await self.reconciler.resolve_last_seen(TargetKind.SERVICE, service, registry)
        assert last_seen == T0

    @pytest.mark.asyncio
    async def test_known_last_seen(self, registry):
        """测试不访问注册表时取记录值和进程内值中较新的一个"""
        service = registry.add_service('svc-1', lastSeen=format_timestamp(T0 - timedelta(hours=2)))
        assert self.reconciler.known_last_seen(service) == T0 - timedelta(hours=2)

        await self.reconciler.persist_last_seen(TargetKind.SERVICE, service, T0, registry)
        registry.update_calls.clear()
        registry.fail_reads = True

        assert self.reconciler.known_last_seen(service) == T0
        assert self.reconciler.known_last_seen({'id': 'svc-2'}) is None
        assert registry.update_calls == []

    @pytest.mark.asyncio
    async def test_forget(self, registry):
        """测试丢弃进程内记录"""
        service = registry.add_service('svc-1')
        await self.reconciler.persist_last_seen(TargetKind.SERVICE, service, T0, registry)
        registry.services['svc-1'].pop('lastSeen')

        self.reconciler.forget('svc-1')

        assert await self.reconciler.resolve_last_seen(TargetKind.SERVICE, service, registry) is None
