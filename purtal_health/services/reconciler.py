"""lastSeen 协调模块

负责在注册表（持久存储）与进程内状态之间解析和保存
目标的最后在线时间。注册表不可用只会影响 lastSeen 的持久性，
不会影响检查结果的状态判断。
"""

import asyncio
from collections import defaultdict
from datetime import datetime
from typing import Dict, Any, Optional

from .status_cache import StatusCache
from ..models.health_check import TargetKind, parse_timestamp, format_timestamp
from ..registry.base import BaseRegistry
from ..utils.log_manager import get_logger


def _latest(*values: Optional[datetime]) -> Optional[datetime]:
    present = [v for v in values if v is not None]
    return max(present) if present else None


class LastSeenReconciler:
    """lastSeen 协调器

    进程内记录每个目标已确认在线的最新时间，
    保证同一进程内 lastSeen 只增不减。
    """

    def __init__(self, status_cache: StatusCache):
        """
        初始化协调器

        Args:
            status_cache: 状态缓存，注册表读取失败时从中回退
        """
        self.status_cache = status_cache
        self._observed: Dict[str, datetime] = {}
        self._write_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.logger = get_logger('reconciler')

    def _cached_last_seen(self, target_id: str) -> Optional[datetime]:
        record = self.status_cache.get(target_id)
        return record.last_seen if record else None

    def known_last_seen(self, target: Dict[str, Any]) -> Optional[datetime]:
        """
        不访问注册表，按目标记录自身和本进程已确认的值得到 lastSeen

        用于不发起检查的 unknown 结果。
        """
        return _latest(parse_timestamp(target.get('lastSeen')),
                       self._observed.get(target.get('id')))

    async def resolve_last_seen(self, kind: TargetKind, target: Dict[str, Any],
                                registry: BaseRegistry) -> Optional[datetime]:
        """
        解析目标当前的 lastSeen

        优先读取注册表；注册表读取失败时回退到本进程写入缓存的值；
        都没有时返回None。结果不会早于本进程已确认的在线时间。

        Args:
            kind: 目标类型
            target: 目标记录
            registry: 目标注册表

        Returns:
            最后在线时间
        """
        target_id = target.get('id')
        stored = None

        try:
            record = await registry.get_target(kind, target_id)
            if record:
                stored = parse_timestamp(record.get('lastSeen'))
        except Exception as e:
            self.logger.warning(f"读取 {kind.value} {target_id} 的 lastSeen 失败，使用缓存值: {e}")
            stored = self._cached_last_seen(target_id)

        return _latest(stored, self._observed.get(target_id))

    async def persist_last_seen(self, kind: TargetKind, target: Dict[str, Any],
                                timestamp: datetime, registry: BaseRegistry) -> datetime:
        """
        记录并持久化目标的在线时间

        写入失败只记录日志，不重试；进程内的值仍然生效，
        下一次成功的检查会再次写入。

        Args:
            kind: 目标类型
            target: 目标记录
            timestamp: 本次确认在线的时间
            registry: 目标注册表

        Returns:
            生效的 lastSeen（不早于已确认的值）
        """
        target_id = target.get('id')
        effective = _latest(timestamp, self._observed.get(target_id))
        self._observed[target_id] = effective

        # 同一目标的写入串行化，后获得锁的写入总是携带当前最大值
        async with self._write_locks[target_id]:
            value = self._observed[target_id]
            try:
                await registry.update_target(kind, target_id,
                                             {'lastSeen': format_timestamp(value)})
            except Exception as e:
                self.logger.error(f"保存 {kind.value} {target_id} 的 lastSeen 失败: {e}")

        return effective

    def forget(self, target_id: str) -> None:
        """丢弃目标的进程内记录"""
        self._observed.pop(target_id, None)
        self._write_locks.pop(target_id, None)
