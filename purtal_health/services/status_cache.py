"""状态缓存模块

保存每个目标最近一次检查的状态记录
"""

from typing import Dict, Optional

from ..models.health_check import StatusRecord
from ..utils.log_manager import get_logger


class StatusCache:
    """状态缓存

    目标ID -> 最近一次完成的检查结果，后写入者覆盖先写入者。
    不做过期处理，新鲜度由记录中的 last_checked 判断；
    不做持久化，进程重启后由第一轮检查重新填充。
    """

    def __init__(self):
        """初始化状态缓存"""
        self._records: Dict[str, StatusRecord] = {}
        self.logger = get_logger('status_cache')

    def get(self, target_id: str) -> Optional[StatusRecord]:
        """获取目标的最新状态记录

        Args:
            target_id: 目标ID

        Returns:
            状态记录，从未检查过返回None
        """
        return self._records.get(target_id)

    def set(self, target_id: str, record: StatusRecord) -> None:
        """写入目标的最新状态记录

        Args:
            target_id: 目标ID
            record: 状态记录
        """
        previous = self._records.get(target_id)
        self._records[target_id] = record

        if previous is not None and previous.status != record.status:
            self.logger.info(
                f"目标 {target_id} 状态变化: {previous.status.value} -> {record.status.value}")

    def get_all(self) -> Dict[str, StatusRecord]:
        """获取所有目标状态记录的副本"""
        return self._records.copy()

    def remove(self, target_id: str) -> None:
        """移除目标的状态记录"""
        self._records.pop(target_id, None)

    def clear(self) -> None:
        """清空缓存"""
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, target_id: str) -> bool:
        return target_id in self._records
