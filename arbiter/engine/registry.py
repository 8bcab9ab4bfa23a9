# registry.py
# =============================================================================
# 案件登记簿：进程生命周期内的内存存储，每个案件 ID 只写一次。
# / Case registry：process-lifetime in-memory store, write-once per case id.
#
# 只登记成功完成的案件；无持久化、无淘汰，条目数随进程运行无界增长。
# / Only completed cases are registered. No persistence and no eviction:
#   the entry count grows without bound for the life of the process.
# =============================================================================

"""案件登记簿。 / Case registry."""

from __future__ import annotations

import logging
import threading
from typing import Dict, List

from arbiter.primitives.errors import CaseNotFound, RegistryConflict
from arbiter.primitives.models import CaseEntry, CaseSummary

logger = logging.getLogger(__name__)


class CaseRegistry:
    """写一次、读多次的案件存储。 / Write-once, read-many case store.

    由服务实例创建一次并按引用传给处理器，而不是模块级全局变量。
    / Constructed once per server instance and passed by reference to
      handlers rather than living as module-level state.
    """

    def __init__(self) -> None:
        # dict 保持插入顺序 / dict preserves insertion order
        self._entries: Dict[str, CaseEntry] = {}
        self._lock = threading.Lock()

    def put(self, dispute_id: str, entry: CaseEntry) -> None:
        """登记案件。ID 已存在或与条目不一致时抛出 RegistryConflict。
        / Register a case; RegistryConflict if the id exists or mismatches the entry.
        """
        if entry.dispute_id != dispute_id or entry.decision.dispute_id != dispute_id:
            raise RegistryConflict(
                f"Case entry id '{entry.dispute_id}' does not match registry key '{dispute_id}'",
                dispute_id=dispute_id,
            )
        with self._lock:
            if dispute_id in self._entries:
                raise RegistryConflict(
                    f"Case '{dispute_id}' is already registered",
                    dispute_id=dispute_id,
                )
            self._entries[dispute_id] = entry
        logger.info("案件已登记: %s (共 %d 件)", dispute_id, len(self._entries))

    def get(self, dispute_id: str) -> CaseEntry:
        """读取案件。未登记时抛出 CaseNotFound。 / Fetch a case; CaseNotFound if absent."""
        entry = self._entries.get(dispute_id)
        if entry is None:
            raise CaseNotFound(
                f"Reasoning data not found for dispute '{dispute_id}'",
                dispute_id=dispute_id,
            )
        return entry

    def list_all(self) -> List[CaseSummary]:
        """按登记顺序返回案件摘要。 / Case summaries in insertion order."""
        with self._lock:
            entries = list(self._entries.values())
        return [entry.summary() for entry in entries]

    def __contains__(self, dispute_id: object) -> bool:
        return dispute_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
