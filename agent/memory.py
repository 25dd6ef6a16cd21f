"""
agent/memory.py

Conversation memory kept for the lifetime of one agent instance.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Literal


@dataclass(frozen=True)
class MemoryEntry:
    query: str
    intent: str
    result: Any
    timestamp: float


@dataclass
class UserPreferences:
    preferred_chart_types: list[str] = field(default_factory=list)
    analysis_depth: Literal["basic", "detailed", "comprehensive"] = "detailed"


class ConversationMemory:
    """
    Append-only query history capped at ``max_entries`` (oldest dropped first).

    Appends are serialized so concurrent queries on one agent never lose entries.
    """

    def __init__(self, max_entries: int = 50) -> None:
        self._lock = threading.Lock()
        self._entries: deque[MemoryEntry] = deque(maxlen=max(1, max_entries))
        self.preferences = UserPreferences()

    def append(self, query: str, intent: str, result: Any) -> MemoryEntry:
        entry = MemoryEntry(query=query, intent=intent, result=result, timestamp=time.time())
        with self._lock:
            self._entries.append(entry)
        return entry

    def recent(self, limit: int) -> list[MemoryEntry]:
        if limit <= 0:
            return []
        with self._lock:
            return list(self._entries)[-limit:]

    @property
    def entries(self) -> list[MemoryEntry]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
