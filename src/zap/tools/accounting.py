"""
Tool call accounting and limits.

Counters cover one session (a single user turn) and are read by the UI
while the agent thread writes them.
"""

import threading

from zap.core.config import DEFAULT_TOOL_CALL_LIMIT, DEFAULT_TOTAL_LIMIT
from zap.core.types import ToolUsageStats


class CallAccountant:
    """Track per-tool and total tool calls against configured limits."""

    def __init__(
        self,
        default_limit: int = DEFAULT_TOOL_CALL_LIMIT,
        total_limit: int = DEFAULT_TOTAL_LIMIT,
        limits: dict[str, int] | None = None,
    ):
        """Initialize accountant.

        Args:
            default_limit: Per-tool limit for tools without an override
            total_limit: Cap on all tool calls in a session
            limits: Per-tool overrides
        """
        self._lock = threading.Lock()
        self._default_limit = default_limit
        self._total_limit = total_limit
        self._limits: dict[str, int] = dict(limits or {})
        self._counts: dict[str, int] = {}
        self._total = 0

    @property
    def default_limit(self) -> int:
        with self._lock:
            return self._default_limit

    def set_tool_limit(self, tool_name: str, limit: int) -> None:
        with self._lock:
            self._limits[tool_name] = limit

    def set_default_limit(self, limit: int) -> None:
        with self._lock:
            self._default_limit = limit

    def set_total_limit(self, limit: int) -> None:
        with self._lock:
            self._total_limit = limit

    def _limit_for(self, tool_name: str) -> int:
        return self._limits.get(tool_name, self._default_limit)

    def limit_for(self, tool_name: str) -> int:
        """Limit for a tool, or the default when none is configured."""
        with self._lock:
            return self._limit_for(tool_name)

    def reset(self) -> None:
        """Zero all counters. Called once at the start of each turn."""
        with self._lock:
            self._counts = {}
            self._total = 0

    def increment(self, tool_name: str) -> tuple[int, int]:
        """
        Count one call to a tool.

        Returns:
            (new count for the tool, limit for the tool)
        """
        with self._lock:
            self._counts[tool_name] = self._counts.get(tool_name, 0) + 1
            self._total += 1
            return self._counts[tool_name], self._limit_for(tool_name)

    def count(self, tool_name: str) -> int:
        with self._lock:
            return self._counts.get(tool_name, 0)

    def is_tool_limit_reached(self, tool_name: str) -> bool:
        with self._lock:
            return self._counts.get(tool_name, 0) >= self._limit_for(tool_name)

    def is_total_limit_reached(self) -> bool:
        with self._lock:
            return self._total >= self._total_limit

    def total_usage(self) -> tuple[int, int]:
        """
        Returns:
            (total calls, total limit)
        """
        with self._lock:
            return self._total, self._total_limit

    def usage_stats(self) -> tuple[list[ToolUsageStats], int, int]:
        """
        Usage of every tool called this session.

        Returns:
            (per-tool stats sorted by name, total calls, total limit)
        """
        with self._lock:
            stats = []
            for name, current in sorted(self._counts.items()):
                if current <= 0:
                    continue
                limit = self._limit_for(name)
                percent = min(100, int(current / limit * 100)) if limit > 0 else 100
                stats.append(ToolUsageStats(name=name, current=current, limit=limit, percent=percent))
            return stats, self._total, self._total_limit
