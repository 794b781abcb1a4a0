"""Tool registry for managing available tools."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from zap.core.logging import get_logger
from zap.tools.base import Tool

logger = get_logger("tools.registry")


class _RWLock:
    """Readers share the lock; a writer waits for them and blocks new readers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._readers = 0
        self._read_ok = threading.Condition(self._lock)
        self._write_ok = threading.Condition(self._lock)
        self._writers_waiting = 0
        self._writer_active = False

    def acquire_read(self) -> None:
        with self._lock:
            while self._writer_active or self._writers_waiting > 0:
                self._read_ok.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._lock:
            self._readers -= 1
            if self._readers == 0:
                self._write_ok.notify_all()

    def acquire_write(self) -> None:
        with self._lock:
            self._writers_waiting += 1
            while self._writer_active or self._readers > 0:
                self._write_ok.wait()
            self._writers_waiting -= 1
            self._writer_active = True

    def release_write(self) -> None:
        with self._lock:
            self._writer_active = False
            self._read_ok.notify_all()
            self._write_ok.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class ToolRegistry:
    """Name-keyed tool map, safe for registration while the agent loop runs."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}
        self._lock = _RWLock()

    def register(self, tool: Tool) -> None:
        """Register a tool. Re-registering a name replaces the previous tool."""
        with self._lock.write():
            if tool.name in self._tools:
                logger.warning(f"Tool {tool.name} already registered, overwriting")
            self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def get(self, name: str) -> Tool | None:
        """Get tool by name."""
        with self._lock.read():
            return self._tools.get(name)

    def get_all(self) -> list[Tool]:
        """Get all registered tools in registration order."""
        with self._lock.read():
            return list(self._tools.values())

    def names(self) -> list[str]:
        with self._lock.read():
            return list(self._tools)

    def has_tool(self, name: str) -> bool:
        """Check if tool exists."""
        with self._lock.read():
            return name in self._tools

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._tools)

    def get_context_string(self) -> str:
        """
        Generate the tool catalog for the system prompt.

        Returns:
            Multi-line string with all tool definitions
        """
        tools = self.get_all()
        if not tools:
            return "No tools available."

        lines = ["## AVAILABLE TOOLS\n"]
        for tool in tools:
            lines.append(tool.to_context_string())
            lines.append("")

        return "\n".join(lines)
