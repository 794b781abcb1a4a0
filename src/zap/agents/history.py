"""Conversation history with oldest-first eviction."""

import threading

from zap.core.types import Message


class History:
    """Append-only message list bounded by max_messages (0 = unlimited)."""

    def __init__(self, max_messages: int = 0):
        self._lock = threading.Lock()
        self._messages: list[Message] = []
        self._max_messages = max_messages

    @property
    def max_messages(self) -> int:
        return self._max_messages

    @max_messages.setter
    def max_messages(self, value: int) -> None:
        with self._lock:
            self._max_messages = max(0, value)
            self._truncate()

    def append(self, message: Message) -> None:
        with self._lock:
            self._messages.append(message)
            self._truncate()

    def append_pair(self, assistant: Message, observation: Message) -> None:
        """Append a tool call reply and its observation together."""
        with self._lock:
            self._messages.extend((assistant, observation))
            self._truncate()

    def snapshot(self) -> list[Message]:
        """Copy of the current messages, oldest first."""
        with self._lock:
            return list(self._messages)

    def clear(self) -> None:
        with self._lock:
            self._messages = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    def _truncate(self) -> None:
        if self._max_messages <= 0:
            return
        excess = len(self._messages) - self._max_messages
        if excess > 0:
            del self._messages[:excess]
