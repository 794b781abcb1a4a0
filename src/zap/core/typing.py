"""Shared typing aliases used across modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

from zap.core.types import AgentEvent

JSONDict: TypeAlias = dict[str, Any]
MessageDict: TypeAlias = dict[str, str]
EventCallback: TypeAlias = Callable[[AgentEvent], None]
StreamCallback: TypeAlias = Callable[[str], None]
