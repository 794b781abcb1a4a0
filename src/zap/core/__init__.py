"""
Core module - configuration, shared types, errors.

Components:
- config: Settings management via pydantic-settings
- types: Shared data structures (Message, AgentEvent, etc.)
- errors: Exception hierarchy
- logging: Logging setup
"""

from zap.core.config import Settings
from zap.core.types import AgentEvent, EventType, Message, Role

__all__ = ["Settings", "Message", "Role", "AgentEvent", "EventType"]
