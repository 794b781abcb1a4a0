"""
Shared type definitions.

Core data structures used across modules.
"""

from dataclasses import dataclass, field
from enum import Enum


class Role(Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class EventType(Enum):
    THINKING = "thinking"
    TOOL_CALL = "tool_call"
    OBSERVATION = "observation"
    ANSWER = "answer"
    ERROR = "error"
    STREAMING = "streaming"
    TOOL_USAGE = "tool_usage"
    CONFIRMATION_REQUIRED = "confirmation_required"


@dataclass(frozen=True)
class Message:
    """One conversation entry."""

    role: Role
    content: str

    def to_llm_format(self) -> dict[str, str]:
        """Convert to the chat API message format."""
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(Role.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(Role.ASSISTANT, content)


@dataclass(frozen=True)
class FileConfirmation:
    """Proposed file change awaiting human approval."""

    path: str
    is_new_file: bool
    diff: str


@dataclass(frozen=True)
class ToolUsageStats:
    """Usage of a single tool in the current session."""

    name: str
    current: int
    limit: int
    percent: int


@dataclass(frozen=True)
class ToolUsageEvent:
    """Counters reported after each tool dispatch."""

    tool_name: str
    tool_current: int
    tool_limit: int
    total_calls: int
    total_limit: int
    all_stats: list[ToolUsageStats] = field(default_factory=list)


@dataclass(frozen=True)
class AgentEvent:
    """
    One step of agent progress, delivered to the event callback.

    Payload by type:
    - tool_call: content is the tool name, tool_args the raw argument text
    - tool_usage: tool_usage
    - confirmation_required: file_confirmation
    - everything else: content
    """

    type: EventType
    content: str = ""
    tool_args: str = ""
    tool_usage: ToolUsageEvent | None = None
    file_confirmation: FileConfirmation | None = None
