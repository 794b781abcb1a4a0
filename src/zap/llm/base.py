"""
LLM client interface.
"""

from typing import Protocol, runtime_checkable

from zap.core.typing import MessageDict, StreamCallback


@runtime_checkable
class ChatClient(Protocol):
    """Chat endpoint used by the agent. Both calls raise LLMError on failure."""

    def chat(self, messages: list[MessageDict]) -> str:
        """Return the complete reply."""
        ...

    def chat_stream(self, messages: list[MessageDict], on_chunk: StreamCallback | None) -> str:
        """Call on_chunk for each fragment as it arrives, then return the whole reply."""
        ...
