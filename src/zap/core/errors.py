"""
Exception hierarchy.

Only model failures and cancellation escape a turn; everything else is fed
back to the model as an observation.
"""


class ZapError(Exception):
    """Base class for all package errors."""


class LLMError(ZapError):
    """The language model endpoint failed (transport or HTTP status)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AgentError(ZapError):
    """A turn could not complete because the model call failed."""


class TurnCancelled(ZapError):
    """The turn observed a cancellation request at an iteration boundary."""


class ToolError(ZapError):
    """A tool rejected its arguments or failed while executing."""


class ToolNotFoundError(ToolError):
    """No tool is registered under the requested name."""
