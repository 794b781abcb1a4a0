"""Tool framework: contract, registry, response parsing, call limits, confirmation."""

from zap.tools.accounting import CallAccountant
from zap.tools.base import Confirmable, FunctionTool, Tool, ToolParameter, parse_args, tool
from zap.tools.confirm import ConfirmationManager
from zap.tools.parser import ParsedResponse, ResponseParser
from zap.tools.registry import ToolRegistry

__all__ = [
    "CallAccountant",
    "Confirmable",
    "ConfirmationManager",
    "FunctionTool",
    "ParsedResponse",
    "ResponseParser",
    "Tool",
    "ToolParameter",
    "ToolRegistry",
    "parse_args",
    "tool",
]
