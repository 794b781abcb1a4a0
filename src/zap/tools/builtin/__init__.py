"""Built-in tools."""

from typing import TYPE_CHECKING

from zap.core.config import Settings
from zap.tools.builtin.files import ListFilesTool, ReadFileTool, validate_path_within_work_dir
from zap.tools.builtin.flow import RetryTool, wait
from zap.tools.builtin.http import HTTPTool
from zap.tools.builtin.variables import VariableStore, VariableTool
from zap.tools.builtin.write import WriteFileTool
from zap.tools.confirm import ConfirmationManager

if TYPE_CHECKING:
    from zap.agents.react import ReActAgent


def register_builtin_tools(
    agent: "ReActAgent",
    settings: Settings,
    confirm: ConfirmationManager,
) -> VariableStore:
    """
    Register all built-in tools with an agent.

    Returns:
        The variable store shared by the http_request and variable tools
    """
    variables = VariableStore(settings.data_dir)
    agent.register_tool(HTTPTool(variables, timeout=settings.http_timeout))
    agent.register_tool(ReadFileTool(settings.work_dir))
    agent.register_tool(ListFilesTool(settings.work_dir))
    agent.register_tool(WriteFileTool(settings.work_dir, confirm))
    agent.register_tool(VariableTool(variables))
    agent.register_tool(wait)
    agent.register_tool(RetryTool(agent))
    return variables


__all__ = [
    "HTTPTool",
    "ListFilesTool",
    "ReadFileTool",
    "RetryTool",
    "VariableStore",
    "VariableTool",
    "WriteFileTool",
    "register_builtin_tools",
    "validate_path_within_work_dir",
    "wait",
]
