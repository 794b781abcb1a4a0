"""Flow control tools: pauses and retries."""

import json
import time
from typing import TYPE_CHECKING

from zap.core.errors import ToolError, ToolNotFoundError
from zap.core.logging import get_logger
from zap.tools.base import Tool, parse_args, tool

if TYPE_CHECKING:
    from zap.agents.react import ReActAgent

logger = get_logger("tools.flow")

MAX_WAIT_SECONDS = 60.0
MAX_RETRY_ATTEMPTS = 10
MAX_RETRY_DELAY_MS = 30_000


@tool("wait", "Pause before the next request, e.g. for async jobs or rate limits")
def wait(seconds: float = 1.0) -> str:
    """
    seconds: How long to wait (max 60)
    """
    try:
        seconds = float(seconds)
    except (TypeError, ValueError) as e:
        raise ToolError(f"invalid seconds: {seconds}") from e
    seconds = max(0.0, min(seconds, MAX_WAIT_SECONDS))
    time.sleep(seconds)
    return f"Waited {seconds:g} seconds"


class RetryTool(Tool):
    """Call another tool again until it succeeds or attempts run out."""

    def __init__(self, agent: "ReActAgent", sleep=time.sleep):
        self.agent = agent
        self._sleep = sleep

    @property
    def name(self) -> str:
        return "retry"

    @property
    def description(self) -> str:
        return "Retry a tool call with a fixed delay between attempts, e.g. for flaky endpoints"

    @property
    def parameters(self) -> str:
        return (
            '{"tool": "string (required) - tool to call", "args": {}, '
            '"max_attempts": 3, "delay_ms": 1000}'
        )

    def execute(self, args: str) -> str:
        params = parse_args(args)
        tool_name = params.get("tool")
        if not tool_name:
            raise ToolError("tool is required")
        if tool_name == self.name:
            raise ToolError("retry cannot call itself")

        tool_args = params.get("args") or {}
        tool_args = tool_args if isinstance(tool_args, str) else json.dumps(tool_args)
        try:
            attempts = max(1, min(int(params.get("max_attempts", 3)), MAX_RETRY_ATTEMPTS))
            delay_ms = max(0, min(int(params.get("delay_ms", 1000)), MAX_RETRY_DELAY_MS))
        except (TypeError, ValueError) as e:
            raise ToolError(f"invalid retry settings: {e}") from e

        report = []
        for attempt in range(1, attempts + 1):
            try:
                result = self.agent.execute_tool(str(tool_name), tool_args)
            except ToolNotFoundError:
                raise
            except Exception as e:
                logger.info(f"Retry {attempt}/{attempts} of {tool_name} failed: {e}")
                report.append(f"Attempt {attempt}/{attempts}: failed - {e}")
                if attempt < attempts:
                    self._sleep(delay_ms / 1000)
                continue
            report.append(f"Attempt {attempt}/{attempts}: succeeded")
            return "\n".join(report) + f"\n\n{result}"

        raise ToolError("\n".join(report + [f"{tool_name} failed after {attempts} attempts"]))
