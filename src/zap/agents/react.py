"""ReAct agent - reason, act with a tool, observe, repeat until a final answer."""

import threading

from zap.agents.history import History
from zap.agents.prompt import SystemPromptBuilder
from zap.core.config import DEFAULT_MAX_HISTORY, Settings
from zap.core.errors import AgentError, LLMError, ToolNotFoundError, TurnCancelled
from zap.core.logging import get_logger
from zap.core.types import AgentEvent, EventType, Message, ToolUsageEvent
from zap.core.typing import EventCallback, MessageDict
from zap.llm.base import ChatClient
from zap.tools.accounting import CallAccountant
from zap.tools.base import Confirmable, Tool
from zap.tools.parser import ParsedResponse, ResponseParser
from zap.tools.registry import ToolRegistry

logger = get_logger("agents.react")

# Maximum length for logged tool output (characters)
MAX_LOG_LENGTH = 500

TOTAL_LIMIT_MESSAGE = (
    "I reached the maximum total tool calls ({limit}). Stopping to prevent runaway execution."
)
EMPTY_RESPONSE_ANSWER = (
    "I received an empty response from the AI. This can happen if the model is "
    "overloaded or the request is blocked."
)
EMPTY_RESPONSE_ERROR = (
    "Received an empty response from the AI. This usually happens if the model crashed or timed out."
)
CONNECTION_ERROR = (
    "Connection Error: Could not talk to the AI provider.\nDetails: {error}\n\n"
    "Tip: Check if Ollama is running (try 'ollama serve') or check your API key."
)


def _truncate_for_logging(text: str, max_len: int = MAX_LOG_LENGTH) -> str:
    if len(text) <= max_len:
        return text
    return f"{text[:max_len]}... [truncated, {len(text)} chars total]"


class ReActAgent:
    """
    Drives the model through Thought / ACTION / Observation turns.

    A turn starts with a user message and ends with a final answer, the
    total tool call cap, a model failure (AgentError) or cancellation
    (TurnCancelled). Unknown tools, per-tool limits and tool failures are
    reported back to the model as observations so it can correct itself.

    History is mutated only by the thread running the turn; other threads
    may read snapshots via get_history().
    """

    def __init__(
        self,
        llm: ChatClient,
        registry: ToolRegistry | None = None,
        accountant: CallAccountant | None = None,
        max_history: int = DEFAULT_MAX_HISTORY,
        prompt_builder: SystemPromptBuilder | None = None,
    ):
        self.llm = llm
        self.registry = registry or ToolRegistry()
        self.accountant = accountant or CallAccountant()
        self.history = History(max_history)
        self.prompt_builder = prompt_builder or SystemPromptBuilder()
        # Event callback of the turn in progress, handed to confirmable tools
        self._active_callback: EventCallback | None = None

    # Tools

    def register_tool(self, tool: Tool) -> None:
        self.registry.register(tool)

    def execute_tool(self, tool_name: str, args: str) -> str:
        """
        Run a registered tool directly, outside the loop's accounting.

        Confirmable tools get the event callback of the running turn, so a
        re-entrant call (e.g. from retry) still reaches the UI.

        Raises:
            ToolNotFoundError: No such tool
        """
        tool = self.registry.get(tool_name)
        if tool is None:
            raise ToolNotFoundError(f"tool '{tool_name}' not found")
        if isinstance(tool, Confirmable):
            tool.set_event_callback(self._active_callback)
        return tool.execute(args)

    # Configuration surface

    def set_tool_limit(self, tool_name: str, limit: int) -> None:
        self.accountant.set_tool_limit(tool_name, limit)

    def set_default_limit(self, limit: int) -> None:
        self.accountant.set_default_limit(limit)

    def set_total_limit(self, limit: int) -> None:
        self.accountant.set_total_limit(limit)

    def set_max_history(self, max_messages: int) -> None:
        """Set 0 for unlimited history."""
        self.history.max_messages = max_messages

    def set_framework(self, framework: str) -> None:
        self.prompt_builder.framework = framework

    # State for the UI

    def get_history(self) -> list[Message]:
        return self.history.snapshot()

    def tool_usage_stats(self):
        return self.accountant.usage_stats()

    def total_usage(self) -> tuple[int, int]:
        return self.accountant.total_usage()

    # Turn processing

    def parse_response(self, response: str) -> ParsedResponse:
        return ResponseParser.parse(response, self.registry.names())

    def build_system_prompt(self) -> str:
        _, total_limit = self.accountant.total_usage()
        return self.prompt_builder.build(self.registry, self.accountant.default_limit, total_limit)

    def process_message(self, user_input: str) -> str:
        """
        Run one turn without events and return the final text.

        Raises:
            AgentError: The model call failed
        """
        return self._run_turn(user_input, callback=None, cancel=None, streaming=False)

    def process_message_with_events(
        self,
        user_input: str,
        callback: EventCallback,
        cancel: threading.Event | None = None,
    ) -> str:
        """
        Run one turn, streaming the model output and reporting each step.

        The callback runs on the calling (worker) thread; UIs should queue
        events rather than touch their state from inside it. Cancellation is
        checked at the top of every iteration.

        Raises:
            AgentError: The model call failed
            TurnCancelled: cancel was set
            Exception: Whatever the callback itself raises
        """
        return self._run_turn(user_input, callback=callback, cancel=cancel, streaming=True)

    def _run_turn(
        self,
        user_input: str,
        callback: EventCallback | None,
        cancel: threading.Event | None,
        streaming: bool,
    ) -> str:
        self._active_callback = callback
        try:
            return self._loop(user_input, callback, cancel, streaming)
        finally:
            self._active_callback = None

    def _loop(
        self,
        user_input: str,
        callback: EventCallback | None,
        cancel: threading.Event | None,
        streaming: bool,
    ) -> str:
        def emit(event: AgentEvent) -> None:
            if callback is not None:
                callback(event)

        self.history.append(Message.user(user_input))
        self.accountant.reset()
        logger.info(f"Processing message: {_truncate_for_logging(user_input, 100)}")

        while True:
            if cancel is not None and cancel.is_set():
                logger.info("Turn cancelled")
                raise TurnCancelled("turn cancelled")

            if self.accountant.is_total_limit_reached():
                _, total_limit = self.accountant.total_usage()
                message = TOTAL_LIMIT_MESSAGE.format(limit=total_limit)
                logger.warning(f"Total tool call limit reached ({total_limit})")
                emit(AgentEvent(EventType.ERROR, message))
                return message

            total_calls, _ = self.accountant.total_usage()
            emit(AgentEvent(EventType.THINKING, f"reasoning (calls: {total_calls})..."))

            response = self._call_model(self._compose_messages(), emit, streaming)

            if not response:
                logger.warning("Empty response from model")
                emit(AgentEvent(EventType.ERROR, EMPTY_RESPONSE_ERROR))
                return EMPTY_RESPONSE_ANSWER

            parsed = self.parse_response(response)

            if parsed.thought and parsed.thought != response:
                emit(AgentEvent(EventType.THINKING, parsed.thought))

            if not parsed.is_tool_call:
                self.history.append(Message.assistant(response))
                emit(AgentEvent(EventType.ANSWER, parsed.final_answer))
                logger.info("Turn finished with final answer")
                return parsed.final_answer

            observation = self._dispatch(parsed, emit, callback)
            self.history.append_pair(
                Message.assistant(response),
                Message.user(f"Observation: {observation}"),
            )

    def _compose_messages(self) -> list[MessageDict]:
        messages = [Message.system(self.build_system_prompt()).to_llm_format()]
        messages.extend(msg.to_llm_format() for msg in self.history.snapshot())
        return messages

    def _call_model(self, messages: list[MessageDict], emit, streaming: bool) -> str:
        try:
            if streaming:
                return self.llm.chat_stream(
                    messages, lambda chunk: emit(AgentEvent(EventType.STREAMING, chunk))
                )
            return self.llm.chat(messages)
        except LLMError as e:
            logger.error(f"Model call failed: {e}")
            emit(AgentEvent(EventType.ERROR, CONNECTION_ERROR.format(error=e)))
            raise AgentError(f"agent chat error: {e}") from e

    def _dispatch(self, parsed: ParsedResponse, emit, callback: EventCallback | None) -> str:
        """Execute the requested tool and return the observation text."""
        name = parsed.tool_name
        tool = self.registry.get(name)

        if tool is None:
            logger.warning(f"Model requested unknown tool: {name}")
            emit(AgentEvent(EventType.ERROR, f"The agent tried to use an unknown tool '{name}'."))
            return f"System Error: Tool '{name}' does not exist. Please use only available tools."

        if self.accountant.is_tool_limit_reached(name):
            limit = self.accountant.limit_for(name)
            logger.warning(f"Tool {name} limit reached ({limit})")
            emit(AgentEvent(EventType.ERROR, f"Tool '{name}' limit reached ({limit} calls)"))
            return (
                f"Tool '{name}' has reached its limit ({limit} calls). "
                "Use other tools or provide a final answer."
            )

        emit(AgentEvent(EventType.TOOL_CALL, name, tool_args=parsed.tool_args))
        tool_count, tool_limit = self.accountant.increment(name)

        if isinstance(tool, Confirmable):
            tool.set_event_callback(callback)

        logger.info(f"Executing tool: {name} with args: {_truncate_for_logging(parsed.tool_args, 200)}")
        try:
            observation = tool.execute(parsed.tool_args)
        except Exception as e:
            logger.warning(f"Tool {name} failed: {e}")
            observation = f"Tool Execution Error: {e}"
        logger.debug(f"Tool {name} result: {_truncate_for_logging(observation)}")

        emit(AgentEvent(EventType.OBSERVATION, observation))

        stats, total_calls, total_limit = self.accountant.usage_stats()
        emit(
            AgentEvent(
                EventType.TOOL_USAGE,
                tool_usage=ToolUsageEvent(
                    tool_name=name,
                    tool_current=tool_count,
                    tool_limit=tool_limit,
                    total_calls=total_calls,
                    total_limit=total_limit,
                    all_stats=stats,
                ),
            )
        )
        return observation


def apply_settings(agent: ReActAgent, settings: Settings) -> None:
    """Push configured limits, history size and framework into an agent."""
    limits = settings.tool_limits
    agent.set_default_limit(limits.default_limit)
    agent.set_total_limit(limits.total_limit)
    for tool_name, limit in limits.per_tool.items():
        agent.set_tool_limit(tool_name, limit)
    agent.set_max_history(settings.max_history)
    agent.set_framework(settings.framework)
