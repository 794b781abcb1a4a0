"""Tests for the ReAct agent loop."""

import threading

import pytest
from fakes import EchoTool, ScriptedLLM

from zap.agents.react import (
    EMPTY_RESPONSE_ANSWER,
    ReActAgent,
    apply_settings,
)
from zap.core.config import Settings
from zap.core.errors import (
    AgentError,
    LLMError,
    ToolError,
    ToolNotFoundError,
    TurnCancelled,
    ZapError,
)
from zap.core.types import EventType, Role
from zap.tools.base import Tool

TOOL_CALL = 'Thought: check it\nACTION: echo({"x": 1})'
FINAL = "Thought: all done\nFinal Answer: done"


def make_agent(replies, *tools, **kwargs) -> tuple[ReActAgent, ScriptedLLM]:
    llm = ScriptedLLM(replies)
    agent = ReActAgent(llm, **kwargs)
    for tool in tools:
        agent.register_tool(tool)
    return agent, llm


class TestProcessMessage:
    """Blocking turns without events."""

    def test_direct_answer(self):
        agent, llm = make_agent([FINAL])
        assert agent.process_message("hi") == "done"
        history = agent.get_history()
        assert [m.role for m in history] == [Role.USER, Role.ASSISTANT]
        assert history[1].content == FINAL

    def test_tool_then_answer(self):
        echo = EchoTool()
        agent, llm = make_agent([TOOL_CALL, FINAL], echo)

        assert agent.process_message("ping the API") == "done"
        assert echo.calls == ['{"x": 1}']

        history = agent.get_history()
        assert [m.role for m in history] == [Role.USER, Role.ASSISTANT, Role.USER, Role.ASSISTANT]
        assert history[1].content == TOOL_CALL
        assert history[2].content == "Observation: ok"

        # Second call sees system prompt plus the first three messages
        assert len(llm.calls) == 2
        assert llm.calls[1][0]["role"] == "system"
        assert llm.calls[1][-1] == {"role": "user", "content": "Observation: ok"}

    def test_system_prompt_lists_tools(self):
        agent, llm = make_agent([FINAL], EchoTool())
        agent.process_message("hi")
        system = llm.calls[0][0]["content"]
        assert "echo test tool" in system
        assert system.rstrip().endswith("Never write both an ACTION and a Final Answer in one response.")

    def test_plain_reply_is_final_answer(self):
        agent, _ = make_agent(["Just text"])
        assert agent.process_message("hi") == "Just text"

    def test_unknown_tool_observation(self):
        agent, _ = make_agent(["ACTION: nope({})", FINAL])
        assert agent.process_message("hi") == "done"
        observation = agent.get_history()[2].content
        assert observation == (
            "Observation: System Error: Tool 'nope' does not exist. Please use only available tools."
        )
        assert agent.total_usage()[0] == 0

    def test_tool_error_observation(self):
        agent, _ = make_agent([TOOL_CALL, FINAL], EchoTool(error=ToolError("boom")))
        assert agent.process_message("hi") == "done"
        assert agent.get_history()[2].content == "Observation: Tool Execution Error: boom"

    def test_per_tool_limit(self):
        echo = EchoTool()
        agent, _ = make_agent([TOOL_CALL, TOOL_CALL, FINAL], echo)
        agent.set_tool_limit("echo", 1)

        assert agent.process_message("hi") == "done"
        assert len(echo.calls) == 1
        assert agent.get_history()[4].content == (
            "Observation: Tool 'echo' has reached its limit (1 calls). "
            "Use other tools or provide a final answer."
        )

    def test_total_limit_stops_loop(self):
        echo = EchoTool()
        agent, llm = make_agent([TOOL_CALL, TOOL_CALL, TOOL_CALL], echo)
        agent.set_total_limit(2)

        result = agent.process_message("hi")
        assert "maximum total tool calls (2)" in result
        assert len(llm.calls) == 2
        assert len(echo.calls) == 2

    def test_total_limit_of_one_skips_second_model_call(self):
        echo = EchoTool()
        agent, llm = make_agent([TOOL_CALL, TOOL_CALL, FINAL], echo)
        agent.set_total_limit(1)

        result = agent.process_message("hi")
        assert result.startswith("I reached the maximum total tool calls (1)")
        assert len(llm.calls) == 1
        assert len(echo.calls) == 1
        # The limit stop is not recorded as an assistant reply
        assert len(agent.get_history()) == 3

    def test_counters_reset_each_turn(self):
        echo = EchoTool()
        agent, _ = make_agent([TOOL_CALL, FINAL, TOOL_CALL, FINAL], echo)
        agent.set_tool_limit("echo", 1)
        agent.process_message("first")
        agent.process_message("second")
        assert len(echo.calls) == 2

    def test_empty_reply(self):
        agent, _ = make_agent([""])
        assert agent.process_message("hi") == EMPTY_RESPONSE_ANSWER

    def test_model_failure_raises_agent_error(self):
        agent, _ = make_agent([LLMError("connection refused")])
        with pytest.raises(AgentError, match="connection refused"):
            agent.process_message("hi")

    def test_history_limit(self):
        agent, _ = make_agent([FINAL, FINAL, FINAL], max_history=4)
        for text in ("a", "b", "c"):
            agent.process_message(text)
        history = agent.get_history()
        assert len(history) == 4
        assert history[0].content == "b"


class TestProcessMessageWithEvents:
    """Event reporting, cancellation and confirmable tools."""

    def test_event_sequence(self):
        agent, _ = make_agent([TOOL_CALL, "Final Answer: done"], EchoTool())
        events = []
        agent.process_message_with_events("hi", events.append)

        types = [e.type for e in events if e.type != EventType.STREAMING]
        assert types == [
            EventType.THINKING,
            EventType.THINKING,
            EventType.TOOL_CALL,
            EventType.OBSERVATION,
            EventType.TOOL_USAGE,
            EventType.THINKING,
            EventType.ANSWER,
        ]
        assert events[0].content == "reasoning (calls: 0)..."

        tool_call = next(e for e in events if e.type == EventType.TOOL_CALL)
        assert tool_call.content == "echo"
        assert tool_call.tool_args == '{"x": 1}'

        usage = next(e for e in events if e.type == EventType.TOOL_USAGE).tool_usage
        assert usage.tool_name == "echo"
        assert usage.tool_current == 1
        assert usage.total_calls == 1
        assert [s.name for s in usage.all_stats] == ["echo"]

        assert events[-1].content == "done"

    def test_streaming_chunks_forwarded(self):
        agent, _ = make_agent([FINAL])
        events = []
        agent.process_message_with_events("hi", events.append)
        chunks = [e.content for e in events if e.type == EventType.STREAMING]
        assert "".join(chunks) == FINAL

    def test_model_failure_emits_error(self):
        agent, _ = make_agent([LLMError("down")])
        events = []
        with pytest.raises(AgentError):
            agent.process_message_with_events("hi", events.append)
        assert events[-1].type == EventType.ERROR
        assert "Connection Error" in events[-1].content

    def test_callback_error_is_not_a_model_failure(self):
        agent, _ = make_agent([FINAL])
        events = []

        def callback(event):
            events.append(event)
            if event.type == EventType.STREAMING:
                raise RuntimeError("display broke")

        with pytest.raises(RuntimeError, match="display broke"):
            agent.process_message_with_events("hi", callback)
        assert not any(e.type == EventType.ERROR for e in events)

    def test_empty_reply_emits_error(self):
        agent, _ = make_agent([""])
        events = []
        assert agent.process_message_with_events("hi", events.append) == EMPTY_RESPONSE_ANSWER
        assert events[-1].type == EventType.ERROR

    def test_total_limit_emits_error(self):
        agent, _ = make_agent([TOOL_CALL], EchoTool())
        agent.set_total_limit(1)
        events = []
        result = agent.process_message_with_events("hi", events.append)
        assert events[-1].type == EventType.ERROR
        assert events[-1].content == result

    def test_cancel_before_start(self):
        agent, llm = make_agent([FINAL])
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(TurnCancelled):
            agent.process_message_with_events("hi", lambda e: None, cancel=cancel)
        assert llm.calls == []

    def test_cancel_is_not_an_agent_error(self):
        agent, _ = make_agent([FINAL])
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(TurnCancelled) as exc_info:
            agent.process_message_with_events("hi", lambda e: None, cancel=cancel)
        assert not isinstance(exc_info.value, AgentError)
        assert isinstance(exc_info.value, ZapError)

    def test_cancel_between_iterations(self):
        cancel = threading.Event()

        class CancellingTool(EchoTool):
            def execute(self, args: str) -> str:
                cancel.set()
                return super().execute(args)

        agent, llm = make_agent([TOOL_CALL, FINAL], CancellingTool())
        with pytest.raises(TurnCancelled):
            agent.process_message_with_events("hi", lambda e: None, cancel=cancel)
        assert len(llm.calls) == 1
        # The finished tool step is still recorded
        assert len(agent.get_history()) == 3

    def test_confirmable_tool_receives_callback(self):
        class ConfirmTool(EchoTool):
            callback = None

            def set_event_callback(self, callback):
                self.callback = callback

        tool = ConfirmTool()
        agent, _ = make_agent([TOOL_CALL, FINAL], tool)
        events = []
        agent.process_message_with_events("hi", events.append)
        assert tool.callback == events.append


class TestAgentSurface:
    """Direct tool execution and configuration."""

    def test_execute_tool(self):
        echo = EchoTool(result="pong")
        agent, _ = make_agent([], echo)
        assert agent.execute_tool("echo", "{}") == "pong"
        assert agent.total_usage()[0] == 0

    def test_execute_missing_tool(self):
        agent, _ = make_agent([])
        with pytest.raises(ToolNotFoundError):
            agent.execute_tool("nope", "{}")

    def test_execute_tool_hands_turn_callback_to_confirmable_tools(self):
        class ConfirmTool(EchoTool):
            def __init__(self):
                super().__init__("confirmer")
                self.seen = []

            def set_event_callback(self, callback):
                self.seen.append(callback)

        tool = ConfirmTool()
        agent, _ = make_agent([TOOL_CALL, FINAL])
        agent.register_tool(tool)

        class Relay(EchoTool):
            def execute(self, args: str) -> str:
                return agent.execute_tool("confirmer", args)

        agent.register_tool(Relay())
        events = []
        agent.process_message_with_events("hi", events.append)
        assert tool.seen == [events.append]

        # Outside a turn there is no callback to hand over
        agent.execute_tool("confirmer", "{}")
        assert tool.seen[-1] is None

    def test_parse_response_uses_registered_names(self):
        agent, _ = make_agent([], EchoTool())
        parsed = agent.parse_response('sure: echo({"x": 2})')
        assert parsed.tool_name == "echo"

    def test_framework_in_prompt(self):
        agent, _ = make_agent([])
        agent.set_framework("FastAPI")
        assert "FastAPI" in agent.build_system_prompt()

    def test_apply_settings(self):
        agent, _ = make_agent([])
        settings = Settings(
            _env_file=None,
            framework="Express",
            max_history=10,
            tool_limits={"default_limit": 7, "total_limit": 30, "per_tool": {"echo": 3}},
        )
        apply_settings(agent, settings)
        assert agent.accountant.default_limit == 7
        assert agent.accountant.limit_for("echo") == 3
        assert agent.accountant.limit_for("write_file") == 10
        assert agent.total_usage() == (0, 30)
        assert agent.history.max_messages == 10
        assert "Express" in agent.build_system_prompt()

    def test_is_a_tool_base(self):
        assert isinstance(EchoTool(), Tool)
