"""Parse ReAct-style decisions out of free-form LLM replies."""

from collections.abc import Iterable
from dataclasses import dataclass

from zap.core.logging import get_logger

logger = get_logger("tools.parser")

THOUGHT_MARKER = "thought:"
ACTION_MARKERS = ("action:", "action :", "action")
FINAL_ANSWER_MARKERS = ("final answer:", "final answer :", "finalanswer:")

# Markdown decoration models like to wrap tool names in
_NAME_DECORATION = "`* \t\r\n"


@dataclass(frozen=True)
class ParsedResponse:
    """Structured decision extracted from one reply."""

    thought: str = ""
    tool_name: str = ""
    tool_args: str = ""
    final_answer: str = ""

    @property
    def is_tool_call(self) -> bool:
        return bool(self.tool_name)


class ResponseParser:
    """
    Extract thought, tool call and final answer from LLM text.

    Expected format:

        Thought: <reasoning>
        ACTION: tool_name({"param": "value"})

    or

        Final Answer: <response>

    Marker matching is case-insensitive. Parsing never fails: text with no
    recognizable structure becomes the final answer.
    """

    @staticmethod
    def parse(text: str, tool_names: Iterable[str] = ()) -> ParsedResponse:
        """
        Parse one reply.

        Args:
            text: Raw LLM reply
            tool_names: Registered tool names, used to spot calls written
                without the ACTION marker

        Returns:
            ParsedResponse; a tool call takes precedence over a final answer
        """
        thought = ResponseParser.extract_thought(text)
        tool_name, tool_args = ResponseParser.extract_action(text)

        if not tool_name:
            tool_name, tool_args = ResponseParser.extract_raw_tool_call(text, tool_names)
            if tool_name:
                logger.debug(f"Detected tool call without ACTION marker: {tool_name}")

        final_answer = ResponseParser.extract_final_answer(text)

        if tool_name:
            final_answer = ""
        elif not final_answer:
            final_answer = text

        return ParsedResponse(
            thought=thought,
            tool_name=tool_name,
            tool_args=tool_args,
            final_answer=final_answer,
        )

    @staticmethod
    def extract_thought(text: str) -> str:
        """Text after "Thought:" up to the action or final answer marker."""
        lower = text.lower()
        idx = lower.find(THOUGHT_MARKER)
        if idx == -1:
            return ""

        start = idx + len(THOUGHT_MARKER)
        end = len(text)

        action_idx = lower.find("action", start)
        final_idx = lower.find("final answer", start)

        if action_idx != -1 and (final_idx == -1 or action_idx < final_idx):
            end = action_idx
        elif final_idx != -1:
            end = final_idx

        return text[start:end].strip()

    @staticmethod
    def extract_action(text: str) -> tuple[str, str]:
        """
        Tool name and arguments from an ACTION marker.

        The name must be a single token directly followed by "(".

        Returns:
            (tool_name, tool_args), empty strings when there is no call
        """
        lower = text.lower()

        for marker in ACTION_MARKERS:
            idx = lower.find(marker)
            if idx != -1:
                break
        else:
            return "", ""

        action_part = text[idx + len(marker) :].strip()
        paren = action_part.find("(")
        if paren == -1:
            return "", ""

        tool_name = action_part[:paren].strip(_NAME_DECORATION)
        if not tool_name or any(ch.isspace() for ch in tool_name):
            return "", ""

        return tool_name, extract_json_args(action_part[paren:])

    @staticmethod
    def extract_raw_tool_call(text: str, tool_names: Iterable[str]) -> tuple[str, str]:
        """
        Find ``name(`` for a registered tool anywhere in the text.

        Longer names are tried first so a tool whose name is a suffix of
        another (``user`` vs ``get_user``) never steals its call.

        Returns:
            (tool_name, tool_args), empty strings when nothing matches
        """
        for name in sorted(set(tool_names), key=lambda n: (-len(n), n)):
            if not name:
                continue
            pattern = name + "("
            idx = text.find(pattern)
            while idx != -1:
                preceded_by_word = idx > 0 and (text[idx - 1].isalnum() or text[idx - 1] == "_")
                if not preceded_by_word:
                    args = extract_json_args(text[idx + len(name) :])
                    if args:
                        return name, args
                idx = text.find(pattern, idx + 1)
        return "", ""

    @staticmethod
    def extract_final_answer(text: str) -> str:
        """Trimmed text after the first "Final Answer:" marker variant."""
        lower = text.lower()
        for marker in FINAL_ANSWER_MARKERS:
            idx = lower.find(marker)
            if idx != -1:
                return text[idx + len(marker) :].strip()
        return ""


def extract_json_args(text: str) -> str:
    """
    Extract the argument text of a call, starting at its "(".

    Scans for the first balanced JSON object or array outside string
    literals and returns it verbatim. If the closing ")" comes first, the
    trimmed text between the parentheses is returned instead.

    Returns:
        Argument text, or "" when the call is not closed
    """
    if not text or text[0] != "(":
        return ""

    depth = 0
    in_string = False
    escaped = False
    start = -1

    for i, ch in enumerate(text):
        if escaped:
            escaped = False
            continue
        if in_string:
            if ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in "{[":
            if depth == 0:
                start = i
            depth += 1
        elif ch in "}]":
            if depth == 0:
                continue
            depth -= 1
            if depth == 0 and start != -1:
                return text[start : i + 1]
        elif ch == ")" and depth == 0:
            return text[1:i].strip()

    return ""
