"""Base tool definitions and decorators."""

import inspect
import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar, runtime_checkable

from zap.core.errors import ToolError
from zap.core.typing import EventCallback, JSONDict


@dataclass
class ToolParameter:
    """Definition of a tool parameter."""

    name: str
    type: str  # "string", "number", "boolean", "object", "array"
    description: str
    required: bool = True
    default: Any = None


class Tool(ABC):
    """
    A named capability the agent can invoke.

    Arguments arrive as the raw text the model wrote between the parentheses
    of ``ACTION: name(...)``, normally a JSON object. ``execute`` returns the
    observation text or raises; the agent turns exceptions into observations.
    """

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def description(self) -> str: ...

    @property
    @abstractmethod
    def parameters(self) -> str:
        """Human/LLM readable parameter description (not validated)."""
        ...

    @abstractmethod
    def execute(self, args: str) -> str: ...

    def to_context_string(self) -> str:
        """Format tool for LLM context."""
        lines = [f"{self.name}"]
        lines.append(f"  {self.description}")
        lines.append(f"  Parameters: {self.parameters}")
        return "\n".join(lines)


@runtime_checkable
class Confirmable(Protocol):
    """Tool that can ask the user for approval mid-execution."""

    def set_event_callback(self, callback: EventCallback | None) -> None: ...


def parse_args(args: str) -> JSONDict:
    """
    Decode tool arguments as a JSON object.

    Raises:
        ToolError: Arguments are not a JSON object
    """
    if not args or not args.strip():
        return {}
    try:
        data = json.loads(args)
    except json.JSONDecodeError as e:
        raise ToolError(f"failed to parse arguments: {e}") from e
    if not isinstance(data, dict):
        raise ToolError(f"arguments must be a JSON object, got {type(data).__name__}")
    return data


class FunctionTool(Tool):
    """Tool backed by a plain function taking the JSON keys as keyword arguments."""

    def __init__(
        self,
        name: str,
        description: str,
        func: Callable[..., str],
        parameters: list[ToolParameter],
    ):
        self._name = name
        self._description = description
        self._func = func
        self.parameter_list = parameters

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> str:
        fields = {}
        for p in self.parameter_list:
            req = "required" if p.required else "optional"
            text = f"{p.type} ({req}) - {p.description}"
            if p.default is not None:
                text += f" (default: {p.default})"
            fields[p.name] = text
        return json.dumps(fields)

    def validate_args(self, args: JSONDict) -> tuple[bool, str | None]:
        """
        Validate tool arguments.

        Returns:
            (valid, error_message)
        """
        required_params = {p.name for p in self.parameter_list if p.required}
        missing = required_params - set(args.keys())
        if missing:
            return False, f"Missing required parameters: {', '.join(sorted(missing))}"

        valid_params = {p.name for p in self.parameter_list}
        unknown = set(args.keys()) - valid_params
        if unknown:
            return False, f"Unknown parameters: {', '.join(sorted(unknown))}"

        return True, None

    def execute(self, args: str) -> str:
        kwargs = parse_args(args)
        valid, error = self.validate_args(kwargs)
        if not valid:
            raise ToolError(f"Invalid arguments: {error}")
        return self._func(**kwargs)


F = TypeVar("F", bound=Callable[..., str])

_ANNOTATION_TYPES = {
    str: "string",
    int: "number",
    float: "number",
    bool: "boolean",
    dict: "object",
    list: "array",
}


def tool(name: str, description: str) -> Callable[[F], FunctionTool]:
    """
    Decorator turning a function into a FunctionTool.

    Parameter types come from annotations, descriptions from
    "param_name: description" lines in the docstring.

    Example:
        @tool("wait", "Pause before the next request")
        def wait(seconds: float = 1.0) -> str:
            ...
    """

    def decorator(func: F) -> FunctionTool:
        sig = inspect.signature(func)
        parameters = []

        for param_name, param in sig.parameters.items():
            param_type = _ANNOTATION_TYPES.get(param.annotation, "string")
            required = param.default is inspect.Parameter.empty
            default = None if required else param.default

            param_desc = f"Parameter {param_name}"
            for line in (func.__doc__ or "").split("\n"):
                head, sep, tail = line.partition(":")
                if sep and head.strip() == param_name:
                    param_desc = tail.strip()
                    break

            parameters.append(
                ToolParameter(
                    name=param_name,
                    type=param_type,
                    description=param_desc,
                    required=required,
                    default=default,
                )
            )

        return FunctionTool(name, description, func, parameters)

    return decorator
