"""Variables and environments for {{VAR}} substitution."""

import os
import re
import threading
from pathlib import Path

import yaml

from zap.core.errors import ToolError
from zap.core.logging import get_logger
from zap.tools.base import Tool, parse_args

logger = get_logger("tools.variables")

# {{NAME}} or {{env:NAME}}
VAR_PATTERN = re.compile(r"\{\{([^}]+)\}\}")


def resolve_env_refs(text: str) -> str:
    """Replace {{env:NAME}} with process environment values, keeping unknown ones."""

    def replace(match: re.Match) -> str:
        name = match.group(1).strip()
        if name.startswith("env:"):
            value = os.environ.get(name[len("env:") :])
            if value:
                return value
        return match.group(0)

    return VAR_PATTERN.sub(replace, text)


def load_environment(path: Path) -> dict[str, str]:
    """
    Load a YAML environment file.

    Raises:
        ToolError: File missing or not a mapping
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ToolError(f"failed to read environment file: {e}") from e
    except yaml.YAMLError as e:
        raise ToolError(f"failed to parse environment YAML: {e}") from e
    if not isinstance(data, dict):
        raise ToolError(f"environment {path.name} must be a mapping of NAME: value")
    return {str(k): resolve_env_refs(str(v)) for k, v in data.items()}


class VariableStore:
    """
    Session and global variables.

    Lookup order: session, global, active environment. Global variables are
    persisted to a YAML file when one is configured.
    """

    def __init__(self, data_dir: Path | None = None):
        self._lock = threading.Lock()
        self._session: dict[str, str] = {}
        self._global: dict[str, str] = {}
        self._environment: dict[str, str] = {}
        self.environment_name = ""
        self._data_dir = data_dir
        if self._globals_path is not None and self._globals_path.exists():
            self._load_globals()

    @property
    def _globals_path(self) -> Path | None:
        return self._data_dir / "variables.yaml" if self._data_dir else None

    def _load_globals(self) -> None:
        try:
            data = yaml.safe_load(self._globals_path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load global variables: {e}")
            return
        if isinstance(data, dict):
            self._global = {str(k): str(v) for k, v in data.items()}

    def _save_globals(self) -> None:
        if self._globals_path is None:
            return
        self._globals_path.parent.mkdir(parents=True, exist_ok=True)
        self._globals_path.write_text(yaml.safe_dump(self._global, sort_keys=True), encoding="utf-8")

    def set(self, name: str, value: str, scope: str = "session") -> None:
        with self._lock:
            if scope == "global":
                self._global[name] = value
                self._save_globals()
            else:
                self._session[name] = value

    def get(self, name: str) -> str | None:
        with self._lock:
            for scope in (self._session, self._global, self._environment):
                if name in scope:
                    return scope[name]
            return None

    def delete(self, name: str) -> bool:
        with self._lock:
            removed = self._session.pop(name, None) is not None
            if self._global.pop(name, None) is not None:
                removed = True
                self._save_globals()
            return removed

    def list(self) -> dict[str, dict[str, str]]:
        with self._lock:
            return {
                "session": dict(self._session),
                "global": dict(self._global),
                "environment": dict(self._environment),
            }

    def load_environment(self, name: str) -> None:
        """Activate .zap/environments/<name>.yaml."""
        if self._data_dir is None:
            raise ToolError("no data directory configured for environments")
        env_dir = self._data_dir / "environments"
        path = env_dir / f"{name}.yaml"
        if not path.exists():
            path = env_dir / f"{name}.yml"
        env = load_environment(path)
        with self._lock:
            self._environment = env
            self.environment_name = name
        logger.info(f"Loaded environment {name} ({len(env)} variables)")

    def substitute(self, text: str) -> str:
        """Replace {{NAME}} and {{env:NAME}} placeholders; unknown ones stay as written."""

        def replace(match: re.Match) -> str:
            name = match.group(1).strip()
            if name.startswith("env:"):
                return os.environ.get(name[len("env:") :]) or match.group(0)
            value = self.get(name)
            return value if value is not None else match.group(0)

        return VAR_PATTERN.sub(replace, text)


class VariableTool(Tool):
    """Let the model store values between requests."""

    def __init__(self, store: VariableStore):
        self.store = store

    @property
    def name(self) -> str:
        return "variable"

    @property
    def description(self) -> str:
        return (
            "Manage variables used as {{NAME}} placeholders in requests. "
            "Actions: set, get, delete, list, load_env."
        )

    @property
    def parameters(self) -> str:
        return (
            '{"action": "set|get|delete|list|load_env (required)", "name": "string", '
            '"value": "string (for set)", "scope": "session|global (default: session)"}'
        )

    def execute(self, args: str) -> str:
        params = parse_args(args)
        action = str(params.get("action", "")).lower()
        name = str(params.get("name", ""))

        if action == "list":
            scopes = self.store.list()
            lines = []
            for scope, values in scopes.items():
                for key in sorted(values):
                    lines.append(f"[{scope}] {key} = {values[key]}")
            return "\n".join(lines) if lines else "No variables defined."

        if not name:
            raise ToolError("name is required")

        if action == "set":
            if "value" not in params:
                raise ToolError("value is required for set")
            scope = str(params.get("scope", "session")).lower()
            if scope not in ("session", "global"):
                raise ToolError(f"unknown scope '{scope}' (use session or global)")
            self.store.set(name, str(params["value"]), scope)
            return f"Set {scope} variable {name}"

        if action == "get":
            value = self.store.get(name)
            if value is None:
                return f"Variable {name} is not defined."
            return value

        if action == "delete":
            if self.store.delete(name):
                return f"Deleted variable {name}"
            return f"Variable {name} is not defined."

        if action == "load_env":
            self.store.load_environment(name)
            return f"Environment {name} loaded."

        raise ToolError(f"unknown action '{action}'")
