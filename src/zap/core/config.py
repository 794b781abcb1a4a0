"""
Configuration management.

Loads settings from environment variables, .env file and .zap/config.json.
Prefix: ZAP_ (nested fields use "__", e.g. ZAP_TOOL_LIMITS__TOTAL_LIMIT)
"""

import json
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from zap.core.logging import get_logger

logger = get_logger("core.config")

DEFAULT_TOOL_CALL_LIMIT = 50
DEFAULT_TOTAL_LIMIT = 200
DEFAULT_MAX_HISTORY = 100
DEFAULT_CONFIRMATION_TIMEOUT = 300.0

# Lower limits for tools with external side effects
DEFAULT_PER_TOOL_LIMITS: dict[str, int] = {
    "http_request": 25,
    "write_file": 10,
    "read_file": 50,
    "list_files": 50,
    "variable": 100,
    "retry": 15,
    "wait": 20,
}

DEFAULT_ENVIRONMENT = """# Development environment
# Add your variables here, e.g.:
# BASE_URL: http://localhost:3000
# API_TOKEN: "{{env:API_TOKEN}}"
"""


class ToolLimitsConfig(BaseModel):
    """Per-session tool call limits."""

    default_limit: int = Field(default=DEFAULT_TOOL_CALL_LIMIT, description="Fallback per-tool limit")
    total_limit: int = Field(default=DEFAULT_TOTAL_LIMIT, description="Cap on all tool calls per turn")
    per_tool: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_PER_TOOL_LIMITS))

    @field_validator("default_limit")
    @classmethod
    def _default_limit_positive(cls, value: int) -> int:
        return value if value > 0 else DEFAULT_TOOL_CALL_LIMIT

    @field_validator("total_limit")
    @classmethod
    def _total_limit_positive(cls, value: int) -> int:
        return value if value > 0 else DEFAULT_TOTAL_LIMIT

    @field_validator("per_tool")
    @classmethod
    def _merge_per_tool(cls, value: dict[str, int]) -> dict[str, int]:
        # Configured entries override the defaults; invalid ones are dropped
        merged = dict(DEFAULT_PER_TOOL_LIMITS)
        merged.update({name: limit for name, limit in value.items() if limit > 0})
        return merged


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ZAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    # LLM provider
    ollama_url: str = Field(default="http://localhost:11434", description="Ollama endpoint")
    ollama_api_key: str = Field(default="", description="Bearer token for hosted Ollama")
    default_model: str = Field(default="qwen3-coder:480b-cloud", description="Chat model")
    llm_timeout: float = Field(default=60.0, description="Non-streaming request timeout (seconds)")

    # Storage
    data_dir: Path = Field(default=Path(".zap"), description="Project state directory")
    work_dir: Path = Field(default=Path("."), description="Root for file tools")

    # Agent
    framework: str = Field(default="", description="API framework of the project under test")
    max_history: int = Field(default=DEFAULT_MAX_HISTORY, description="Messages kept (0 = unlimited)")
    confirmation_timeout: float = Field(
        default=DEFAULT_CONFIRMATION_TIMEOUT, description="Seconds to wait for file write approval"
    )
    http_timeout: float = Field(default=30.0, description="Default http_request timeout (seconds)")
    tool_limits: ToolLimitsConfig = Field(default_factory=ToolLimitsConfig)

    @field_validator("max_history")
    @classmethod
    def _max_history_non_negative(cls, value: int) -> int:
        return max(0, value)

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.json"

    @property
    def environments_dir(self) -> Path:
        return self.data_dir / "environments"

    @property
    def log_path(self) -> Path:
        return self.data_dir / "zap.log"


def get_settings(config_file: Path | None = None) -> Settings:
    """
    Build settings, seeded from a JSON config file when one exists.

    Args:
        config_file: Explicit config path (default: .zap/config.json)
    """
    path = config_file or Settings().config_path
    if not path.exists():
        return Settings()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable config {path}: {e}")
        return Settings()

    if not isinstance(data, dict):
        logger.warning(f"Ignoring config {path}: expected a JSON object")
        return Settings()

    logger.debug(f"Loaded config from {path}")
    return Settings(**data)


def write_default_config(settings: Settings) -> list[Path]:
    """
    Create the .zap folder with config.json and a dev environment.

    Existing files are left alone.

    Returns:
        Paths that were created
    """
    created = []
    settings.environments_dir.mkdir(parents=True, exist_ok=True)
    (settings.data_dir / "requests").mkdir(parents=True, exist_ok=True)

    if not settings.config_path.exists():
        config = settings.model_dump(
            mode="json",
            include={"ollama_url", "ollama_api_key", "default_model", "framework", "tool_limits"},
        )
        settings.config_path.write_text(json.dumps(config, indent=2), encoding="utf-8")
        created.append(settings.config_path)

    dev_env = settings.environments_dir / "dev.yaml"
    if not dev_env.exists():
        dev_env.write_text(DEFAULT_ENVIRONMENT, encoding="utf-8")
        created.append(dev_env)

    variables = settings.data_dir / "variables.yaml"
    if not variables.exists():
        variables.write_text(yaml.safe_dump({}), encoding="utf-8")
        created.append(variables)

    return created
