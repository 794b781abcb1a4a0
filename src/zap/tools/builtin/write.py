"""File writing with a diff shown to the user for approval."""

import difflib
from pathlib import Path

from zap.core.errors import ToolError
from zap.core.logging import get_logger
from zap.core.types import AgentEvent, EventType, FileConfirmation
from zap.core.typing import EventCallback
from zap.tools.base import Tool, parse_args
from zap.tools.builtin.files import validate_path_within_work_dir
from zap.tools.confirm import ConfirmationManager

logger = get_logger("tools.write")

MAX_WRITE_BYTES = 1024 * 1024
DIFF_CONTEXT_LINES = 3

REJECTED_MESSAGE = "User rejected the file changes. The file was not modified."
UNCHANGED_MESSAGE = "File content is already identical, no changes needed."


def unified_diff(path: str, original: str, modified: str) -> str:
    lines = difflib.unified_diff(
        original.splitlines(keepends=True),
        modified.splitlines(keepends=True),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
        n=DIFF_CONTEXT_LINES,
    )
    return "".join(line if line.endswith("\n") else line + "\n" for line in lines)


class WriteFileTool(Tool):
    """
    Write or modify a file inside the work directory.

    Execution emits a confirmation_required event carrying the diff, then
    blocks the agent thread until the user answers through the
    ConfirmationManager. A timeout counts as a rejection.
    """

    def __init__(self, work_dir: Path, confirm: ConfirmationManager):
        self.work_dir = Path(work_dir)
        self.confirm = confirm
        self._callback: EventCallback | None = None

    @property
    def name(self) -> str:
        return "write_file"

    @property
    def description(self) -> str:
        return (
            "Write or modify a file. Shows a diff and requires user confirmation "
            "before writing. Use for code fixes."
        )

    @property
    def parameters(self) -> str:
        return (
            '{"path": "string (required) - file path to write", '
            '"content": "string (required) - content to write"}'
        )

    def set_event_callback(self, callback: EventCallback | None) -> None:
        self._callback = callback

    def execute(self, args: str) -> str:
        params = parse_args(args)
        path = params.get("path")
        content = params.get("content")
        if not path:
            raise ToolError("path is required")
        if not isinstance(content, str) or not content:
            raise ToolError("content is required")

        target = validate_path_within_work_dir(str(path), self.work_dir)
        if len(content.encode("utf-8")) > MAX_WRITE_BYTES:
            raise ToolError("content too large (>1MB)")

        is_new_file = not target.exists()
        original = ""
        if not is_new_file:
            try:
                original = target.read_text(encoding="utf-8")
            except OSError as e:
                raise ToolError(f"failed to read existing file: {e}") from e

        if original == content:
            return UNCHANGED_MESSAGE

        if self._callback is not None:
            self._callback(
                AgentEvent(
                    EventType.CONFIRMATION_REQUIRED,
                    file_confirmation=FileConfirmation(
                        path=str(path),
                        is_new_file=is_new_file,
                        diff=unified_diff(str(path), original, content),
                    ),
                )
            )

        if not self.confirm.request_confirmation():
            logger.info(f"Write to {path} rejected")
            return REJECTED_MESSAGE

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ToolError(f"failed to write file: {e}") from e

        logger.info(f"Wrote {len(content)} chars to {path}")
        if is_new_file:
            return f"Successfully created file: {path}"
        return f"Successfully modified file: {path}"
