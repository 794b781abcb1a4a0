"""Read-only project file tools."""

import fnmatch
import os
from pathlib import Path

from zap.core.errors import ToolError
from zap.tools.base import Tool, parse_args

MAX_READ_BYTES = 100 * 1024
MAX_LIST_ENTRIES = 100
SKIPPED_DIRS = {"node_modules", "vendor", ".git"}


def validate_path_within_work_dir(path: str, work_dir: Path) -> Path:
    """
    Resolve a path and make sure it stays inside the work directory.

    Raises:
        ToolError: Path escapes the work directory
    """
    root = work_dir.resolve()
    target = Path(path)
    if not target.is_absolute():
        target = root / target
    target = target.resolve()
    if target != root and root not in target.parents:
        raise ToolError("access denied: path outside project directory")
    return target


class ReadFileTool(Tool):
    def __init__(self, work_dir: Path):
        self.work_dir = Path(work_dir)

    @property
    def name(self) -> str:
        return "read_file"

    @property
    def description(self) -> str:
        return "Read contents of a file. Use for viewing source code, configs, etc."

    @property
    def parameters(self) -> str:
        return '{"path": "string (required) - file path to read"}'

    def execute(self, args: str) -> str:
        params = parse_args(args)
        path = params.get("path")
        if not path:
            raise ToolError("path is required")

        target = validate_path_within_work_dir(str(path), self.work_dir)
        if not target.is_file():
            raise ToolError(f"file not found: {path}")
        if target.stat().st_size > MAX_READ_BYTES:
            raise ToolError("file too large (>100KB), use list_files to narrow down the file")
        try:
            return target.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ToolError(f"failed to read file: {e}") from e


class ListFilesTool(Tool):
    def __init__(self, work_dir: Path):
        self.work_dir = Path(work_dir)

    @property
    def name(self) -> str:
        return "list_files"

    @property
    def description(self) -> str:
        return "List files in a directory. Supports glob patterns like **/*.py, *.json"

    @property
    def parameters(self) -> str:
        return (
            '{"path": "string - directory path (default: .)", '
            '"pattern": "string - glob pattern (e.g. **/*.py)"}'
        )

    def execute(self, args: str) -> str:
        params = parse_args(args)
        base = validate_path_within_work_dir(str(params.get("path") or "."), self.work_dir)
        if not base.is_dir():
            raise ToolError(f"not a directory: {params.get('path') or '.'}")

        pattern = str(params.get("pattern") or "")
        if pattern.startswith(("/", "\\")) or ".." in Path(pattern).parts:
            raise ToolError("access denied: pattern must stay inside the project directory")

        if not pattern:
            entries = []
            for entry in sorted(base.iterdir(), key=lambda p: p.name):
                entries.append(entry.name + "/" if entry.is_dir() else entry.name)
                if len(entries) >= MAX_LIST_ENTRIES:
                    break
            files = entries
        elif "**" in pattern:
            files = self._walk(base, pattern)
        else:
            inside = [p for p in sorted(base.glob(pattern)) if self._inside(p)]
            files = [self._relative(p) for p in inside[:MAX_LIST_ENTRIES]]

        if not files:
            return "No files found"
        result = "\n".join(files)
        if len(files) >= MAX_LIST_ENTRIES:
            result += f"\n... (showing first {MAX_LIST_ENTRIES} results)"
        return result

    def _walk(self, base: Path, pattern: str) -> list[str]:
        prefix, _, suffix = pattern.partition("**")
        start = base / prefix.strip("/") if prefix.strip("/") else base
        start = validate_path_within_work_dir(str(start), self.work_dir)
        suffix = suffix.lstrip("/")

        matches: list[str] = []
        for dirpath, dirnames, filenames in os.walk(start):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith(".") and d not in SKIPPED_DIRS)
            for filename in sorted(filenames):
                if suffix and not fnmatch.fnmatch(filename, suffix):
                    continue
                if not self._inside(Path(dirpath) / filename):
                    continue
                matches.append(self._relative(Path(dirpath) / filename))
                if len(matches) >= MAX_LIST_ENTRIES:
                    return matches
        return matches

    def _inside(self, path: Path) -> bool:
        try:
            validate_path_within_work_dir(str(path), self.work_dir)
        except ToolError:
            return False
        return True

    def _relative(self, path: Path) -> str:
        try:
            return str(path.relative_to(self.work_dir.resolve()))
        except ValueError:
            return str(path)
