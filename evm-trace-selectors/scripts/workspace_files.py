"""Plain file pass-throughs used by the trace tooling."""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_WORKSPACE = Path.home() / ".mcp-foundry-workspace"


def workspace_root() -> Path:
    override = os.environ.get("EVM_TRACE_WORKSPACE", "").strip()
    if override:
        return Path(override).expanduser()
    return DEFAULT_WORKSPACE


def file_exists(path: Path) -> bool:
    return path.is_file()


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def list_directory(path: Path) -> list[str]:
    """Return every file under ``path`` as a sorted relative path.

    Raises ``FileNotFoundError`` when ``path`` is not a directory.
    """
    if not path.is_dir():
        raise FileNotFoundError(str(path))
    files: list[str] = []
    for root, dirs, names in os.walk(path):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        base = Path(root)
        for name in names:
            files.append((base / name).relative_to(path).as_posix())
    return sorted(files)
