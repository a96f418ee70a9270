from __future__ import annotations

from pathlib import PurePosixPath

from .exceptions import PathValidationError


def ensure_relative(path: str) -> str:
    """Validate that *path* stays inside its root once written out and return it."""

    if not path or path.startswith("/") or "\\" in path:
        raise PathValidationError(f"Path '{path}' is not a relative POSIX path")
    parts = PurePosixPath(path).parts
    if any(part == ".." for part in parts):
        raise PathValidationError(f"Path '{path}' escapes the project root")
    return path
