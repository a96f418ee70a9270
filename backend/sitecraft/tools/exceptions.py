from __future__ import annotations


class ToolError(RuntimeError):
    """Base error for file tree tooling."""


class PathValidationError(ToolError):
    """Raised when a file path would escape the archive or export root."""
