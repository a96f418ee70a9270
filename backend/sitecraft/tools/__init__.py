"""Tools for assembling and shipping generated file sets.

This package contains utilities for:
- The in-memory file tree that stages a whole project (file_tree.py)
- Repairs applied to model-produced files (sanitizer.py)
- Zip export of a file tree (archive.py)
- Path validation for anything written outside the tree (path_utils.py)
- Exception types for tool operations (exceptions.py)
"""

from .archive import build_project_archive
from .exceptions import PathValidationError, ToolError
from .file_tree import VirtualFile, VirtualFileTree
from .path_utils import ensure_relative
from .sanitizer import SanitizeReport, is_file_truncated, sanitize_tree

__all__ = [
    # File tree
    "VirtualFile",
    "VirtualFileTree",
    # Export and repair
    "build_project_archive",
    "sanitize_tree",
    "is_file_truncated",
    "SanitizeReport",
    # Exceptions
    "ToolError",
    "PathValidationError",
    # Utilities
    "ensure_relative",
]
