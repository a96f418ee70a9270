"""In-memory staging structure for a full set of output files.

A ``VirtualFileTree`` is assembled before anything is persisted or shipped. It
is then flattened into ``generated_files`` rows, written to an archive, or
handed to the deployment orchestrator.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from sitecraft.models.generation import FileKind, GeneratedFileCreate


@dataclass(slots=True, frozen=True)
class VirtualFile:
    path: str
    content: str
    kind: FileKind = FileKind.COMPONENT


class VirtualFileTree:
    """Ordered mapping of relative path to file content and kind.

    Paths are used verbatim; callers own the relative-path scheme. Writing an
    existing path replaces its content and kind but keeps the position of the
    first insertion.
    """

    def __init__(self) -> None:
        self._files: dict[str, VirtualFile] = {}

    @classmethod
    def from_files(cls, files: Iterable[GeneratedFileCreate]) -> VirtualFileTree:
        tree = cls()
        for file in files:
            tree.add_file(file.file_path, file.content, file.file_type)
        return tree

    def add_file(self, path: str, content: str, kind: FileKind = FileKind.COMPONENT) -> None:
        self._files[path] = VirtualFile(path=path, content=content, kind=FileKind(kind))

    def get_file(self, path: str) -> VirtualFile | None:
        return self._files.get(path)

    def remove_file(self, path: str) -> None:
        self._files.pop(path, None)

    def entries(self) -> Iterator[tuple[str, VirtualFile]]:
        """Yield ``(path, file)`` pairs in insertion order.

        The snapshot is taken when iteration starts, so callers may add or
        remove files while walking the tree.
        """
        yield from tuple(self._files.items())

    def paths(self) -> list[str]:
        return list(self._files)

    def to_record(self) -> dict[str, str]:
        return {path: file.content for path, file in self._files.items()}

    def to_generated_files(self) -> list[GeneratedFileCreate]:
        return [
            GeneratedFileCreate(file_path=path, content=file.content, file_type=file.kind)
            for path, file in self._files.items()
        ]

    @property
    def size(self) -> int:
        return len(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def __iter__(self) -> Iterator[tuple[str, VirtualFile]]:
        return self.entries()
