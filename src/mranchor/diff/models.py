"""Data models for merge request diffs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


class DiffLineType(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    CONTEXT = "context"
    META = "meta"


_PREFIX = {
    DiffLineType.ADD: "+",
    DiffLineType.REMOVE: "-",
    DiffLineType.CONTEXT: " ",
    DiffLineType.META: "",
}


@dataclass(frozen=True)
class FileDiff:
    """One file's unified diff as delivered by the merge request diffs endpoint."""

    old_path: str
    new_path: str
    diff: str = ""
    new_file: bool = False
    deleted_file: bool = False
    renamed_file: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FileDiff":
        new_path = data.get("new_path") or data.get("old_path") or ""
        return cls(
            old_path=data.get("old_path") or new_path,
            new_path=new_path,
            diff=data.get("diff") or "",
            new_file=bool(data.get("new_file", False)),
            deleted_file=bool(data.get("deleted_file", False)),
            renamed_file=bool(data.get("renamed_file", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "old_path": self.old_path,
            "new_path": self.new_path,
            "new_file": self.new_file,
            "deleted_file": self.deleted_file,
            "renamed_file": self.renamed_file,
            "diff": self.diff,
        }


@dataclass(frozen=True, slots=True)
class ParsedDiffLine:
    """A single line of a hunk with its absolute file line numbers."""

    type: DiffLineType
    content: str
    old_line: Optional[int] = None
    new_line: Optional[int] = None

    def to_text(self) -> str:
        return _PREFIX[self.type] + self.content


@dataclass(frozen=True)
class ParsedHunk:
    header: str
    old_start_line: int
    old_line_count: int
    new_start_line: int
    new_line_count: int
    lines: Tuple[ParsedDiffLine, ...] = ()
    is_collapsed: bool = False

    def to_text(self) -> str:
        """Reserialize the hunk exactly as it appeared in the diff."""
        return "\n".join([self.header, *(line.to_text() for line in self.lines)])


@dataclass(frozen=True)
class ContextRange:
    """Inclusive, 1-based new-side line window around a hunk."""

    start_line: int
    end_line: int
    file_start_boundary: bool = False
    file_end_boundary: bool = False


@dataclass(frozen=True)
class ExpandedHunk(ParsedHunk):
    """A hunk widened with surrounding file content.

    ``lines`` holds the full expanded sequence (pre-context, the original
    hunk lines, post-context); the header is recomputed to match it.
    """

    pre_context: Tuple[ParsedDiffLine, ...] = ()
    post_context: Tuple[ParsedDiffLine, ...] = ()
    context_range: Optional[ContextRange] = None


@dataclass(frozen=True)
class ParsedFileDiff:
    file_path: str
    old_path: str
    is_new: bool = False
    is_deleted: bool = False
    is_renamed: bool = False
    hunks: Tuple[ParsedHunk, ...] = ()

    def iter_lines(self):
        """Yield ``(hunk_index, line_index, line)`` for every non-meta line."""
        for h_idx, hunk in enumerate(self.hunks):
            for l_idx, line in enumerate(hunk.lines):
                if line.type is not DiffLineType.META:
                    yield h_idx, l_idx, line


@dataclass(frozen=True)
class LineMapping:
    """Old/new line correspondence for lines present on both sides."""

    new_to_old: Mapping[int, int] = field(default_factory=lambda: MappingProxyType({}))
    old_to_new: Mapping[int, int] = field(default_factory=lambda: MappingProxyType({}))


def split_lines(text: str) -> Tuple[str, ...]:
    """Split file text into lines; a final newline does not start a new line."""
    if text.endswith("\n"):
        text = text[:-1]
    return tuple(text.split("\n")) if text else ()


class FileContents(Mapping[str, Tuple[str, ...]]):
    """Request-scoped, read-only map from file path to its content lines."""

    def __init__(self, contents: Optional[Mapping[str, Any]] = None) -> None:
        data: Dict[str, Tuple[str, ...]] = {}
        for path, value in (contents or {}).items():
            if value is None:
                continue
            if isinstance(value, str):
                data[path] = split_lines(value)
            else:
                data[path] = tuple(value)
        self._data = MappingProxyType(data)

    def __getitem__(self, path: str) -> Tuple[str, ...]:
        return self._data[path]

    def __iter__(self):
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"FileContents({len(self._data)} files)"
