"""Unified diff parser for a single merge request file.

Turns the ``diff`` text of one GitLab ``FileDiff`` into a ``ParsedFileDiff``
whose lines carry absolute old/new file line numbers. Parsing never raises:
malformed fragments are skipped and truncated hunks keep what was read.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from mranchor.diff.models import (
    DiffLineType,
    FileDiff,
    ParsedDiffLine,
    ParsedFileDiff,
    ParsedHunk,
)

logger = logging.getLogger(__name__)

# --- Regex patterns for diff parsing ---

_HUNK_HEADER_RE = re.compile(
    r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@"
)
_FILE_HEADER_OLD = re.compile(r"^--- (?:a/|/dev/null)")
_FILE_HEADER_NEW = re.compile(r"^\+\+\+ (?:b/|/dev/null)")


class _HunkBuilder:
    """Mutable accumulator for one hunk while the parser walks its body."""

    def __init__(self, header: str, old_start: int, old_count: int, new_start: int, new_count: int) -> None:
        self.header = header
        self.old_start = old_start
        self.old_count = old_count
        self.new_start = new_start
        self.new_count = new_count
        self.old_seen = 0
        self.new_seen = 0
        self.lines: List[ParsedDiffLine] = []

    @property
    def is_complete(self) -> bool:
        return self.old_seen >= self.old_count and self.new_seen >= self.new_count

    def accepts(self, line_type: DiffLineType) -> bool:
        """True if the declared counts leave room for *line_type*."""
        if line_type is DiffLineType.ADD:
            return self.new_seen < self.new_count
        if line_type is DiffLineType.REMOVE:
            return self.old_seen < self.old_count
        if line_type is DiffLineType.CONTEXT:
            return self.old_seen < self.old_count and self.new_seen < self.new_count
        return True

    def add(self, line_type: DiffLineType, content: str) -> None:
        old_line: Optional[int] = None
        new_line: Optional[int] = None
        if line_type in (DiffLineType.REMOVE, DiffLineType.CONTEXT):
            old_line = self.old_start + self.old_seen
            self.old_seen += 1
        if line_type in (DiffLineType.ADD, DiffLineType.CONTEXT):
            new_line = self.new_start + self.new_seen
            self.new_seen += 1
        self.lines.append(
            ParsedDiffLine(type=line_type, content=content, old_line=old_line, new_line=new_line)
        )

    def build(self) -> ParsedHunk:
        if not self.is_complete:
            # Truncated hunk: report the counts actually present
            logger.debug(
                "Truncated hunk %s: got -%d/+%d of -%d/+%d lines",
                self.header, self.old_seen, self.new_seen, self.old_count, self.new_count,
            )
        return ParsedHunk(
            header=self.header,
            old_start_line=self.old_start,
            old_line_count=self.old_seen,
            new_start_line=self.new_start,
            new_line_count=self.new_seen,
            lines=tuple(self.lines),
        )


def _classify(raw_line: str) -> Optional[DiffLineType]:
    if raw_line.startswith("+"):
        return DiffLineType.ADD
    if raw_line.startswith("-"):
        return DiffLineType.REMOVE
    if raw_line.startswith(" "):
        return DiffLineType.CONTEXT
    if raw_line.startswith("\\"):
        return DiffLineType.META
    return None


class DiffParser:
    """Parse one file's unified diff into hunks with line numbers.

    Usage::

        parsed = DiffParser(file_diff).parse()
        for hunk in parsed.hunks:
            ...
    """

    def __init__(self, file_diff: FileDiff) -> None:
        self._file_diff = file_diff
        # Split on LF only so CR characters survive in line content
        self._lines = (file_diff.diff or "").split("\n")

    def parse(self) -> ParsedFileDiff:
        fd = self._file_diff
        return ParsedFileDiff(
            file_path=fd.new_path or fd.old_path,
            old_path=fd.old_path or fd.new_path,
            is_new=fd.new_file,
            is_deleted=fd.deleted_file,
            is_renamed=fd.renamed_file,
            hunks=tuple(self._parse_hunks()),
        )

    def _parse_hunks(self) -> List[ParsedHunk]:
        hunks: List[ParsedHunk] = []
        current: Optional[_HunkBuilder] = None

        for raw_line in self._lines:
            # --- Hunk header ---
            hm = _HUNK_HEADER_RE.match(raw_line)
            if hm:
                if current is not None:
                    hunks.append(current.build())
                current = _HunkBuilder(
                    header=raw_line,
                    old_start=int(hm.group(1)),
                    old_count=int(hm.group(2)) if hm.group(2) is not None else 1,
                    new_start=int(hm.group(3)),
                    new_count=int(hm.group(4)) if hm.group(4) is not None else 1,
                )
                continue

            if current is None:
                # Preamble (diff --git, index, ---/+++ headers) or junk
                continue

            line_type = _classify(raw_line)
            if line_type is None:
                continue

            if line_type is DiffLineType.META:
                # "\ No newline at end of file" belongs to the preceding line
                current.add(line_type, raw_line)
                continue

            if current.is_complete or not current.accepts(line_type):
                # Outside the declared hunk body: file headers of a following
                # git-format section or stray text. Close the hunk.
                if not (_FILE_HEADER_OLD.match(raw_line) or _FILE_HEADER_NEW.match(raw_line)):
                    logger.debug("Skipping line outside hunk bounds in %s", self._file_diff.new_path)
                hunks.append(current.build())
                current = None
                continue

            current.add(line_type, raw_line[1:])

        if current is not None:
            hunks.append(current.build())
        return hunks


def parse_file_diff(file_diff: FileDiff) -> ParsedFileDiff:
    """Convenience wrapper around ``DiffParser(file_diff).parse()``."""
    return DiffParser(file_diff).parse()
