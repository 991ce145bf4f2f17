"""Diff layer — models, parsing, context expansion, line mapping."""

from mranchor.diff.context import expand, expand_file, merge_overlapping_ranges
from mranchor.diff.file_patterns import FilePatternSet, is_non_meaningful_file
from mranchor.diff.line_map import build_mapping
from mranchor.diff.models import (
    ContextRange,
    DiffLineType,
    ExpandedHunk,
    FileContents,
    FileDiff,
    LineMapping,
    ParsedDiffLine,
    ParsedFileDiff,
    ParsedHunk,
)
from mranchor.diff.parser import DiffParser, parse_file_diff

__all__ = [
    "ContextRange",
    "DiffLineType",
    "DiffParser",
    "ExpandedHunk",
    "FileContents",
    "FileDiff",
    "FilePatternSet",
    "LineMapping",
    "ParsedDiffLine",
    "ParsedFileDiff",
    "ParsedHunk",
    "build_mapping",
    "expand",
    "expand_file",
    "is_non_meaningful_file",
    "merge_overlapping_ranges",
    "parse_file_diff",
]
