"""Context expansion — widen hunks with lines from the full file content.

The expanded representation is what gets rendered when extra context is
on, so every line it contains carries real old/new numbers and stays
commentable through the discussions API.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from mranchor.diff.file_patterns import DEFAULT_PATTERNS, FilePatternSet
from mranchor.diff.models import (
    ContextRange,
    DiffLineType,
    ExpandedHunk,
    ParsedDiffLine,
    ParsedFileDiff,
    ParsedHunk,
)

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 50
MAX_FILE_LINES = 10_000


def _first_new(hunk: ParsedHunk) -> int:
    # A zero-length side names the line *before* the change
    return hunk.new_start_line if hunk.new_line_count > 0 else hunk.new_start_line + 1


def _first_old(hunk: ParsedHunk) -> int:
    return hunk.old_start_line if hunk.old_line_count > 0 else hunk.old_start_line + 1


def _pre_delta(hunk: ParsedHunk) -> int:
    return _first_old(hunk) - _first_new(hunk)


def _post_delta(hunk: ParsedHunk) -> int:
    return (_first_old(hunk) + hunk.old_line_count) - (_first_new(hunk) + hunk.new_line_count)


def context_range(hunk: ParsedHunk, file_length: int, window_size: int = DEFAULT_WINDOW_SIZE) -> ContextRange:
    """New-side window of *window_size* lines around *hunk*, clamped to the file."""
    want_start = hunk.new_start_line - window_size
    want_end = hunk.new_start_line + hunk.new_line_count - 1 + window_size
    start = max(1, want_start)
    end = min(file_length, want_end)
    return ContextRange(
        start_line=start,
        end_line=max(end, start - 1) if file_length else 0,
        file_start_boundary=want_start < 1,
        file_end_boundary=want_end > file_length,
    )


def merge_overlapping_ranges(ranges: Iterable[ContextRange]) -> List[ContextRange]:
    """Sort *ranges* and coalesce any that overlap or touch."""
    merged: List[ContextRange] = []
    for r in sorted(ranges, key=lambda r: (r.start_line, r.end_line)):
        if merged and r.start_line <= merged[-1].end_line + 1:
            last = merged[-1]
            if r.end_line > last.end_line:
                end, end_boundary = r.end_line, r.file_end_boundary
            elif r.end_line == last.end_line:
                end, end_boundary = last.end_line, last.file_end_boundary or r.file_end_boundary
            else:
                end, end_boundary = last.end_line, last.file_end_boundary
            merged[-1] = ContextRange(
                start_line=last.start_line,
                end_line=end,
                file_start_boundary=last.file_start_boundary,
                file_end_boundary=end_boundary,
            )
        else:
            merged.append(r)
    return merged


def _context_lines(file_lines: Sequence[str], first: int, last: int, delta: int) -> Tuple[ParsedDiffLine, ...]:
    """Context lines for new-side lines ``first..last`` (inclusive)."""
    out: List[ParsedDiffLine] = []
    for n in range(max(first, 1), min(last, len(file_lines)) + 1):
        if n + delta < 1:
            continue
        out.append(
            ParsedDiffLine(
                type=DiffLineType.CONTEXT,
                content=file_lines[n - 1],
                old_line=n + delta,
                new_line=n,
            )
        )
    return tuple(out)


def _header_for(lines: Sequence[ParsedDiffLine], fallback: ParsedHunk) -> Tuple[str, int, int, int, int]:
    olds = [ln.old_line for ln in lines if ln.old_line is not None]
    news = [ln.new_line for ln in lines if ln.new_line is not None]
    old_start = min(olds) if olds else fallback.old_start_line
    new_start = min(news) if news else fallback.new_start_line
    old_count, new_count = len(olds), len(news)
    header = f"@@ -{old_start},{old_count} +{new_start},{new_count} @@"
    return header, old_start, old_count, new_start, new_count


def _build_expanded(
    group: Sequence[ParsedHunk],
    file_lines: Sequence[str],
    rng: ContextRange,
) -> ExpandedHunk:
    first, last = group[0], group[-1]
    pre = _context_lines(file_lines, rng.start_line, _first_new(first) - 1, _pre_delta(first))

    body: List[ParsedDiffLine] = list(first.lines)
    cursor = _first_new(first) + first.new_line_count
    for hunk in group[1:]:
        body.extend(_context_lines(file_lines, cursor, _first_new(hunk) - 1, _pre_delta(hunk)))
        body.extend(hunk.lines)
        cursor = _first_new(hunk) + hunk.new_line_count

    post = _context_lines(file_lines, cursor, rng.end_line, _post_delta(last))
    lines = (*pre, *body, *post)

    if len(group) == 1 and not pre and not post:
        header = first.header
        old_start, old_count = first.old_start_line, first.old_line_count
        new_start, new_count = first.new_start_line, first.new_line_count
    else:
        header, old_start, old_count, new_start, new_count = _header_for(lines, first)

    return ExpandedHunk(
        header=header,
        old_start_line=old_start,
        old_line_count=old_count,
        new_start_line=new_start,
        new_line_count=new_count,
        lines=lines,
        is_collapsed=False,
        pre_context=pre,
        post_context=post,
        context_range=rng,
    )


def expand(hunk: ParsedHunk, file_lines: Sequence[str], window_size: int = DEFAULT_WINDOW_SIZE) -> ExpandedHunk:
    """Widen a single hunk by *window_size* lines on each side."""
    rng = context_range(hunk, len(file_lines), window_size)
    return _build_expanded([hunk], file_lines, rng)


def expansion_skip_reason(
    parsed: ParsedFileDiff,
    file_lines: Optional[Sequence[str]],
    *,
    max_file_lines: int = MAX_FILE_LINES,
    patterns: FilePatternSet = DEFAULT_PATTERNS,
) -> Optional[str]:
    """Return why *parsed* must not be expanded, or ``None`` if it may be."""
    if file_lines is None:
        return "content_unavailable"
    if parsed.is_new:
        return "new_file"
    if parsed.is_deleted:
        return "deleted_file"
    if len(file_lines) > max_file_lines:
        return "oversized"
    if patterns.is_non_meaningful(parsed.file_path):
        return "non_meaningful"
    if not parsed.hunks:
        return "no_hunks"
    return None


def expand_file(
    parsed: ParsedFileDiff,
    file_lines: Optional[Sequence[str]],
    window_size: int = DEFAULT_WINDOW_SIZE,
    *,
    max_file_lines: int = MAX_FILE_LINES,
    patterns: FilePatternSet = DEFAULT_PATTERNS,
) -> ParsedFileDiff:
    """Return the context-expanded representation of *parsed*.

    Hunks whose windows overlap or touch are merged into one. When the
    file must not be expanded the original ``parsed`` is returned as is.
    """
    reason = expansion_skip_reason(
        parsed, file_lines, max_file_lines=max_file_lines, patterns=patterns,
    )
    if reason is not None or file_lines is None:
        logger.debug("Not expanding %s (%s)", parsed.file_path, reason)
        return parsed

    length = len(file_lines)
    hunks = sorted(parsed.hunks, key=_first_new)
    groups: List[Tuple[List[ParsedHunk], ContextRange]] = []
    for hunk in hunks:
        rng = context_range(hunk, length, window_size)
        if groups and rng.start_line <= groups[-1][1].end_line + 1:
            group, prev = groups[-1]
            group.append(hunk)
            groups[-1] = (group, merge_overlapping_ranges([prev, rng])[0])
        else:
            groups.append(([hunk], rng))

    expanded = tuple(_build_expanded(group, file_lines, rng) for group, rng in groups)
    return ParsedFileDiff(
        file_path=parsed.file_path,
        old_path=parsed.old_path,
        is_new=parsed.is_new,
        is_deleted=parsed.is_deleted,
        is_renamed=parsed.is_renamed,
        hunks=expanded,
    )
