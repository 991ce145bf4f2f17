"""Position resolver — anchor model feedback to a commentable diff line.

GitLab rejects any inline position that does not name a line present in
the diff version being commented on. Resolution therefore only ever looks
at the lines of the ``ParsedFileDiff`` it is given, which must be the same
representation (original or context-expanded) that is rendered and posted.

Policy, applied in order:

1. ``line_number == 0`` is a file-level comment.
2. A line whose ``new_line`` equals the number (added lines win).
3. A removed line whose ``old_line`` equals the number.
4. The nearest line within ``tolerance``; ties go to the earliest hunk,
   then the earliest line in that hunk.
5. Anything else degrades to file-level.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from mranchor.diff.line_map import build_mapping
from mranchor.diff.models import DiffLineType, LineMapping, ParsedDiffLine, ParsedFileDiff
from mranchor.review.models import (
    AIFeedbackItem,
    FeedbackStatus,
    GitLabPosition,
    Resolution,
    ResolutionKind,
    ReviewFeedback,
    ShaTriple,
)

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1


def line_code(file_path: str, old_line: Optional[int], new_line: Optional[int], mapping: Optional[LineMapping] = None) -> str:
    """GitLab ``line_code``: ``<sha1(path)>_<old>_<new>``.

    An added line borrows the old number of the line before it, a removed
    line the new number of the line after it.
    """
    file_sha = hashlib.sha1(file_path.encode("utf-8")).hexdigest()
    if old_line is not None and new_line is not None:
        old, new = old_line, new_line
    elif old_line is not None:
        old = old_line
        mapped = mapping.old_to_new.get(old_line + 1) if mapping else None
        new = mapped if mapped is not None else old_line + 1
    elif new_line is not None:
        new = new_line
        mapped = mapping.new_to_old.get(new_line - 1) if mapping else None
        old = mapped if mapped is not None else new_line - 1
    else:
        old, new = 0, 0
    return f"{file_sha}_{old}_{new}"


def _distance(line: ParsedDiffLine, target: int) -> Optional[int]:
    if line.type is DiffLineType.REMOVE:
        return abs(line.old_line - target) if line.old_line is not None else None
    return abs(line.new_line - target) if line.new_line is not None else None


class PositionResolver:
    """Resolve ``(file_path, line_number)`` pairs against one diff representation."""

    def __init__(self, tolerance: int = DEFAULT_TOLERANCE) -> None:
        self.tolerance = max(0, tolerance)

    # ---- single item ----

    def find_line(self, parsed: ParsedFileDiff, line_number: int) -> Optional[tuple[ParsedDiffLine, ResolutionKind]]:
        """Locate the diff line *line_number* anchors to, if any."""
        if line_number <= 0:
            return None

        lines = [line for _, _, line in parsed.iter_lines()]

        # Exact new-side match, added lines first
        same_new = [ln for ln in lines if ln.new_line == line_number]
        if same_new:
            added = [ln for ln in same_new if ln.type is DiffLineType.ADD]
            return (added or same_new)[0], ResolutionKind.EXACT

        # Pure deletion
        for ln in lines:
            if ln.type is DiffLineType.REMOVE and ln.old_line == line_number:
                return ln, ResolutionKind.EXACT

        best: Optional[ParsedDiffLine] = None
        best_distance = self.tolerance + 1
        for ln in lines:
            d = _distance(ln, line_number)
            if d is not None and d <= self.tolerance and d < best_distance:
                best, best_distance = ln, d
        if best is not None:
            return best, ResolutionKind.NEAREST
        return None

    def resolve(
        self,
        item: AIFeedbackItem,
        parsed: ParsedFileDiff,
        shas: ShaTriple,
        mapping: Optional[LineMapping] = None,
    ) -> Resolution:
        found = self.find_line(parsed, item.line_number)
        if found is None:
            return Resolution(kind=ResolutionKind.FILE_LEVEL, line_number=item.line_number)

        line, kind = found
        if mapping is None:
            mapping = build_mapping(parsed)

        if line.type is DiffLineType.REMOVE:
            old_line, new_line = line.old_line, None
        elif line.type is DiffLineType.CONTEXT:
            old_line, new_line = line.old_line, line.new_line
        else:
            old_line, new_line = None, line.new_line

        position = GitLabPosition(
            base_sha=shas.base_sha,
            start_sha=shas.start_sha,
            head_sha=shas.head_sha,
            old_path=parsed.old_path,
            new_path=parsed.file_path,
            old_line=old_line,
            new_line=new_line,
            line_code=line_code(parsed.file_path, old_line, new_line, mapping),
        )
        anchored = new_line if new_line is not None else old_line
        return Resolution(
            kind=kind,
            position=position,
            line_content=line.content,
            line_number=anchored if anchored is not None else item.line_number,
        )


def resolve_feedback(
    items: Iterable[AIFeedbackItem],
    parsed_diffs: Sequence[ParsedFileDiff],
    shas: ShaTriple,
    *,
    tolerance: int = DEFAULT_TOLERANCE,
) -> List[ReviewFeedback]:
    """Turn model feedback into pending ``ReviewFeedback`` with resolved positions.

    Items naming a file that is not part of the diff are dropped with a
    warning. A failure while resolving one item degrades that item to a
    file-level comment and never affects the others.
    """
    resolver = PositionResolver(tolerance)
    by_path: Dict[str, ParsedFileDiff] = {}
    for parsed in parsed_diffs:
        by_path.setdefault(parsed.file_path, parsed)
    mappings: Dict[str, LineMapping] = {}

    results: List[ReviewFeedback] = []
    counter = 0
    for item in items:
        if item.file_path and item.file_path not in by_path:
            logger.warning(
                "Dropping feedback %r: %s is not part of this merge request",
                item.title, item.file_path,
            )
            continue

        counter += 1
        feedback = ReviewFeedback(
            id=f"ai-{counter:03d}",
            file_path=item.file_path,
            line_number=item.line_number,
            severity=item.severity,
            title=item.title,
            description=item.description,
            status=FeedbackStatus.PENDING,
        )

        if item.file_path:
            parsed = by_path[item.file_path]
            try:
                if parsed.file_path not in mappings:
                    mappings[parsed.file_path] = build_mapping(parsed)
                res = resolver.resolve(item, parsed, shas, mappings[parsed.file_path])
            except Exception:
                logger.exception("Could not resolve a position in %s; keeping it file-level", item.file_path)
                res = Resolution(kind=ResolutionKind.FILE_LEVEL, line_number=item.line_number)

            feedback = feedback.with_changes(
                line_number=res.line_number,
                line_content=res.line_content,
                position=res.position,
                resolution=res.kind,
            )
            if res.kind is ResolutionKind.NEAREST:
                logger.info(
                    "Moved %s:%d to nearest diff line %d",
                    item.file_path, item.line_number, res.line_number,
                )

        results.append(feedback)
    return results
