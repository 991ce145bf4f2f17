"""Merge model feedback with existing discussions and order it for review."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from mranchor.diff.models import DiffLineType, ParsedFileDiff
from mranchor.review.models import FeedbackStatus, ResolutionKind, ReviewFeedback

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileFeedback:
    """Feedback for one file: file-level items and items grouped per line."""

    file_path: str
    file_level: Tuple[ReviewFeedback, ...] = ()
    by_line: Mapping[int, Tuple[ReviewFeedback, ...]] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.file_level) + sum(len(v) for v in self.by_line.values())


@dataclass(frozen=True)
class ReviewView:
    general: Tuple[ReviewFeedback, ...] = ()
    files: Tuple[FileFeedback, ...] = ()
    navigation: Tuple[str, ...] = ()

    def items(self) -> List[ReviewFeedback]:
        """Every item in display order."""
        out = list(self.general)
        for f in self.files:
            out.extend(f.file_level)
            for line in sorted(f.by_line):
                out.extend(f.by_line[line])
        return out

    def get(self, feedback_id: str) -> Optional[ReviewFeedback]:
        return next((i for i in self.items() if i.id == feedback_id), None)

    def next_pending(self, current_id: Optional[str] = None) -> Optional[str]:
        """Id of the pending comment after *current_id*, wrapping around."""
        return self._step(current_id, 1)

    def previous_pending(self, current_id: Optional[str] = None) -> Optional[str]:
        return self._step(current_id, -1)

    def _step(self, current_id: Optional[str], direction: int) -> Optional[str]:
        if not self.navigation:
            return None
        try:
            idx = self.navigation.index(current_id) if current_id else -1
        except ValueError:
            idx = -1
        if idx == -1 and direction < 0:
            return self.navigation[-1]
        return self.navigation[(idx + direction) % len(self.navigation)]


def _is_visible(item: ReviewFeedback, parsed: ParsedFileDiff) -> bool:
    """True if the item's position names a line rendered in *parsed*."""
    pos = item.position
    if pos is None:
        return False
    for _, _, line in parsed.iter_lines():
        if pos.new_line is not None:
            if line.new_line == pos.new_line:
                return True
        elif pos.old_line is not None:
            if line.type is DiffLineType.REMOVE and line.old_line == pos.old_line:
                return True
    return False


def _degrade(item: ReviewFeedback) -> ReviewFeedback:
    """Drop the inline position; the line number stays for display."""
    return item.with_changes(
        position=None,
        resolution=ResolutionKind.FILE_LEVEL,
        annotation=(
            f"Line {item.line_number} is not part of the displayed diff; "
            "shown as a file-level comment."
        ),
    )


def navigation_order(
    items: Sequence[ReviewFeedback],
    parsed_diffs: Sequence[ParsedFileDiff],
) -> List[ReviewFeedback]:
    """Pending, non-ignored items in visual order.

    General comments first, then by the file's position in *parsed_diffs*,
    then by line (file-level items count as line 0).
    """
    file_index = {p.file_path: i for i, p in reversed(list(enumerate(parsed_diffs)))}

    def key(item: ReviewFeedback) -> Tuple[int, int, int]:
        if item.is_general:
            return (0, 0, 0)
        line = 0 if item.annotation or item.position is None else item.line_number
        return (1, file_index.get(item.file_path, len(parsed_diffs)), line)

    pending = [
        i for i in items
        if i.status is FeedbackStatus.PENDING and not i.is_ignored
    ]
    return sorted(pending, key=key)


def reconcile(
    ai_feedback: Sequence[ReviewFeedback],
    existing_feedback: Sequence[ReviewFeedback],
    parsed_diffs: Sequence[ParsedFileDiff],
) -> ReviewView:
    """Group feedback by file and line for display and posting.

    Items sharing a ``(file_path, line_number)`` key stay side by side;
    nothing is deduplicated. Line items whose position is not rendered in
    the diff fall back to file-level with an annotation.
    """
    by_path = {p.file_path: p for p in parsed_diffs}
    general: List[ReviewFeedback] = []
    file_level: Dict[str, List[ReviewFeedback]] = {}
    by_line: Dict[str, Dict[int, List[ReviewFeedback]]] = {}
    kept: List[ReviewFeedback] = []

    for item in [*existing_feedback, *ai_feedback]:
        if item.is_general:
            general.append(item)
            kept.append(item)
            continue

        parsed = by_path.get(item.file_path)
        if parsed is None:
            logger.warning("Skipping feedback %s: %s is not in the diff", item.id, item.file_path)
            continue

        if item.line_number > 0 and _is_visible(item, parsed):
            by_line.setdefault(item.file_path, {}).setdefault(item.line_number, []).append(item)
        else:
            if item.line_number != 0:
                item = _degrade(item)
            file_level.setdefault(item.file_path, []).append(item)
        kept.append(item)

    files = tuple(
        FileFeedback(
            file_path=p.file_path,
            file_level=tuple(file_level.get(p.file_path, ())),
            by_line={
                line: tuple(group)
                for line, group in sorted(by_line.get(p.file_path, {}).items())
            },
        )
        for p in parsed_diffs
        if p.file_path in file_level or p.file_path in by_line
    )
    navigation = tuple(i.id for i in navigation_order(kept, parsed_diffs))
    return ReviewView(general=tuple(general), files=files, navigation=navigation)
