"""Conversions at the model and GitLab boundaries.

- existing discussion notes → submitted ``ReviewFeedback``
- raw model output → ``AIFeedbackItem`` list
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable, List, Mapping

from mranchor.review.models import (
    AIFeedbackItem,
    FeedbackStatus,
    GitLabPosition,
    ResolutionKind,
    ReviewFeedback,
    Severity,
    ShaTriple,
)

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def discussions_to_feedback(
    discussions: Iterable[Mapping[str, Any]],
    shas: ShaTriple,
) -> List[ReviewFeedback]:
    """Convert inline discussion notes into submitted feedback items.

    System notes and notes without a position are skipped. Positions get
    the SHA triple of the latest diff version.
    """
    out: List[ReviewFeedback] = []
    for discussion in discussions:
        for note in discussion.get("notes") or []:
            raw_pos = note.get("position")
            if note.get("system") or not raw_pos:
                continue
            position = GitLabPosition.from_dict(raw_pos, shas)
            author = note.get("author") or {}
            line_number = position.new_line or position.old_line or 0
            out.append(
                ReviewFeedback(
                    id=f"gitlab-{note.get('id')}",
                    file_path=position.new_path,
                    line_number=line_number,
                    severity=Severity.INFO,
                    title=f"Comment by {author.get('name') or author.get('username') or 'unknown'}",
                    description=note.get("body") or "",
                    position=position,
                    status=FeedbackStatus.SUBMITTED,
                    is_existing=True,
                    resolution=ResolutionKind.EXACT if line_number else ResolutionKind.FILE_LEVEL,
                )
            )
    return out


def parse_ai_response(text: str) -> List[AIFeedbackItem]:
    """Extract feedback items from the model's reply.

    Accepts a bare JSON array or an object with a ``feedback`` array,
    optionally wrapped in prose or code fences. When nothing parses, the
    raw reply becomes a single general comment so it is not lost.
    """
    data: Any = None
    for pattern in (_JSON_ARRAY_RE, _JSON_OBJECT_RE):
        m = pattern.search(text or "")
        if m is None:
            continue
        try:
            data = json.loads(m.group(0))
            break
        except json.JSONDecodeError:
            continue

    if isinstance(data, dict):
        data = data.get("feedback")

    if not isinstance(data, list):
        logger.warning("Model response did not contain a feedback list")
        return [
            AIFeedbackItem(
                file_path="",
                line_number=0,
                severity=Severity.INFO,
                title="AI Review Response",
                description=f"Raw AI response (parsing failed):\n\n{text}",
            )
        ]

    return [AIFeedbackItem.from_dict(entry) for entry in data if isinstance(entry, dict)]
