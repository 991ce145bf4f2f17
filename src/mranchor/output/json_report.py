"""JSON reporter for resolved review feedback."""

from __future__ import annotations

import json
from typing import Any, Dict

from mranchor.review.models import ResolutionKind
from mranchor.review.reconciler import ReviewView


def to_dict(view: ReviewView) -> Dict[str, Any]:
    """Convert a ReviewView to a JSON-serialisable dict."""
    items = view.items()
    return {
        "version": "1.0",
        "total": len(items),
        "inline": sum(1 for i in items if i.position is not None and not i.annotation),
        "file_level": sum(1 for i in items if i.resolution is ResolutionKind.FILE_LEVEL),
        "general": [i.to_dict() for i in view.general],
        "files": [
            {
                "file_path": f.file_path,
                "file_level": [i.to_dict() for i in f.file_level],
                "lines": {
                    str(line): [i.to_dict() for i in group]
                    for line, group in f.by_line.items()
                },
            }
            for f in view.files
        ],
        "navigation": list(view.navigation),
    }


def render(view: ReviewView) -> str:
    """Return formatted JSON string."""
    return json.dumps(to_dict(view), indent=2)
