"""Review bundle — the fetched merge request state as one JSON document.

``mranchor fetch`` writes a bundle; ``prompt`` and ``resolve`` read it, so
everything after the fetch runs offline.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from mranchor.diff.models import FileContents, FileDiff, split_lines
from mranchor.review.models import ShaTriple

logger = logging.getLogger(__name__)


class BundleError(Exception):
    """Raised when a bundle file is missing or malformed."""


@dataclass(frozen=True)
class ReviewBundle:
    shas: ShaTriple
    diffs: Tuple[FileDiff, ...] = ()
    discussions: Tuple[Dict[str, Any], ...] = ()
    contents: FileContents = field(default_factory=FileContents)
    project_id: Optional[int] = None
    mr_iid: Optional[str] = None
    title: str = ""
    web_url: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewBundle":
        if not isinstance(data, dict):
            raise BundleError("Bundle must be a JSON object")
        diffs = data.get("diffs") or []
        if not isinstance(diffs, list):
            raise BundleError("'diffs' must be a list")
        mr = data.get("merge_request") or {}
        return cls(
            shas=ShaTriple.from_version(data.get("version") or {}),
            diffs=tuple(FileDiff.from_dict(d) for d in diffs if isinstance(d, dict)),
            discussions=tuple(d for d in data.get("discussions") or [] if isinstance(d, dict)),
            contents=FileContents(data.get("file_contents") or {}),
            project_id=mr.get("project_id"),
            mr_iid=str(mr["iid"]) if mr.get("iid") is not None else None,
            title=mr.get("title") or "",
            web_url=mr.get("web_url") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "merge_request": {
                "project_id": self.project_id,
                "iid": self.mr_iid,
                "title": self.title,
                "web_url": self.web_url,
            },
            "version": {
                "base_commit_sha": self.shas.base_sha,
                "start_commit_sha": self.shas.start_sha,
                "head_commit_sha": self.shas.head_sha,
            },
            "diffs": [d.to_dict() for d in self.diffs],
            "discussions": list(self.discussions),
            "file_contents": {
                path: "".join(f"{line}\n" for line in lines)
                for path, lines in self.contents.items()
            },
        }


def load_bundle(path: Path, contents_dir: Optional[Path] = None) -> ReviewBundle:
    """Read a bundle; *contents_dir* (a checkout at the head commit) adds file content."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise BundleError(f"Cannot read bundle {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise BundleError(f"Invalid JSON in {path}: {exc}") from exc

    bundle = ReviewBundle.from_dict(data)
    if contents_dir is None:
        return bundle

    merged: Dict[str, List[str]] = {p: list(lines) for p, lines in bundle.contents.items()}
    for fd in bundle.diffs:
        if fd.deleted_file or fd.new_path in merged:
            continue
        candidate = contents_dir / fd.new_path
        if candidate.is_file():
            try:
                merged[fd.new_path] = list(split_lines(candidate.read_text(encoding="utf-8")))
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Cannot read %s, sending diff only: %s", candidate, exc)
    return ReviewBundle(
        shas=bundle.shas,
        diffs=bundle.diffs,
        discussions=bundle.discussions,
        contents=FileContents(merged),
        project_id=bundle.project_id,
        mr_iid=bundle.mr_iid,
        title=bundle.title,
        web_url=bundle.web_url,
    )


def write_bundle(bundle: ReviewBundle, path: Path) -> None:
    path.write_text(json.dumps(bundle.to_dict(), indent=2), encoding="utf-8")
