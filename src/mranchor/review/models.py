"""Review feedback and GitLab position models."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class Severity(str, Enum):
    CRITICAL = "Critical"
    WARNING = "Warning"
    SUGGESTION = "Suggestion"
    INFO = "Info"

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """Lenient mapping of model-supplied severity strings."""
        text = str(value or "").strip().lower()
        if text in ("critical", "error"):
            return cls.CRITICAL
        if text == "warning":
            return cls.WARNING
        if text == "suggestion":
            return cls.SUGGESTION
        return cls.INFO


SEVERITY_ORDER: Dict[Severity, int] = {
    Severity.CRITICAL: 0,
    Severity.WARNING: 1,
    Severity.INFO: 2,
    Severity.SUGGESTION: 3,
}


class ResolutionKind(str, Enum):
    EXACT = "exact"
    NEAREST = "nearest"
    FILE_LEVEL = "file-level"


class FeedbackStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"


@dataclass(frozen=True)
class ShaTriple:
    """Identifies the merge request diff version a position is valid against."""

    base_sha: str
    start_sha: str
    head_sha: str

    @classmethod
    def from_version(cls, version: Mapping[str, Any]) -> "ShaTriple":
        """Build from a ``/versions`` entry (``*_commit_sha`` keys) or a plain triple."""
        return cls(
            base_sha=version.get("base_commit_sha") or version.get("base_sha") or "",
            start_sha=version.get("start_commit_sha") or version.get("start_sha") or "",
            head_sha=version.get("head_commit_sha") or version.get("head_sha") or "",
        )

    @property
    def complete(self) -> bool:
        return bool(self.base_sha and self.start_sha and self.head_sha)


@dataclass(frozen=True)
class GitLabPosition:
    base_sha: str
    start_sha: str
    head_sha: str
    old_path: str
    new_path: str
    old_line: Optional[int] = None
    new_line: Optional[int] = None
    line_code: Optional[str] = None
    position_type: str = "text"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], shas: Optional[ShaTriple] = None) -> "GitLabPosition":
        new_path = data.get("new_path") or data.get("old_path") or ""
        return cls(
            base_sha=shas.base_sha if shas else data.get("base_sha") or "",
            start_sha=shas.start_sha if shas else data.get("start_sha") or "",
            head_sha=shas.head_sha if shas else data.get("head_sha") or "",
            old_path=data.get("old_path") or new_path,
            new_path=new_path,
            old_line=data.get("old_line"),
            new_line=data.get("new_line"),
            line_code=data.get("line_code"),
        )

    @property
    def is_postable(self) -> bool:
        """All fields the discussions endpoint needs for an inline thread."""
        return bool(
            self.base_sha and self.start_sha and self.head_sha
            and self.old_path and self.new_path
            and (self.new_line or self.old_line)
        )

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "base_sha": self.base_sha,
            "start_sha": self.start_sha,
            "head_sha": self.head_sha,
            "position_type": self.position_type,
            "old_path": self.old_path,
            "new_path": self.new_path,
        }
        if self.old_line is not None:
            payload["old_line"] = self.old_line
        if self.new_line is not None:
            payload["new_line"] = self.new_line
        if self.line_code:
            payload["line_code"] = self.line_code
        return payload


@dataclass(frozen=True)
class AIFeedbackItem:
    """One comment as proposed by the model, before positioning."""

    file_path: str
    line_number: int
    severity: Severity = Severity.INFO
    title: str = "AI Review Comment"
    description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AIFeedbackItem":
        raw_line = data.get("lineNumber", data.get("line_number", 0))
        try:
            line_number = int(raw_line)
        except (TypeError, ValueError):
            line_number = 0
        return cls(
            file_path=str(data.get("filePath", data.get("file_path")) or ""),
            line_number=line_number,
            severity=Severity.parse(data.get("severity")),
            title=str(data.get("title") or "AI Review Comment"),
            description=str(data.get("description") or ""),
        )


@dataclass(frozen=True)
class ReviewFeedback:
    id: str
    file_path: str
    line_number: int
    severity: Severity
    title: str
    description: str
    line_content: str = ""
    position: Optional[GitLabPosition] = None
    status: FeedbackStatus = FeedbackStatus.PENDING
    is_existing: bool = False
    is_ignored: bool = False
    resolution: ResolutionKind = ResolutionKind.FILE_LEVEL
    annotation: Optional[str] = None

    @property
    def is_general(self) -> bool:
        return self.file_path == ""

    def with_changes(self, **changes: Any) -> "ReviewFeedback":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "file_path": self.file_path,
            "line_number": self.line_number,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "line_content": self.line_content,
            "position": self.position.to_payload() if self.position else None,
            "status": self.status.value,
            "is_existing": self.is_existing,
            "resolution": self.resolution.value,
            **({"annotation": self.annotation} if self.annotation else {}),
        }


@dataclass(frozen=True)
class Resolution:
    """Outcome of positioning one feedback item."""

    kind: ResolutionKind
    position: Optional[GitLabPosition] = None
    line_content: str = ""
    line_number: int = 0
