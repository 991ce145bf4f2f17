"""Review preparation — parse, expand, and assemble the model prompt.

Exception safety: each file is processed on its own; a failure in one
file is logged and never stops the others.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from mranchor.config.schema import MrAnchorConfig
from mranchor.diff.context import MAX_FILE_LINES, expand_file
from mranchor.diff.file_patterns import DEFAULT_PATTERNS, FilePatternSet
from mranchor.diff.models import FileContents, FileDiff, ParsedFileDiff
from mranchor.diff.parser import DiffParser

logger = logging.getLogger(__name__)


def full_content_skip_reason(
    file_diff: FileDiff,
    file_lines: Optional[Sequence[str]],
    *,
    max_file_lines: int = MAX_FILE_LINES,
    patterns: FilePatternSet = DEFAULT_PATTERNS,
) -> Optional[str]:
    """Return why full content must stay out of the prompt, or ``None``."""
    if file_lines is None:
        return "content_unavailable"
    if file_diff.deleted_file:
        return "deleted_file"
    if patterns.is_non_meaningful(file_diff.new_path):
        return "non_meaningful"
    if len(file_lines) > max_file_lines:
        return "oversized"
    return None


def file_prompt_block(file_diff: FileDiff, file_lines: Optional[Sequence[str]]) -> str:
    """Prompt text for one file; pass ``file_lines=None`` for diff only."""
    parts: List[str] = []
    path = file_diff.new_path
    if file_lines is not None:
        parts.append(f"\n=== FULL FILE CONTENT: {path} ===")
        parts.extend(f"{n:>4}: {line}" for n, line in enumerate(file_lines, start=1))
        parts.append("=== END FILE CONTENT ===\n")
    parts.append(f"\n=== GIT DIFF: {path} ===")
    parts.append(file_diff.diff)
    parts.append("=== END DIFF ===\n")
    return "\n".join(parts)


@dataclass(frozen=True)
class PreparedReview:
    """Everything derived from the diffs before the model is asked."""

    prompt: str = ""
    parsed_diffs: Tuple[ParsedFileDiff, ...] = ()
    rendered_diffs: Tuple[ParsedFileDiff, ...] = ()
    full_content_files: Tuple[str, ...] = ()
    skipped: Tuple[str, ...] = ()
    duration_ms: float = field(default=0.0, compare=False)


def prepare_review(
    diffs: Sequence[FileDiff],
    contents: Optional[FileContents] = None,
    config: Optional[MrAnchorConfig] = None,
    *,
    patterns: FilePatternSet = DEFAULT_PATTERNS,
) -> PreparedReview:
    """Parse every file diff, expand context where allowed, build the prompt.

    ``parsed_diffs`` is the original representation. ``rendered_diffs`` is
    what feedback must be resolved against: the expanded diff when context
    expansion is enabled, otherwise the original.
    """
    start = time.perf_counter()
    cfg = config or MrAnchorConfig()
    contents = contents if contents is not None else FileContents()
    max_lines = cfg.context.max_file_lines

    blocks: List[str] = []
    parsed_diffs: List[ParsedFileDiff] = []
    rendered: List[ParsedFileDiff] = []
    full_files: List[str] = []
    skipped: List[str] = []

    for file_diff in diffs:
        file_lines = contents.get(file_diff.new_path)

        reason = full_content_skip_reason(
            file_diff, file_lines, max_file_lines=max_lines, patterns=patterns,
        )
        if reason is None:
            full_files.append(file_diff.new_path)
        elif reason != "content_unavailable":
            skipped.append(f"{file_diff.new_path} ({reason})")
        blocks.append(file_prompt_block(file_diff, file_lines if reason is None else None))

        try:
            parsed = DiffParser(file_diff).parse()
        except Exception:
            logger.exception("Failed to parse diff for %s", file_diff.new_path)
            skipped.append(f"{file_diff.new_path} (parse_error)")
            continue
        parsed_diffs.append(parsed)

        view = parsed
        if cfg.context.enabled:
            try:
                view = expand_file(
                    parsed, file_lines, cfg.context.window_size,
                    max_file_lines=max_lines, patterns=patterns,
                )
            except Exception:
                logger.exception("Context expansion failed for %s; using the plain diff", file_diff.new_path)
        rendered.append(view)

    elapsed = (time.perf_counter() - start) * 1000
    logger.info(
        "Prepared %d file(s), %d with full content, in %.0fms",
        len(parsed_diffs), len(full_files), elapsed,
    )
    return PreparedReview(
        prompt="\n".join(blocks),
        parsed_diffs=tuple(parsed_diffs),
        rendered_diffs=tuple(rendered),
        full_content_files=tuple(full_files),
        skipped=tuple(skipped),
        duration_ms=round(elapsed, 2),
    )


def build_prompt(
    diffs: Sequence[FileDiff],
    contents: Optional[FileContents] = None,
    config: Optional[MrAnchorConfig] = None,
) -> str:
    return prepare_review(diffs, contents, config).prompt
