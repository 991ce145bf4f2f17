"""Old/new line correspondence derived from parsed hunks."""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Optional

from mranchor.diff.models import LineMapping, ParsedFileDiff


def build_mapping(parsed: ParsedFileDiff) -> LineMapping:
    """Map new→old and old→new for every line present on both sides.

    Added and removed lines have no counterpart and stay out of the
    opposite map.
    """
    new_to_old: Dict[int, int] = {}
    old_to_new: Dict[int, int] = {}
    for _, _, line in parsed.iter_lines():
        if line.old_line is not None and line.new_line is not None:
            new_to_old[line.new_line] = line.old_line
            old_to_new[line.old_line] = line.new_line
    return LineMapping(
        new_to_old=MappingProxyType(new_to_old),
        old_to_new=MappingProxyType(old_to_new),
    )


def old_line_for(new_line: int, mapping: LineMapping) -> Optional[int]:
    return mapping.new_to_old.get(new_line)


def new_line_for(old_line: int, mapping: LineMapping) -> Optional[int]:
    return mapping.old_to_new.get(old_line)
