"""Configuration schema — dataclasses for every config section."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal

OutputFormat = Literal["terminal", "json"]

OUTPUT_FORMATS = ("terminal", "json")


@dataclass
class ContextConfig:
    enabled: bool = True
    window_size: int = 50  # lines added on each side of a hunk
    max_file_lines: int = 10_000  # larger files get diff-only treatment


@dataclass
class ResolverConfig:
    tolerance: int = 1  # max distance for nearest-line anchoring


@dataclass
class FilesConfig:
    skip_patterns: List[str] = field(default_factory=list)  # extra non-meaningful patterns
    patterns_file: str = ".mranchor-skip.yaml"


@dataclass
class OutputConfig:
    format: OutputFormat = "terminal"
    show_summary: bool = True


@dataclass
class GitLabConfig:
    url: str = "https://gitlab.com"
    timeout: float = 30.0
    max_workers: int = 8  # parallel file content fetches


@dataclass
class MrAnchorConfig:
    version: str = "1.0"
    context: ContextConfig = field(default_factory=ContextConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    files: FilesConfig = field(default_factory=FilesConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    gitlab: GitLabConfig = field(default_factory=GitLabConfig)
