"""Non-meaningful file detection — lockfiles, minified and generated output.

Files matching these patterns never get their full content or expanded
context sent to the model; only their raw diff is included.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Tuple

import yaml

logger = logging.getLogger(__name__)

LOCKFILES: Tuple[str, ...] = (
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "composer.lock",
    "pipfile.lock",
    "poetry.lock",
    "cargo.lock",
    "gemfile.lock",
    "go.sum",
)

GENERATED_PATTERNS: Tuple[str, ...] = (
    # build output and dependencies
    "node_modules/",
    "vendor/",
    "target/",
    "build/",
    "dist/",
    ".next/",
    ".nuxt/",
    # editor and VCS metadata
    ".vscode/",
    ".idea/",
    "*.iml",
    ".git/",
    ".gitignore",
    # minified and bundled
    "*.min.js",
    "*.min.css",
    "*.bundle.js",
    "*.chunk.js",
    # binary and media
    "*.png",
    "*.jpg",
    "*.jpeg",
    "*.gif",
    "*.ico",
    "*.pdf",
    "*.zip",
    "*.tar.gz",
    # generated docs and reports
    "docs/api/",
    "coverage/",
    # bundler configs
    "webpack.config.js",
    "vite.config.js",
    "rollup.config.js",
)

BUILTIN_PATTERNS: Tuple[str, ...] = LOCKFILES + GENERATED_PATTERNS


def _matches(pattern: str, path: str, basename: str) -> bool:
    """Match one lower-cased pattern against a lower-cased path.

    ``dir/`` matches anywhere in the path, ``*.ext`` matches the basename
    suffix, anything else matches the basename or a trailing path segment.
    """
    if pattern.endswith("/"):
        return pattern in path
    if pattern.startswith("*."):
        return basename.endswith(pattern[1:])
    return basename == pattern or path == pattern or path.endswith(f"/{pattern}")


class FilePatternSet:
    """Built-in plus user-supplied non-meaningful file patterns."""

    def __init__(self, patterns: Iterable[str] = BUILTIN_PATTERNS) -> None:
        self._patterns: List[str] = []
        self.extend(patterns)

    @property
    def patterns(self) -> Tuple[str, ...]:
        return tuple(self._patterns)

    def extend(self, patterns: Iterable[str]) -> None:
        for p in patterns:
            p = str(p).strip().lower()
            if p and p not in self._patterns:
                self._patterns.append(p)

    def load_yaml(self, path: Path) -> int:
        """Load extra patterns from a YAML list (or ``{patterns: [...]}``). Returns count added."""
        if not path.is_file():
            return 0
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if isinstance(data, dict):
            data = data.get("patterns", [])
        if not isinstance(data, list):
            logger.warning("Ignoring %s: expected a list of patterns", path)
            return 0
        before = len(self._patterns)
        self.extend(data)
        return len(self._patterns) - before

    def is_non_meaningful(self, file_path: str) -> bool:
        path = file_path.lower()
        basename = path.rsplit("/", 1)[-1]

        # Any *lock*.json / *lock*.yaml / *lock*.yml
        if "lock" in basename and basename.endswith((".json", ".yaml", ".yml")):
            return True

        return any(_matches(p, path, basename) for p in self._patterns)


DEFAULT_PATTERNS = FilePatternSet()


def is_non_meaningful_file(file_path: str) -> bool:
    """Check *file_path* against the built-in pattern set."""
    return DEFAULT_PATTERNS.is_non_meaningful(file_path)
