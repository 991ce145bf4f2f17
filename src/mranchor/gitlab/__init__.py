"""GitLab interface layer."""

from mranchor.gitlab.adapter import (
    GitLabAdapter,
    GitLabError,
    build_discussion_payload,
    parse_mr_url,
)

__all__ = [
    "GitLabAdapter",
    "GitLabError",
    "build_discussion_payload",
    "parse_mr_url",
]
