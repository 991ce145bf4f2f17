"""GitLab REST wrapper — merge request diffs, versions, discussions, file content."""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote, urlparse

import httpx

from mranchor.bundle import ReviewBundle
from mranchor.diff.models import FileContents, FileDiff, split_lines
from mranchor.review.models import ReviewFeedback, ShaTriple

logger = logging.getLogger(__name__)

_MR_SEGMENT = "/-/merge_requests/"
_IID_RE = re.compile(r"^(\d+)")


class GitLabError(Exception):
    """Raised when the GitLab API is unreachable or answers with an error."""


def parse_mr_url(mr_url: str, gitlab_url: str) -> Tuple[str, str]:
    """Split a merge request URL into ``(project_path, mr_iid)``."""
    url = urlparse(mr_url)
    base = urlparse(gitlab_url)
    if not url.scheme or not url.hostname:
        raise GitLabError(f"Invalid merge request URL: {mr_url}")
    if url.hostname != base.hostname:
        raise GitLabError(
            f"MR URL host {url.hostname} does not match the configured GitLab host {base.hostname}"
        )

    path = url.path
    idx = path.find(_MR_SEGMENT)
    if idx == -1:
        raise GitLabError("Could not find '/-/merge_requests/' in the URL path")
    m = _IID_RE.match(path[idx + len(_MR_SEGMENT):])
    if not m:
        raise GitLabError("Could not parse the merge request IID from the URL")
    project_path = path[1:idx]
    if not project_path:
        raise GitLabError("Could not parse the project path from the URL")
    return project_path, m.group(1)


def build_discussion_payload(feedback: ReviewFeedback) -> Dict[str, Any]:
    """Request body for the discussions endpoint.

    The position is attached only when it is complete; otherwise the
    comment is posted as a general thread.
    """
    body = f"**{feedback.severity.value}: {feedback.title}**"
    if feedback.description:
        body += f"\n\n{feedback.description}"
    if feedback.annotation:
        body += f"\n\n_{feedback.annotation}_"
    payload: Dict[str, Any] = {"body": body}
    if feedback.position is not None and feedback.position.is_postable:
        payload["position"] = feedback.position.to_payload()
    return payload


class GitLabAdapter:
    """Thin synchronous client over ``/api/v4``.

    Usage::

        with GitLabAdapter(url, token) as gl:
            bundle = gl.fetch_bundle(mr_url)
    """

    def __init__(
        self,
        url: str,
        token: str,
        *,
        timeout: float = 30.0,
        max_workers: int = 8,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.max_workers = max(1, max_workers)
        self._client = httpx.Client(
            base_url=f"{self.url}/api/v4",
            headers={"PRIVATE-TOKEN": token},
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> "GitLabAdapter":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # ---- low level ----

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            raise GitLabError(f"GitLab request failed: {method} {path}: {exc}") from exc
        if response.status_code == 401:
            raise GitLabError("GitLab authentication failed; check the access token")
        if response.status_code == 404:
            raise GitLabError(f"Not found: {path}")
        if response.is_error:
            raise GitLabError(
                f"GitLab API error {response.status_code} for {path}: {response.text[:200]}"
            )
        return response

    def _get_all(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        """Follow ``X-Next-Page`` pagination and concatenate the pages."""
        items: List[Any] = []
        query = {"per_page": 100, **(params or {})}
        page: Optional[str] = "1"
        while page:
            response = self._request("GET", path, params={**query, "page": page})
            data = response.json()
            if not isinstance(data, list):
                raise GitLabError(f"Expected a list from {path}")
            items.extend(data)
            page = response.headers.get("x-next-page") or None
        return items

    # ---- merge request data ----

    def get_merge_request(self, project: str, mr_iid: str) -> Dict[str, Any]:
        project_id = quote(project, safe="")
        return self._request("GET", f"/projects/{project_id}/merge_requests/{mr_iid}").json()

    def get_latest_version(self, project_id: int, mr_iid: str) -> ShaTriple:
        versions = self._request("GET", f"/projects/{project_id}/merge_requests/{mr_iid}/versions").json()
        if not versions:
            raise GitLabError("Could not retrieve merge request version details")
        return ShaTriple.from_version(versions[0])

    def get_diffs(self, project_id: int, mr_iid: str) -> List[FileDiff]:
        raw = self._get_all(f"/projects/{project_id}/merge_requests/{mr_iid}/diffs")
        return [FileDiff.from_dict(d) for d in raw]

    def get_discussions(self, project_id: int, mr_iid: str) -> List[Dict[str, Any]]:
        return self._get_all(f"/projects/{project_id}/merge_requests/{mr_iid}/discussions")

    def get_file_lines(self, project_id: int, path: str, ref: str) -> Optional[Tuple[str, ...]]:
        """Raw file content as lines, or ``None`` when it cannot be fetched."""
        if not path or not ref:
            return None
        encoded = quote(path, safe="")
        try:
            response = self._request(
                "GET", f"/projects/{project_id}/repository/files/{encoded}/raw", params={"ref": ref},
            )
        except GitLabError as exc:
            logger.warning("Could not fetch %s at %s: %s", path, ref[:12], exc)
            return None
        return split_lines(response.text)

    def fetch_contents(self, project_id: int, diffs: Sequence[FileDiff], ref: str) -> FileContents:
        """Fetch head-side content of every changed, non-deleted file in parallel."""
        wanted = [d.new_path for d in diffs if not d.deleted_file]
        if not wanted:
            return FileContents()
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(wanted))) as pool:
            results = list(pool.map(lambda p: self.get_file_lines(project_id, p, ref), wanted))
        return FileContents(dict(zip(wanted, results)))

    def fetch_bundle(self, mr_url: str) -> ReviewBundle:
        project_path, mr_iid = parse_mr_url(mr_url, self.url)
        mr = self.get_merge_request(project_path, mr_iid)
        project_id = mr["project_id"]

        shas = self.get_latest_version(project_id, mr_iid)
        diffs = self.get_diffs(project_id, mr_iid)
        discussions = self.get_discussions(project_id, mr_iid)
        contents = self.fetch_contents(project_id, diffs, shas.head_sha)
        logger.info(
            "Fetched !%s: %d file(s), %d with content, %d discussion(s)",
            mr_iid, len(diffs), len(contents), len(discussions),
        )
        return ReviewBundle(
            shas=shas,
            diffs=tuple(diffs),
            discussions=tuple(discussions),
            contents=contents,
            project_id=project_id,
            mr_iid=mr_iid,
            title=mr.get("title") or "",
            web_url=mr.get("web_url") or "",
        )

    # ---- posting ----

    def post_discussion(self, project_id: int, mr_iid: str, feedback: ReviewFeedback) -> Dict[str, Any]:
        payload = build_discussion_payload(feedback)
        return self._request(
            "POST", f"/projects/{project_id}/merge_requests/{mr_iid}/discussions", json=payload,
        ).json()
