"""Gitea adapter over the Gitea REST API (v1).

Gitea has no PyGithub equivalent, so this talks to the API with a plain
requests session. Two capabilities differ from GitHub:

- Inline review comments cannot be addressed by id alone, so the review-comment
  namespace is reported as unsupported and lookups fall through to issue
  comments.
- The compare endpoint only exists on newer servers; when it is missing
  compare_branches returns None instead of failing.
"""

from __future__ import annotations

import functools
import logging
from typing import Any
from urllib.parse import quote

import requests

from forgehand_core.errors import ForgeError, UnsupportedCapability
from forgehand_core.forges.base import BranchComparison, CommentInfo, Forge, PullRequestInfo

logger = logging.getLogger(__name__)

_TIMEOUT = 30


def _expect_shape(method):
    """Report a response missing the fields a method reads as ForgeError."""

    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise ForgeError(f"Unexpected Gitea response in {method.__name__}: {e!r}") from e

    return wrapper


class GiteaForge(Forge):
    def __init__(self, token: str, server_url: str, api_url: str | None = None, session: requests.Session | None = None):
        self._server_url = server_url.rstrip("/")
        self._api_url = (api_url or f"{self._server_url}/api/v1").rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update({"Authorization": f"token {token}", "Accept": "application/json"})

    @property
    def server_url(self) -> str:
        return self._server_url

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = path if path.startswith("http") else f"{self._api_url}{path}"
        try:
            response = self._session.request(method, url, timeout=_TIMEOUT, **kwargs)
        except requests.RequestException as e:
            raise ForgeError(f"Gitea request failed: {method} {path}: {e}") from e
        if not response.ok:
            raise ForgeError(
                f"Gitea request failed: {response.status_code} {response.reason} ({method} {path})",
                status=response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ForgeError(f"Gitea returned invalid JSON ({method} {path})", status=response.status_code) from e

    @_expect_shape
    def get_collaborator_permission(self, owner: str, repo: str, actor: str) -> str:
        data = self._request("GET", f"/repos/{owner}/{repo}/collaborators/{quote(actor)}/permission")
        return data.get("permission", "none")

    @_expect_shape
    def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestInfo:
        pr = self._request("GET", f"/repos/{owner}/{repo}/pulls/{number}")
        return PullRequestInfo(
            number=pr["number"],
            state=pr["state"].lower(),
            head_ref=pr["head"]["ref"],
            base_ref=pr["base"]["ref"],
        )

    @_expect_shape
    def get_default_branch(self, owner: str, repo: str) -> str:
        return self._request("GET", f"/repos/{owner}/{repo}")["default_branch"]

    def create_branch(self, owner: str, repo: str, new_branch: str, from_branch: str) -> None:
        self._request(
            "POST",
            f"/repos/{owner}/{repo}/branches",
            json={"new_branch_name": new_branch, "old_branch_name": from_branch},
        )

    def delete_branch(self, owner: str, repo: str, branch: str) -> None:
        self._request("DELETE", f"/repos/{owner}/{repo}/branches/{quote(branch, safe='')}")

    @_expect_shape
    def create_issue_comment(self, owner: str, repo: str, number: int, body: str) -> int:
        data = self._request("POST", f"/repos/{owner}/{repo}/issues/{number}/comments", json={"body": body})
        return data["id"]

    @_expect_shape
    def get_issue_comment(self, owner: str, repo: str, number: int, comment_id: int) -> CommentInfo:
        data = self._request("GET", f"/repos/{owner}/{repo}/issues/comments/{comment_id}")
        return CommentInfo(id=data["id"], body=data.get("body") or "")

    def get_review_comment(self, owner: str, repo: str, number: int, comment_id: int) -> CommentInfo:
        raise UnsupportedCapability("Gitea cannot fetch a review comment by id")

    def update_issue_comment(self, owner: str, repo: str, number: int, comment_id: int, body: str) -> None:
        self._request("PATCH", f"/repos/{owner}/{repo}/issues/comments/{comment_id}", json={"body": body})

    def update_review_comment(self, owner: str, repo: str, number: int, comment_id: int, body: str) -> None:
        raise UnsupportedCapability("Gitea cannot update a review comment by id")

    @_expect_shape
    def compare_branches(self, owner: str, repo: str, base: str, head: str) -> BranchComparison | None:
        try:
            data = self._request("GET", f"/repos/{owner}/{repo}/compare/{base}...{head}")
        except ForgeError as e:
            if e.status in (404, 405):
                logger.info("Gitea server has no compare endpoint (status %s)", e.status)
                return None
            raise
        return BranchComparison(
            total_commits=int(data.get("total_commits") or 0),
            changed_files=len(data.get("files") or []),
        )

    def close(self) -> None:
        self._session.close()
