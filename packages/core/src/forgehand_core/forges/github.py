"""GitHub adapter built on PyGithub."""

from __future__ import annotations

import functools
import logging

from github import Auth, Github, GithubException

from forgehand_core.errors import ForgeError
from forgehand_core.forges.base import BranchComparison, CommentInfo, Forge, PullRequestInfo

logger = logging.getLogger(__name__)


def _translate_errors(method):
    """Re-raise PyGithub failures as ForgeError so the core stays platform-agnostic."""

    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except GithubException as e:
            message = e.data.get("message") if isinstance(e.data, dict) else None
            raise ForgeError(f"GitHub {method.__name__} failed: {message or e}", status=e.status) from e

    return wrapper


class GitHubForge(Forge):
    def __init__(self, token: str, server_url: str = "https://github.com", api_url: str = "https://api.github.com"):
        self._server_url = server_url.rstrip("/")
        self._gh = Github(auth=Auth.Token(token), base_url=api_url.rstrip("/"))

    @property
    def server_url(self) -> str:
        return self._server_url

    def _repo(self, owner: str, repo: str):
        return self._gh.get_repo(f"{owner}/{repo}")

    @_translate_errors
    def get_collaborator_permission(self, owner: str, repo: str, actor: str) -> str:
        return self._repo(owner, repo).get_collaborator_permission(actor)

    @_translate_errors
    def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestInfo:
        pr = self._repo(owner, repo).get_pull(number)
        return PullRequestInfo(number=pr.number, state=pr.state, head_ref=pr.head.ref, base_ref=pr.base.ref)

    @_translate_errors
    def get_default_branch(self, owner: str, repo: str) -> str:
        return self._repo(owner, repo).default_branch

    @_translate_errors
    def create_branch(self, owner: str, repo: str, new_branch: str, from_branch: str) -> None:
        this_repo = self._repo(owner, repo)
        sha = this_repo.get_branch(from_branch).commit.sha
        this_repo.create_git_ref(ref=f"refs/heads/{new_branch}", sha=sha)

    @_translate_errors
    def delete_branch(self, owner: str, repo: str, branch: str) -> None:
        self._repo(owner, repo).get_git_ref(f"heads/{branch}").delete()

    @_translate_errors
    def create_issue_comment(self, owner: str, repo: str, number: int, body: str) -> int:
        return self._repo(owner, repo).get_issue(number).create_comment(body).id

    @_translate_errors
    def get_issue_comment(self, owner: str, repo: str, number: int, comment_id: int) -> CommentInfo:
        comment = self._repo(owner, repo).get_issue(number).get_comment(comment_id)
        return CommentInfo(id=comment.id, body=comment.body or "")

    @_translate_errors
    def get_review_comment(self, owner: str, repo: str, number: int, comment_id: int) -> CommentInfo:
        comment = self._repo(owner, repo).get_pull(number).get_comment(comment_id)
        return CommentInfo(id=comment.id, body=comment.body or "")

    @_translate_errors
    def update_issue_comment(self, owner: str, repo: str, number: int, comment_id: int, body: str) -> None:
        self._repo(owner, repo).get_issue(number).get_comment(comment_id).edit(body)

    @_translate_errors
    def update_review_comment(self, owner: str, repo: str, number: int, comment_id: int, body: str) -> None:
        self._repo(owner, repo).get_pull(number).get_comment(comment_id).edit(body)

    @_translate_errors
    def compare_branches(self, owner: str, repo: str, base: str, head: str) -> BranchComparison | None:
        comparison = self._repo(owner, repo).compare(base, head)
        return BranchComparison(total_commits=comparison.total_commits, changed_files=len(comparison.files))

    def close(self) -> None:
        self._gh.close()
