"""Abstract forge interface.

GitHub and Gitea expose near-identical but not identical REST surfaces. The
core depends on Forge, never on a concrete adapter, and never branches on
which platform it is talking to; it only reacts to capabilities an adapter
reports as unsupported (compare_branches returning None, or
UnsupportedCapability from a comment endpoint).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PullRequestInfo:
    number: int
    state: str  # "open" | "closed" (merged PRs are closed)
    head_ref: str
    base_ref: str


@dataclass(frozen=True)
class CommentInfo:
    id: int
    body: str


@dataclass(frozen=True)
class BranchComparison:
    total_commits: int
    changed_files: int

    @property
    def has_changes(self) -> bool:
        return self.total_commits > 0 or self.changed_files > 0


class Forge(ABC):
    """Capability interface over a hosted git platform.

    Implementations raise ForgeError for transport and API failures, and
    UnsupportedCapability when the platform has no endpoint for a call.
    Comment methods take the entity number as well as the comment id because
    some client libraries address comments through their parent entity.
    """

    @property
    @abstractmethod
    def server_url(self) -> str:
        """Web URL of the forge, used to build user-facing links."""

    @abstractmethod
    def get_collaborator_permission(self, owner: str, repo: str, actor: str) -> str:
        """Return the actor's permission level, e.g. 'admin', 'write', 'read', 'none'."""

    @abstractmethod
    def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestInfo: ...

    @abstractmethod
    def get_default_branch(self, owner: str, repo: str) -> str: ...

    @abstractmethod
    def create_branch(self, owner: str, repo: str, new_branch: str, from_branch: str) -> None: ...

    @abstractmethod
    def delete_branch(self, owner: str, repo: str, branch: str) -> None: ...

    @abstractmethod
    def create_issue_comment(self, owner: str, repo: str, number: int, body: str) -> int:
        """Post a top-level comment on an issue or pull request and return its id."""

    @abstractmethod
    def get_issue_comment(self, owner: str, repo: str, number: int, comment_id: int) -> CommentInfo: ...

    @abstractmethod
    def get_review_comment(self, owner: str, repo: str, number: int, comment_id: int) -> CommentInfo: ...

    @abstractmethod
    def update_issue_comment(self, owner: str, repo: str, number: int, comment_id: int, body: str) -> None: ...

    @abstractmethod
    def update_review_comment(self, owner: str, repo: str, number: int, comment_id: int, body: str) -> None: ...

    @abstractmethod
    def compare_branches(self, owner: str, repo: str, base: str, head: str) -> BranchComparison | None:
        """Compare head against base.

        Returns None when the platform cannot compare branches at all, so
        callers can tell "unsupported" apart from "no changes".
        """

    def close(self) -> None:
        """Release any resources held by the adapter.

        Default is a no-op so callers can always call close() safely.
        """
