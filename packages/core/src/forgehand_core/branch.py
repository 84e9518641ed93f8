"""Working-branch provisioning.

Two mutually exclusive paths:

- reuse: the entity is an open pull request, so its head branch is checked
  out and no new branch is created;
- create: the entity is an issue or a closed/merged pull request, so a fresh
  uniquely-named branch is created server-side from the base branch and
  checked out.

Every failure here is fatal: without a working branch nothing later in the
run can proceed safely. Retrying transient failures is the transport's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from rich.console import Console

from forgehand_core.context import EventContext
from forgehand_core.errors import BranchCreateFailed, BranchSetupFailed, ForgeError, GitCommandError
from forgehand_core.forges.base import Forge
from forgehand_core.git import GitCheckout

console = Console()
logger = logging.getLogger(__name__)

BRANCH_PREFIX = "claude"

# Fetch depth for an existing PR head vs a freshly created branch.
REUSE_FETCH_DEPTH = 20
CREATE_FETCH_DEPTH = 1


@dataclass(frozen=True)
class BranchInfo:
    base_branch: str
    current_branch: str
    claude_branch: str | None = None  # set iff a branch was created this run


def branch_timestamp(now: datetime) -> str:
    """Sortable, ref-safe UTC timestamp with second granularity: 20240101_000000."""
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y%m%d_%H%M%S")


def make_branch_name(entity_type: str, entity_number: int, now: datetime) -> str:
    if entity_type not in ("issue", "pr"):
        raise ValueError(f"entity_type must be 'issue' or 'pr', got {entity_type!r}")
    return f"{BRANCH_PREFIX}/{entity_type}-{entity_number}-{branch_timestamp(now)}"


def setup_branch(
    forge: Forge,
    git: GitCheckout,
    context: EventContext,
    base_branch: str | None = None,
    now: datetime | None = None,
) -> BranchInfo:
    owner, repo = context.repository.owner, context.repository.name
    number = context.entity_number

    try:
        if context.is_pr:
            pr = forge.get_pull_request(owner, repo, number)
            if pr.state.lower() == "open":
                console.print(f"PR #{number} is open, checking out its branch [bold]{pr.head_ref}[/bold]")
                git.fetch_and_checkout(pr.head_ref, REUSE_FETCH_DEPTH)
                return BranchInfo(base_branch=pr.base_ref, current_branch=pr.head_ref)
            logger.info("PR #%d is %s, creating a new branch", number, pr.state)

        source_branch = base_branch or forge.get_default_branch(owner, repo)
    except (ForgeError, GitCommandError) as e:
        raise BranchSetupFailed(f"Branch setup failed for {context.repository.full_name} #{number}: {e}") from e

    new_branch = make_branch_name(context.entity_type, number, now or datetime.now(timezone.utc))
    console.print(f"Creating branch [bold]{new_branch}[/bold] from {source_branch}")

    try:
        forge.create_branch(owner, repo, new_branch, source_branch)
    except ForgeError as e:
        raise BranchCreateFailed(f"Could not create branch {new_branch} from {source_branch}: {e}") from e

    try:
        git.fetch_and_checkout(new_branch, CREATE_FETCH_DEPTH)
    except GitCommandError as e:
        raise BranchSetupFailed(f"Could not check out {new_branch}: {e}") from e

    return BranchInfo(base_branch=source_branch, current_branch=new_branch, claude_branch=new_branch)
