"""Empty-branch cleanup.

A branch created for a run that ended up with no commits is noise; it is
deleted and no branch link is shown. When emptiness cannot be established the
branch is kept and linked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from rich.console import Console

from forgehand_core.comments.body import create_branch_link
from forgehand_core.errors import ForgeError
from forgehand_core.forges.base import Forge

console = Console()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleanupResult:
    deleted: bool
    branch_link: str = ""


def check_and_delete_empty_branch(
    forge: Forge,
    owner: str,
    repo: str,
    branch: str | None,
    base_branch: str,
    server_url: str,
) -> CleanupResult:
    if not branch:
        return CleanupResult(deleted=False)

    keep = CleanupResult(deleted=False, branch_link=create_branch_link(server_url, owner, repo, branch))

    try:
        comparison = forge.compare_branches(owner, repo, base_branch, branch)
    except ForgeError as e:
        logger.warning("Could not check %s for commits, keeping it: %s", branch, e)
        return keep

    if comparison is None:
        logger.info("Branch comparison unsupported; keeping %s", branch)
        return keep
    if comparison.total_commits > 0:
        return keep

    logger.info("Branch %s has no commits, deleting it", branch)
    try:
        forge.delete_branch(owner, repo, branch)
        console.print(f"[green]Deleted empty branch: {branch}[/green]")
    except ForgeError as e:
        # The branch stays behind but it is still empty; don't advertise it.
        logger.warning("Failed to delete branch %s: %s", branch, e)
    return CleanupResult(deleted=True)
