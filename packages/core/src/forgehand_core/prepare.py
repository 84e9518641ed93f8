"""Prepare phase orchestration.

    context → permission gate → trigger check → initial comment
            → branch setup → branch link → tool-server config

Each step gates the next; any fatal error propagates to the caller, which
owns reporting and the process exit status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from rich.console import Console

from forgehand_core.branch import BranchInfo, setup_branch
from forgehand_core.comments.tracking import create_initial_comment, update_with_branch
from forgehand_core.config import RunConfig
from forgehand_core.context import EventContext
from forgehand_core.errors import InsufficientPermission
from forgehand_core.forges.base import Forge
from forgehand_core.git import GitCheckout
from forgehand_core.mcp import prepare_mcp_config
from forgehand_core.outputs import ActionOutputs
from forgehand_core.validation.permissions import check_write_permission
from forgehand_core.validation.trigger import check_trigger

console = Console()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrepareResult:
    comment_id: int
    branch: BranchInfo
    mcp_config: str


def run_prepare(
    forge: Forge,
    git: GitCheckout,
    context: EventContext,
    config: RunConfig,
    outputs: ActionOutputs,
    token: str,
    now: datetime | None = None,
) -> PrepareResult | None:
    """Run the prepare phase. Returns None when the event does not trigger."""
    if not check_write_permission(forge, context):
        raise InsufficientPermission(context.actor)

    triggered = check_trigger(context, config.trigger_phrase, config.assignee_trigger, config.direct_prompt)
    outputs.set("contains_trigger", str(triggered).lower())
    if not triggered:
        console.print("No trigger found, skipping remaining steps")
        return None

    comment_id = create_initial_comment(forge, context, outputs)

    branch = setup_branch(forge, git, context, base_branch=config.base_branch, now=now)
    outputs.set("base_branch", branch.base_branch)
    if branch.claude_branch:
        outputs.set("claude_branch", branch.claude_branch)
        update_with_branch(forge, context, comment_id, branch.claude_branch)

    repo = context.repository
    mcp_config = prepare_mcp_config(token, repo.owner, repo.name, branch.current_branch, config)
    outputs.set("mcp_config", mcp_config)

    logger.info(
        "Prepared %s #%d: comment=%s base=%s current=%s",
        repo.full_name,
        context.entity_number,
        comment_id,
        branch.base_branch,
        branch.current_branch,
    )
    return PrepareResult(comment_id=comment_id, branch=branch, mcp_config=mcp_config)
