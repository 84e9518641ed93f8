"""Tracking comment lifecycle: create, link the branch, finalize.

The tracking comment is created once at run start through the issue-comment
endpoint and rewritten once at run end. Forges keep two disjoint id spaces
for comments (issue comments vs inline review comments), so finalize resolves
the id by trying both in an order that depends on the triggering event, and
writes back through the endpoint of whichever namespace matched.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from urllib.parse import quote

from rich.console import Console

from forgehand_core.comments.body import (
    CommentUpdateInput,
    create_branch_link,
    create_comment_body,
    create_job_run_link,
    job_run_url,
    update_comment_body,
)
from forgehand_core.comments.cleanup import CleanupResult, check_and_delete_empty_branch
from forgehand_core.context import EventContext, is_review_comment_event
from forgehand_core.errors import CommentNotFound, CommentWriteFailed, ForgeError
from forgehand_core.execution import ExecutionOutcome
from forgehand_core.forges.base import Forge
from forgehand_core.outputs import ActionOutputs
from forgehand_core.steps import StepResult

console = Console()
logger = logging.getLogger(__name__)


class CommentNamespace(enum.Enum):
    ISSUE_COMMENT = "issue"
    REVIEW_COMMENT = "review"


@dataclass(frozen=True)
class TrackingComment:
    comment_id: int
    namespace: CommentNamespace
    body: str


@dataclass(frozen=True)
class FinalizeSettings:
    """Run parameters finalize needs beyond the event context."""

    base_branch: str
    claude_branch: str | None = None
    trigger_username: str | None = None


def create_initial_comment(
    forge: Forge,
    context: EventContext,
    outputs: ActionOutputs | None = None,
) -> int:
    repo = context.repository
    job_run_link = create_job_run_link(forge.server_url, repo.owner, repo.name, context.run_id)
    body = create_comment_body(job_run_link)

    try:
        comment_id = forge.create_issue_comment(repo.owner, repo.name, context.entity_number, body)
    except ForgeError as e:
        raise CommentWriteFailed(f"Could not create tracking comment on #{context.entity_number}: {e}") from e

    if outputs is not None:
        outputs.set("claude_comment_id", comment_id)
    console.print(f"[green]Created initial comment with ID: {comment_id}[/green]")
    return comment_id


def update_with_branch(
    forge: Forge,
    context: EventContext,
    comment_id: int,
    branch: str | None = None,
) -> bool:
    """Add a branch link to the initial comment. Returns True if a write happened.

    Pull request threads never get a branch link; the PR already implies it.
    """
    if not branch or context.is_pr:
        return False

    repo = context.repository
    job_run_link = create_job_run_link(forge.server_url, repo.owner, repo.name, context.run_id)
    branch_link = create_branch_link(forge.server_url, repo.owner, repo.name, branch)
    body = create_comment_body(job_run_link, branch_link)

    try:
        forge.update_issue_comment(repo.owner, repo.name, context.entity_number, comment_id, body)
    except ForgeError as e:
        raise CommentWriteFailed(f"Could not add branch link to comment {comment_id}: {e}") from e
    console.print(f"[green]Updated comment {comment_id} with branch link[/green]")
    return True


def comment_lookup_order(context: EventContext) -> tuple[CommentNamespace, CommentNamespace]:
    if is_review_comment_event(context):
        return (CommentNamespace.REVIEW_COMMENT, CommentNamespace.ISSUE_COMMENT)
    return (CommentNamespace.ISSUE_COMMENT, CommentNamespace.REVIEW_COMMENT)


def _log_lookup_diagnostics(forge: Forge, context: EventContext, comment_id: int) -> None:
    repo = context.repository
    logger.error(
        "Failed to fetch comment. comment_id=%s event=%s entity=#%s repository=%s",
        comment_id,
        context.event_name,
        context.entity_number,
        repo.full_name,
    )
    if not context.is_pr:
        return
    try:
        pr = forge.get_pull_request(repo.owner, repo.name, context.entity_number)
        logger.error("PR #%s state: %s", pr.number, pr.state)
    except ForgeError:
        logger.error("Could not fetch PR info for debugging")


def locate_comment(forge: Forge, context: EventContext, comment_id: int) -> TrackingComment:
    repo = context.repository
    readers = {
        CommentNamespace.ISSUE_COMMENT: forge.get_issue_comment,
        CommentNamespace.REVIEW_COMMENT: forge.get_review_comment,
    }
    for namespace in comment_lookup_order(context):
        try:
            comment = readers[namespace](repo.owner, repo.name, context.entity_number, comment_id)
        except ForgeError as e:
            logger.info("Comment %s is not a %s comment: %s", comment_id, namespace.value, e)
            continue
        logger.info("Fetched comment %s as %s comment", comment_id, namespace.value)
        return TrackingComment(comment_id=comment_id, namespace=namespace, body=comment.body)

    _log_lookup_diagnostics(forge, context, comment_id)
    raise CommentNotFound(comment_id, context.event_name, context.entity_number, repo.full_name)


def build_pr_url(
    server_url: str,
    context: EventContext,
    base_branch: str,
    claude_branch: str,
) -> str:
    entity_type = "PR" if context.is_pr else "Issue"
    number = context.entity_number
    title = quote(f"{entity_type} #{number}: Changes from Claude", safe="")
    body = quote(
        f"This PR addresses {entity_type.lower()} #{number}\n\n"
        "Generated with [Claude Code](https://claude.ai/code)",
        safe="",
    )
    repo = context.repository
    return (
        f"{server_url.rstrip('/')}/{repo.owner}/{repo.name}/compare/{base_branch}...{claude_branch}"
        f"?quick_pull=1&title={title}&body={body}"
    )


def has_pr_link(body: str, server_url: str, base_branch: str) -> bool:
    pattern = rf"{re.escape(server_url.rstrip('/'))}/.+/compare/{re.escape(base_branch)}\.\.\."
    return re.search(pattern, body) is not None


def resolve_pr_link(
    forge: Forge,
    context: EventContext,
    current_body: str,
    base_branch: str,
    claude_branch: str,
) -> StepResult[str]:
    """Return the "Create a PR" link to add, or "" when none should be added.

    An unsupported comparison still offers the link: a possibly empty PR
    suggestion is preferred over hiding real changes. A failed comparison
    falls back to no link.
    """
    if has_pr_link(current_body, forge.server_url, base_branch):
        logger.info("Comment already contains a PR link")
        return StepResult.ok("")

    repo = context.repository
    try:
        comparison = forge.compare_branches(repo.owner, repo.name, base_branch, claude_branch)
    except ForgeError as e:
        logger.warning("Error checking for changes in branch %s: %s", claude_branch, e)
        return StepResult.fallback("", e)

    if comparison is not None and not comparison.has_changes:
        logger.info("Branch %s has no changes against %s", claude_branch, base_branch)
        return StepResult.ok("")

    pr_url = build_pr_url(forge.server_url, context, base_branch, claude_branch)
    return StepResult.ok(f"\n[Create a PR]({pr_url})")


def _resolve_branch_fate(
    forge: Forge,
    context: EventContext,
    settings: FinalizeSettings,
) -> StepResult[CleanupResult]:
    repo = context.repository
    try:
        return StepResult.ok(
            check_and_delete_empty_branch(
                forge,
                repo.owner,
                repo.name,
                settings.claude_branch,
                settings.base_branch,
                forge.server_url,
            )
        )
    except Exception as e:  # noqa: BLE001
        logger.warning("Branch cleanup check failed: %s", e)
        link = ""
        if settings.claude_branch:
            link = create_branch_link(forge.server_url, repo.owner, repo.name, settings.claude_branch)
        return StepResult.fallback(CleanupResult(deleted=False, branch_link=link), e)


def _write_comment(forge: Forge, context: EventContext, comment: TrackingComment, body: str) -> None:
    repo = context.repository
    writers = {
        CommentNamespace.ISSUE_COMMENT: forge.update_issue_comment,
        CommentNamespace.REVIEW_COMMENT: forge.update_review_comment,
    }
    try:
        writers[comment.namespace](repo.owner, repo.name, context.entity_number, comment.comment_id, body)
    except ForgeError as e:
        logger.error("Failed to update %s comment %s: %s", comment.namespace.value, comment.comment_id, e)
        raise CommentWriteFailed(f"Failed to update {comment.namespace.value} comment {comment.comment_id}: {e}") from e


def finalize(
    forge: Forge,
    context: EventContext,
    comment_id: int,
    settings: FinalizeSettings,
    outcome: ExecutionOutcome,
) -> str:
    """Reconcile the tracking comment with the job's outcome and return the new body.

    Locating the comment and writing it back are fatal on failure. Branch
    cleanup and the PR-link check are best-effort and degrade to the
    fallbacks documented on their helpers.
    """
    comment = locate_comment(forge, context, comment_id)

    cleanup = _resolve_branch_fate(forge, context, settings).value

    pr_link = ""
    if settings.claude_branch and not cleanup.deleted:
        pr_link = resolve_pr_link(
            forge,
            context,
            comment.body,
            settings.base_branch,
            settings.claude_branch,
        ).value

    repo = context.repository
    new_body = update_comment_body(
        CommentUpdateInput(
            current_body=comment.body,
            action_failed=outcome.action_failed,
            job_url=job_run_url(forge.server_url, repo.owner, repo.name, context.run_id),
            execution_details=outcome.execution_details,
            branch_link=cleanup.branch_link,
            pr_link=pr_link,
            branch_name=None if cleanup.deleted else settings.claude_branch,
            trigger_username=settings.trigger_username,
            error_details=outcome.error_details,
        )
    )

    _write_comment(forge, context, comment, new_body)
    console.print(f"[green]Updated {comment.namespace.value} comment {comment_id} with job link[/green]")
    return new_body
