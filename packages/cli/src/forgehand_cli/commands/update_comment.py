"""update-comment command — reconcile the tracking comment after the job ran."""

from __future__ import annotations

import dataclasses
import logging

import click
from rich.console import Console

console = Console()
logger = logging.getLogger(__name__)


@click.command("update-comment")
@click.option("--comment-id", type=int, default=None, help="Tracking comment id. Defaults to CLAUDE_COMMENT_ID.")
@click.option("--branch", "claude_branch", default=None, help="Branch created by prepare. Defaults to CLAUDE_BRANCH.")
@click.option("--base-branch", default=None, help="Base of the created branch. Defaults to BASE_BRANCH, then 'main'.")
@click.pass_context
def update_comment_cmd(ctx, comment_id: int | None, claude_branch: str | None, base_branch: str | None):
    """Rewrite the tracking comment with the job outcome and links.

    \b
    Reads the job signals from the environment:
      PREPARE_SUCCESS, PREPARE_ERROR, CLAUDE_SUCCESS, OUTPUT_FILE, TRIGGER_USERNAME
    """
    from forgehand_cli.auth import resolve_token
    from forgehand_core.comments.tracking import FinalizeSettings, finalize
    from forgehand_core.context import load_event_context
    from forgehand_core.errors import ConfigError, ForgehandError
    from forgehand_core.execution import read_execution_outcome
    from forgehand_core.forges import build_forge
    from forgehand_core.outputs import ActionOutputs

    config = ctx.obj["config"]
    overrides = {"comment_id": comment_id, "claude_branch": claude_branch, "base_branch": base_branch}
    config = dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})
    outputs = ActionOutputs(config.github_output)

    forge = None
    try:
        config.require("comment_id")
        token = resolve_token(config.platform)
        if not token:
            raise ConfigError("No API token found. Set GITHUB_TOKEN (or GITEA_TOKEN) or run `gh auth login` first.")
        context = load_event_context(config)
        forge = build_forge(config, token)

        outcome = read_execution_outcome(
            prepare_success=config.prepare_success,
            prepare_error=config.prepare_error,
            output_file=config.output_file,
            claude_success=config.claude_success,
        )
        settings = FinalizeSettings(
            base_branch=config.base_branch or "main",
            claude_branch=config.claude_branch,
            trigger_username=config.trigger_username,
        )
        finalize(forge, context, config.comment_id, settings, outcome)
    except (ForgehandError, OSError, ValueError) as e:
        console.print(f"[red]Error updating comment with job link: {e}[/red]")
        outputs.set("update_comment_error", str(e))
        ctx.exit(1)
    except Exception as e:
        logger.exception("Unexpected error in update-comment")
        message = f"Unexpected error: {e!r}"
        console.print(f"Error updating comment with job link: {message}", style="red", markup=False)
        outputs.set("update_comment_error", message)
        ctx.exit(1)
    finally:
        if forge is not None:
            forge.close()
