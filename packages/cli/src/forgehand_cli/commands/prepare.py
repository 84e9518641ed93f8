"""prepare command — gate the run, post the tracking comment, set up the branch."""

from __future__ import annotations

import dataclasses
import logging

import click
from rich.console import Console

console = Console()
logger = logging.getLogger(__name__)


@click.command("prepare")
@click.option(
    "--base-branch",
    default=None,
    help="Branch to create the working branch from. Defaults to BASE_BRANCH, then the repository default.",
)
@click.option(
    "--workdir",
    default=None,
    help="Local checkout to fetch into. Defaults to GITHUB_WORKSPACE, then the current directory.",
)
@click.pass_context
def prepare_cmd(ctx, base_branch: str | None, workdir: str | None):
    """Check permissions and trigger, create the tracking comment and working branch.

    \b
    Writes step outputs to $GITHUB_OUTPUT:
      contains_trigger, claude_comment_id, base_branch, claude_branch,
      mcp_config, and prepare_error on failure.
    """
    from forgehand_cli.auth import resolve_token
    from forgehand_core.context import load_event_context
    from forgehand_core.errors import ConfigError, ForgehandError
    from forgehand_core.forges import build_forge
    from forgehand_core.git import GitCheckout
    from forgehand_core.outputs import ActionOutputs
    from forgehand_core.prepare import run_prepare

    config = ctx.obj["config"]
    if base_branch:
        config = dataclasses.replace(config, base_branch=base_branch)
    outputs = ActionOutputs(config.github_output)

    forge = None
    try:
        token = resolve_token(config.platform)
        if not token:
            raise ConfigError("No API token found. Set GITHUB_TOKEN (or GITEA_TOKEN) or run `gh auth login` first.")
        context = load_event_context(config)
        forge = build_forge(config, token)
        result = run_prepare(forge, GitCheckout(workdir or config.workspace), context, config, outputs, token)
    except (ForgehandError, OSError, ValueError) as e:
        message = str(e)
        console.print(f"[red]Prepare step failed with error: {message}[/red]")
        outputs.set("prepare_error", message)
        ctx.exit(1)
    except Exception as e:
        logger.exception("Unexpected error in prepare")
        message = f"Unexpected error: {e!r}"
        console.print(f"Prepare step failed with error: {message}", style="red", markup=False)
        outputs.set("prepare_error", message)
        ctx.exit(1)
    finally:
        if forge is not None:
            forge.close()

    if result is None:
        return
    branch = result.branch
    console.print(
        f"\n[green]Prepared: comment {result.comment_id}, working on {branch.current_branch} "
        f"(base {branch.base_branch}).[/green]"
    )
