"""CLI entry point for forgehand.

Commands:
  prepare         — gate, post the tracking comment, set up the working branch
  update-comment  — reconcile the tracking comment after the assistant job
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console

from forgehand_cli.commands.prepare import prepare_cmd
from forgehand_cli.commands.update_comment import update_comment_cmd

console = Console()


@click.group()
@click.version_option(
    version=importlib.metadata.version("forgehand"),
    prog_name="forgehand",
)
@click.option(
    "--config",
    "config_path",
    default=".forgehand.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="FORGEHAND_CONFIG",
)
@click.option(
    "--platform",
    type=click.Choice(["github", "gitea"]),
    default=None,
    help="Forge platform. Overrides PLATFORM and the config file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, platform: str | None, verbose: bool):
    """Drive forge-triggered assistant runs: branch setup and tracking comments."""
    from forgehand_core.config import load_config
    from forgehand_core.errors import ConfigError

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)
    try:
        config = load_config(config_path, cli_overrides={"platform": platform})
    except ConfigError as e:
        raise click.UsageError(str(e))
    ctx.obj["config"] = config


main.add_command(prepare_cmd)
main.add_command(update_comment_cmd)
