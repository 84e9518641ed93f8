from __future__ import annotations

import logging

from rich.console import Console

from forgehand_core.context import EventContext
from forgehand_core.errors import ForgeError, PermissionCheckFailed
from forgehand_core.forges.base import Forge

console = Console()
logger = logging.getLogger(__name__)

# "maintain" is GitHub's, "owner" is Gitea's; both imply write access.
WRITE_LEVELS = frozenset({"write", "admin", "maintain", "owner"})


def check_write_permission(forge: Forge, context: EventContext) -> bool:
    """Return True if the triggering actor may write to the repository.

    A failed lookup raises PermissionCheckFailed: missing permission
    information is never treated as authorisation.
    """
    repo = context.repository
    actor = context.actor
    logger.info("Checking permissions for actor: %s", actor)
    try:
        level = forge.get_collaborator_permission(repo.owner, repo.name, actor)
    except ForgeError as e:
        logger.error("Failed to check permissions for %s on %s: %s", actor, repo.full_name, e)
        raise PermissionCheckFailed(f"Failed to check permissions for {actor}: {e}") from e

    level = (level or "none").lower()
    if level in WRITE_LEVELS:
        console.print(f"[dim]Actor {actor} has write access ({level}).[/dim]")
        return True
    logger.warning("Actor %s has insufficient permissions: %s", actor, level)
    return False

