"""Exception hierarchy shared by every forgehand component.

Fatal conditions raise one of these; best-effort steps never do. The CLI
catches ForgehandError at the top level, reports the message, and exits
non-zero.
"""

from __future__ import annotations


class ForgehandError(Exception):
    """Base class for all errors that abort a run."""


class ConfigError(ForgehandError):
    """Configuration is missing a required value or holds an invalid one."""


class UnsupportedEventKind(ForgehandError):
    def __init__(self, event_name: str):
        super().__init__(f"Unsupported event type: {event_name}")
        self.event_name = event_name


class ForgeError(ForgehandError):
    """A platform API call failed."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class UnsupportedCapability(ForgeError):
    """The platform has no endpoint for the requested operation."""


class PermissionCheckFailed(ForgehandError):
    pass


class InsufficientPermission(ForgehandError):
    def __init__(self, actor: str):
        super().__init__(f"Actor {actor} does not have write permissions to the repository")
        self.actor = actor


class GitCommandError(ForgehandError):
    pass


class BranchSetupFailed(ForgehandError):
    pass


class BranchCreateFailed(BranchSetupFailed):
    pass


class CommentNotFound(ForgehandError):
    def __init__(self, comment_id: int, event_name: str, entity_number: int, repository: str):
        super().__init__(
            f"Comment {comment_id} not found as an issue or review comment "
            f"(event: {event_name}, entity: #{entity_number}, repository: {repository})"
        )
        self.comment_id = comment_id


class CommentWriteFailed(ForgehandError):
    pass
