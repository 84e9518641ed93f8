"""Normalise a forge webhook event into a uniform EventContext.

GitHub and Gitea deliver the same payload shapes for the five event kinds we
act on, so one resolver serves both platforms. Only the fields the rest of the
run needs are lifted out; the raw payload is kept for the trigger check.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from forgehand_core.config import RunConfig
from forgehand_core.errors import ConfigError, UnsupportedEventKind

logger = logging.getLogger(__name__)

ISSUES = "issues"
ISSUE_COMMENT = "issue_comment"
PULL_REQUEST = "pull_request"
PULL_REQUEST_REVIEW = "pull_request_review"
PULL_REQUEST_REVIEW_COMMENT = "pull_request_review_comment"

# "issue" is accepted as an alias: some runners report the singular form.
_EVENT_ALIASES = {"issue": ISSUES}

# event kind -> (payload key holding the entity, always a pull request?)
_ENTITY_KEYS = {
    ISSUES: ("issue", False),
    ISSUE_COMMENT: ("issue", False),
    PULL_REQUEST: ("pull_request", True),
    PULL_REQUEST_REVIEW: ("pull_request", True),
    PULL_REQUEST_REVIEW_COMMENT: ("pull_request", True),
}


@dataclass(frozen=True)
class Repository:
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class EventContext:
    event_name: str
    repository: Repository
    actor: str
    entity_number: int
    is_pr: bool
    run_id: str
    event_action: str | None = None
    payload: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def entity_type(self) -> str:
        return "pr" if self.is_pr else "issue"


def parse_event_context(
    event_name: str,
    payload: Mapping[str, Any],
    *,
    repository: str,
    actor: str,
    run_id: str,
) -> EventContext:
    """Build an EventContext from a webhook payload.

    Raises UnsupportedEventKind for any event outside the five recognised
    kinds. is_pr is true for pull-request events, and for issue comments only
    when the issue carries a pull_request marker.
    """
    kind = _EVENT_ALIASES.get(event_name, event_name)
    if kind not in _ENTITY_KEYS:
        raise UnsupportedEventKind(event_name)

    owner, sep, name = repository.partition("/")
    if not sep or not owner or not name:
        raise ConfigError(f"Repository must be in owner/name format, got {repository!r}")

    entity_key, always_pr = _ENTITY_KEYS[kind]
    entity = payload.get(entity_key) or {}
    if "number" not in entity:
        raise ConfigError(f"Event payload for {kind} has no {entity_key}.number")

    is_pr = always_pr or bool(entity.get("pull_request"))

    return EventContext(
        event_name=kind,
        event_action=payload.get("action"),
        repository=Repository(owner=owner, name=name),
        actor=actor,
        entity_number=int(entity["number"]),
        is_pr=is_pr,
        run_id=str(run_id),
        payload=MappingProxyType(dict(payload)),
    )


def load_event_context(config: RunConfig) -> EventContext:
    """Read the event payload file named in config and resolve it."""
    config.require("event_name", "event_path", "repository", "actor", "run_id")
    with open(config.event_path, encoding="utf-8") as f:
        payload = json.load(f)
    context = parse_event_context(
        config.event_name,
        payload,
        repository=config.repository,
        actor=config.actor,
        run_id=config.run_id,
    )
    logger.info(
        "Resolved %s event for %s #%d (is_pr=%s)",
        context.event_name,
        context.repository.full_name,
        context.entity_number,
        context.is_pr,
    )
    return context


def is_review_comment_event(context: EventContext) -> bool:
    return context.event_name == PULL_REQUEST_REVIEW_COMMENT
