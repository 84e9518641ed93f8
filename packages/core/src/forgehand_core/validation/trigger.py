"""Decide whether an event actually asks for the assistant."""

from __future__ import annotations

import logging
import re

from forgehand_core.context import (
    ISSUE_COMMENT,
    ISSUES,
    PULL_REQUEST,
    PULL_REQUEST_REVIEW,
    PULL_REQUEST_REVIEW_COMMENT,
    EventContext,
)

logger = logging.getLogger(__name__)


def contains_trigger(text: str | None, trigger_phrase: str) -> bool:
    """True if trigger_phrase appears in text as a standalone token.

    "@claude, fix this" and "please @claude." match; "@claudette" and
    "email@claude" do not.
    """
    if not text or not trigger_phrase:
        return False
    pattern = rf"(^|\s){re.escape(trigger_phrase)}([\s.,!?;:]|$)"
    return re.search(pattern, text) is not None


def check_trigger(
    context: EventContext,
    trigger_phrase: str,
    assignee_trigger: str = "",
    direct_prompt: str = "",
) -> bool:
    if direct_prompt:
        logger.info("Direct prompt provided, triggering action")
        return True

    payload = context.payload
    event = context.event_name
    action = context.event_action

    if event == ISSUES:
        issue = payload.get("issue") or {}
        if action == "assigned" and assignee_trigger:
            assignee = (payload.get("assignee") or {}).get("login", "")
            wanted = assignee_trigger.lstrip("@")
            if assignee and assignee == wanted:
                logger.info("Issue assigned to trigger user %s", wanted)
                return True
        if action == "opened":
            for text in (issue.get("body"), issue.get("title")):
                if contains_trigger(text, trigger_phrase):
                    logger.info("Issue contains trigger phrase %s", trigger_phrase)
                    return True
        return False

    if event == PULL_REQUEST:
        pr = payload.get("pull_request") or {}
        return contains_trigger(pr.get("body"), trigger_phrase) or contains_trigger(pr.get("title"), trigger_phrase)

    if event == PULL_REQUEST_REVIEW:
        review = payload.get("review") or {}
        return contains_trigger(review.get("body"), trigger_phrase)

    if event in (ISSUE_COMMENT, PULL_REQUEST_REVIEW_COMMENT):
        comment = payload.get("comment") or {}
        return contains_trigger(comment.get("body"), trigger_phrase)

    return False
