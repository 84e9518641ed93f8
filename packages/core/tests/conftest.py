"""Shared fixtures for forgehand-core tests."""

from unittest.mock import MagicMock

import pytest

from forgehand_core.context import parse_event_context
from forgehand_core.forges.base import CommentInfo, Forge
from forgehand_core.git import GitCheckout

SERVER_URL = "https://github.com"


@pytest.fixture
def forge():
    """A Forge double that records calls; tests set return values as needed."""
    fake = MagicMock(spec=Forge)
    fake.server_url = SERVER_URL
    fake.create_issue_comment.return_value = 101
    fake.get_issue_comment.return_value = CommentInfo(id=101, body="")
    fake.get_review_comment.return_value = CommentInfo(id=101, body="")
    fake.get_default_branch.return_value = "main"
    fake.compare_branches.return_value = None
    return fake


@pytest.fixture
def git():
    return MagicMock(spec=GitCheckout)


@pytest.fixture
def make_context():
    def _make(event_name="issues", number=42, is_pr=None, payload=None, action=None):
        if payload is None:
            if event_name in ("issues", "issue_comment"):
                issue = {"number": number}
                if is_pr:
                    issue["pull_request"] = {"url": "https://api.github.com/repos/owner/repo/pulls/1"}
                payload = {"issue": issue}
            else:
                payload = {"pull_request": {"number": number}}
            if action:
                payload["action"] = action
        return parse_event_context(event_name, payload, repository="owner/repo", actor="alice", run_id="1234")

    return _make
