"""Tests for the tracking comment lifecycle."""

import json
from urllib.parse import unquote

import pytest

from forgehand_core.comments.body import ExecutionDetails, create_branch_link, create_comment_body, create_job_run_link
from forgehand_core.comments.tracking import (
    CommentNamespace,
    FinalizeSettings,
    build_pr_url,
    comment_lookup_order,
    create_initial_comment,
    finalize,
    has_pr_link,
    locate_comment,
    resolve_pr_link,
    update_with_branch,
)
from forgehand_core.errors import CommentNotFound, CommentWriteFailed, ForgeError, UnsupportedCapability
from forgehand_core.execution import ExecutionOutcome, read_execution_outcome
from forgehand_core.forges.base import BranchComparison, CommentInfo
from forgehand_core.outputs import ActionOutputs

BRANCH = "claude/issue-42-20240101_000000"
SUCCESS = ExecutionOutcome(action_failed=False)


def _started_body(branch=BRANCH):
    branch_link = create_branch_link("https://github.com", "owner", "repo", branch) if branch else ""
    return create_comment_body(create_job_run_link("https://github.com", "owner", "repo", "1234"), branch_link)


def _written_body(forge, method="update_issue_comment"):
    args = getattr(forge, method).call_args.args
    return args[4]


class TestCreateInitialComment:
    def test_posts_through_issue_endpoint(self, forge, make_context):
        comment_id = create_initial_comment(forge, make_context("issues", number=42))

        assert comment_id == 101
        owner, repo, number, body = forge.create_issue_comment.call_args.args
        assert (owner, repo, number) == ("owner", "repo", 42)
        assert body.startswith("Claude Code is working…")
        assert "[View job run](https://github.com/owner/repo/actions/runs/1234)" in body

    def test_review_comment_event_still_uses_issue_endpoint(self, forge, make_context):
        create_initial_comment(forge, make_context("pull_request_review_comment", number=9))
        forge.create_issue_comment.assert_called_once()

    def test_sets_comment_id_output(self, forge, make_context):
        outputs = ActionOutputs()
        create_initial_comment(forge, make_context(), outputs)
        assert outputs.values["claude_comment_id"] == "101"

    def test_failure_raises(self, forge, make_context):
        forge.create_issue_comment.side_effect = ForgeError("Forbidden", status=403)
        with pytest.raises(CommentWriteFailed):
            create_initial_comment(forge, make_context())


class TestUpdateWithBranch:
    def test_adds_branch_link_on_issue(self, forge, make_context):
        assert update_with_branch(forge, make_context("issues", number=42), 101, BRANCH) is True

        owner, repo, number, comment_id, body = forge.update_issue_comment.call_args.args
        assert (owner, repo, number, comment_id) == ("owner", "repo", 42, 101)
        assert body.endswith(f"[View branch](https://github.com/owner/repo/tree/{BRANCH})")

    def test_noop_on_pull_request(self, forge, make_context):
        assert update_with_branch(forge, make_context("pull_request", number=9), 101, "claude/pr-9-x") is False
        forge.update_issue_comment.assert_not_called()

    def test_noop_on_issue_comment_in_pr_thread(self, forge, make_context):
        ctx = make_context("issue_comment", number=9, is_pr=True)
        assert update_with_branch(forge, ctx, 101, BRANCH) is False
        forge.update_issue_comment.assert_not_called()

    def test_noop_without_branch(self, forge, make_context):
        assert update_with_branch(forge, make_context(), 101, None) is False
        forge.update_issue_comment.assert_not_called()

    def test_failure_raises(self, forge, make_context):
        forge.update_issue_comment.side_effect = ForgeError("boom")
        with pytest.raises(CommentWriteFailed):
            update_with_branch(forge, make_context(), 101, BRANCH)


class TestLocateComment:
    def test_lookup_order_for_review_comment_event(self, make_context):
        ctx = make_context("pull_request_review_comment", number=9)
        assert comment_lookup_order(ctx) == (CommentNamespace.REVIEW_COMMENT, CommentNamespace.ISSUE_COMMENT)

    @pytest.mark.parametrize("event_name", ["issues", "issue_comment", "pull_request", "pull_request_review"])
    def test_lookup_order_for_other_events(self, make_context, event_name):
        assert comment_lookup_order(make_context(event_name))[0] is CommentNamespace.ISSUE_COMMENT

    def test_review_event_finds_review_comment(self, forge, make_context):
        forge.get_review_comment.return_value = CommentInfo(id=101, body="review body")

        comment = locate_comment(forge, make_context("pull_request_review_comment", number=9), 101)

        assert comment.namespace is CommentNamespace.REVIEW_COMMENT
        assert comment.body == "review body"
        forge.get_issue_comment.assert_not_called()

    def test_review_event_falls_back_to_issue_comment(self, forge, make_context):
        forge.get_review_comment.side_effect = ForgeError("Not Found", status=404)
        forge.get_issue_comment.return_value = CommentInfo(id=101, body="issue body")

        comment = locate_comment(forge, make_context("pull_request_review_comment", number=9), 101)

        assert comment.namespace is CommentNamespace.ISSUE_COMMENT
        assert comment.body == "issue body"

    def test_issue_event_falls_back_to_review_comment(self, forge, make_context):
        forge.get_issue_comment.side_effect = ForgeError("Not Found", status=404)

        comment = locate_comment(forge, make_context("pull_request", number=9), 101)

        assert comment.namespace is CommentNamespace.REVIEW_COMMENT

    def test_unsupported_review_endpoint_falls_back(self, forge, make_context):
        forge.get_review_comment.side_effect = UnsupportedCapability("no review comment endpoint")

        comment = locate_comment(forge, make_context("pull_request_review_comment", number=9), 101)

        assert comment.namespace is CommentNamespace.ISSUE_COMMENT

    def test_not_found_in_either_namespace(self, forge, make_context):
        forge.get_issue_comment.side_effect = ForgeError("Not Found", status=404)
        forge.get_review_comment.side_effect = ForgeError("Not Found", status=404)

        with pytest.raises(CommentNotFound) as exc_info:
            locate_comment(forge, make_context("pull_request", number=9), 555)

        message = str(exc_info.value)
        assert "555" in message
        assert "pull_request" in message
        assert "owner/repo" in message
        forge.get_pull_request.assert_called_once_with("owner", "repo", 9)


class TestPrLink:
    def test_build_pr_url_for_issue(self, make_context):
        url = build_pr_url("https://github.com", make_context("issues", number=42), "main", BRANCH)

        prefix = f"https://github.com/owner/repo/compare/main...{BRANCH}?quick_pull=1&title="
        assert url.startswith(prefix)
        title, body = url[len(prefix) :].split("&body=")
        assert unquote(title) == "Issue #42: Changes from Claude"
        assert unquote(body).startswith("This PR addresses issue #42\n\n")
        assert " " not in url
        assert "(" not in url and ")" not in url

    def test_build_pr_url_for_pr(self, make_context):
        url = build_pr_url("https://github.com", make_context("pull_request", number=9), "main", "claude/pr-9-x")
        assert "title=PR%20%239%3A%20Changes%20from%20Claude" in url

    def test_has_pr_link(self):
        body = f"[Create PR ➔](https://github.com/owner/repo/compare/main...{BRANCH}?quick_pull=1)"
        assert has_pr_link(body, "https://github.com", "main")
        assert not has_pr_link(body, "https://github.com", "develop")
        assert not has_pr_link("nothing here", "https://github.com", "main")

    def test_existing_link_not_rechecked(self, forge, make_context):
        body = f"[Create PR ➔](https://github.com/owner/repo/compare/main...{BRANCH}?quick_pull=1)"
        result = resolve_pr_link(forge, make_context(), body, "main", BRANCH)
        assert result.value == ""
        forge.compare_branches.assert_not_called()

    def test_no_changes_means_no_link(self, forge, make_context):
        forge.compare_branches.return_value = BranchComparison(total_commits=0, changed_files=0)
        result = resolve_pr_link(forge, make_context(), "", "main", BRANCH)
        assert result.value == ""
        assert not result.degraded

    def test_changes_produce_link(self, forge, make_context):
        forge.compare_branches.return_value = BranchComparison(total_commits=2, changed_files=3)
        result = resolve_pr_link(forge, make_context(), "", "main", BRANCH)
        assert result.value.startswith("\n[Create a PR](https://github.com/owner/repo/compare/main...")

    def test_unsupported_comparison_offers_link(self, forge, make_context):
        forge.compare_branches.return_value = None
        result = resolve_pr_link(forge, make_context(), "", "main", BRANCH)
        assert "[Create a PR]" in result.value

    def test_comparison_error_falls_back_to_no_link(self, forge, make_context):
        forge.compare_branches.side_effect = ForgeError("Server Error", status=500)
        result = resolve_pr_link(forge, make_context(), "", "main", BRANCH)
        assert result.value == ""
        assert result.degraded


class TestFinalize:
    def _settings(self, branch=BRANCH):
        return FinalizeSettings(base_branch="main", claude_branch=branch, trigger_username="alice")

    def test_issue_run_with_changes(self, forge, make_context):
        forge.get_issue_comment.return_value = CommentInfo(id=101, body=_started_body())
        forge.compare_branches.return_value = BranchComparison(total_commits=1, changed_files=1)

        body = finalize(forge, make_context("issues", number=42), 101, self._settings(), SUCCESS)

        header = body.splitlines()[0]
        assert header.startswith("**Claude finished @alice's task** —— [View job](")
        assert f"[`{BRANCH}`](https://github.com/owner/repo/tree/{BRANCH})" in header
        assert "[Create PR ➔](https://github.com/owner/repo/compare/main..." in header
        assert _written_body(forge) == body
        forge.delete_branch.assert_not_called()

    def test_empty_branch_is_deleted_and_not_mentioned(self, forge, make_context):
        forge.get_issue_comment.return_value = CommentInfo(id=101, body=_started_body())
        forge.compare_branches.return_value = BranchComparison(total_commits=0, changed_files=0)

        body = finalize(forge, make_context("issues", number=42), 101, self._settings(), SUCCESS)

        forge.delete_branch.assert_called_once_with("owner", "repo", BRANCH)
        assert BRANCH not in body
        assert "Create PR" not in body

    def test_deleted_branch_omitted_even_if_delete_fails(self, forge, make_context):
        forge.compare_branches.return_value = BranchComparison(total_commits=0, changed_files=0)
        forge.delete_branch.side_effect = ForgeError("Forbidden", status=403)

        body = finalize(forge, make_context(), 101, self._settings(), SUCCESS)

        assert BRANCH not in body

    def test_unsupported_comparison_keeps_branch_and_offers_link(self, forge, make_context):
        forge.compare_branches.return_value = None

        body = finalize(forge, make_context(), 101, self._settings(), SUCCESS)

        forge.delete_branch.assert_not_called()
        assert f"[`{BRANCH}`]" in body
        assert "[Create PR ➔]" in body

    def test_comparison_error_keeps_branch_without_link(self, forge, make_context):
        forge.compare_branches.side_effect = ForgeError("Server Error", status=500)

        body = finalize(forge, make_context(), 101, self._settings(), SUCCESS)

        assert f"[`{BRANCH}`]" in body
        assert "Create PR" not in body

    def test_cleanup_crash_is_not_fatal(self, forge, make_context):
        forge.compare_branches.side_effect = [RuntimeError("unexpected"), BranchComparison(1, 1)]

        body = finalize(forge, make_context(), 101, self._settings(), SUCCESS)

        assert f"[`{BRANCH}`]" in body
        forge.update_issue_comment.assert_called_once()

    def test_open_pr_run_has_no_branch_or_link(self, forge, make_context):
        body = finalize(forge, make_context("pull_request", number=9), 101, self._settings(branch=None), SUCCESS)

        forge.compare_branches.assert_not_called()
        assert "tree/" not in body
        assert "Create PR" not in body

    def test_rerun_is_idempotent(self, forge, make_context):
        ctx = make_context("issues", number=42)
        forge.get_issue_comment.return_value = CommentInfo(id=101, body=_started_body())
        forge.compare_branches.return_value = BranchComparison(total_commits=1, changed_files=1)
        first = finalize(forge, ctx, 101, self._settings(), SUCCESS)

        forge.get_issue_comment.return_value = CommentInfo(id=101, body=first)
        second = finalize(forge, ctx, 101, self._settings(), SUCCESS)

        assert second == first
        assert second.count("Create PR") == 1

    def test_bare_compare_url_left_untouched(self, forge, make_context):
        ctx = make_context("issues", number=42)
        url = f"https://github.com/owner/repo/compare/main...{BRANCH}"
        forge.get_issue_comment.return_value = CommentInfo(id=101, body=f"Pushed the fix.\n\n{url}")
        forge.compare_branches.return_value = BranchComparison(total_commits=1, changed_files=1)
        first = finalize(forge, ctx, 101, self._settings(), SUCCESS)

        forge.get_issue_comment.return_value = CommentInfo(id=101, body=first)
        second = finalize(forge, ctx, 101, self._settings(), SUCCESS)

        assert second == first
        assert first.endswith(f"---\nPushed the fix.\n\n{url}")
        assert first.count("/compare/") == 1
        assert "Create PR" not in first

    def test_prepare_failure_renders_error(self, forge, make_context):
        outcome = ExecutionOutcome(action_failed=True, error_details="Actor alice does not have write permissions")

        body = finalize(forge, make_context(), 101, self._settings(branch=None), outcome)

        assert body.startswith("**Claude encountered an error**")
        assert "```\nActor alice does not have write permissions\n```" in body

    def test_duration_rendered(self, forge, make_context):
        outcome = ExecutionOutcome(action_failed=False, execution_details=ExecutionDetails(0.5, 65_000, 60_000))
        body = finalize(forge, make_context(), 101, self._settings(branch=None), outcome)
        assert body.startswith("**Claude finished @alice's task in 1m 5s**")

    def test_malformed_execution_log_still_finalizes(self, forge, make_context, tmp_path):
        log = tmp_path / "execution.json"
        log.write_text(json.dumps([{"type": "result", "cost_usd": 0.1, "duration_ms": "abc"}]))
        outcome = read_execution_outcome(True, None, str(log), claude_success=True)

        body = finalize(forge, make_context(), 101, self._settings(branch=None), outcome)

        assert body.startswith("**Claude finished @alice's task** —— ")
        forge.update_issue_comment.assert_called_once()

    def test_review_comment_written_through_review_endpoint(self, forge, make_context):
        forge.get_review_comment.return_value = CommentInfo(id=101, body="inline")

        finalize(
            forge,
            make_context("pull_request_review_comment", number=9),
            101,
            self._settings(branch=None),
            SUCCESS,
        )

        forge.update_review_comment.assert_called_once()
        forge.update_issue_comment.assert_not_called()
        assert forge.update_review_comment.call_args.args[:4] == ("owner", "repo", 9, 101)

    def test_issue_comment_found_from_review_event_written_through_issue_endpoint(self, forge, make_context):
        forge.get_review_comment.side_effect = ForgeError("Not Found", status=404)

        finalize(
            forge,
            make_context("pull_request_review_comment", number=9),
            101,
            self._settings(branch=None),
            SUCCESS,
        )

        forge.update_issue_comment.assert_called_once()
        forge.update_review_comment.assert_not_called()

    def test_comment_not_found_is_fatal(self, forge, make_context):
        forge.get_issue_comment.side_effect = ForgeError("Not Found", status=404)
        forge.get_review_comment.side_effect = ForgeError("Not Found", status=404)

        with pytest.raises(CommentNotFound):
            finalize(forge, make_context(), 101, self._settings(), SUCCESS)
        forge.update_issue_comment.assert_not_called()
        forge.update_review_comment.assert_not_called()

    def test_write_failure_is_fatal(self, forge, make_context):
        forge.update_issue_comment.side_effect = ForgeError("Forbidden", status=403)

        with pytest.raises(CommentWriteFailed):
            finalize(forge, make_context(), 101, self._settings(), SUCCESS)
