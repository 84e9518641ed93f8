"""Rendering of the tracking comment body.

Every function here is pure: the same input always yields the same body,
which is what lets finalize be re-run without duplicating links.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

SPINNER_HTML = (
    '<img src="https://github.com/user-attachments/assets/5ac382c7-e004-429b-8e35-7feb3e8f9c6f" '
    'width="14px" height="14px" style="vertical-align: middle; margin-left: 4px;" />'
)

_WORKING_RE = re.compile(r"Claude Code is working[….]{1,3}(?:\s*<img[^>]*>)?", re.IGNORECASE)
_PLACEHOLDER = "I'll analyze this and get back to you."
_FINAL_HEADER_RE = re.compile(r"\A\*\*Claude (?:finished|encountered an error).*?\n---\n?", re.DOTALL)
_PR_LINK_RE = re.compile(r"\[Create (?:a )?PR(?: ➔)?\]\(([^)\s]+)\)")
_JOB_RUN_LINK_RE = re.compile(r"\n?\[View job run\]\([^)]+\)")
_BRANCH_LINK_RE = re.compile(r"\n?\[View branch\]\([^)]+\)")
_DURATION_RE = re.compile(r"\n*---\n*Duration: [0-9]+m? [0-9]+s")
_MARKDOWN_URL_RE = re.compile(r"\((https?://[^)\s]+)\)")


@dataclass(frozen=True)
class ExecutionDetails:
    cost_usd: float | None = None
    duration_ms: float | None = None
    duration_api_ms: float | None = None


@dataclass(frozen=True)
class CommentUpdateInput:
    current_body: str
    action_failed: bool
    job_url: str
    execution_details: ExecutionDetails | None = None
    branch_link: str = ""
    pr_link: str = ""
    branch_name: str | None = None
    trigger_username: str | None = None
    error_details: str | None = None


def create_job_run_link(server_url: str, owner: str, repo: str, run_id: str) -> str:
    return f"[View job run]({job_run_url(server_url, owner, repo, run_id)})"


def job_run_url(server_url: str, owner: str, repo: str, run_id: str) -> str:
    return f"{server_url.rstrip('/')}/{owner}/{repo}/actions/runs/{run_id}"


def branch_url(server_url: str, owner: str, repo: str, branch: str) -> str:
    return f"{server_url.rstrip('/')}/{owner}/{repo}/tree/{branch}"


def create_branch_link(server_url: str, owner: str, repo: str, branch: str) -> str:
    return f"\n[View branch]({branch_url(server_url, owner, repo, branch)})"


def create_comment_body(job_run_link: str, branch_link: str = "") -> str:
    return f"Claude Code is working… {SPINNER_HTML}\n\n{_PLACEHOLDER}\n\n{job_run_link}{branch_link}"


def format_duration(duration_ms: float) -> str:
    total_seconds = round(duration_ms / 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}m {seconds}s" if minutes > 0 else f"{seconds}s"


def _url_in(link: str) -> str:
    match = _MARKDOWN_URL_RE.search(link)
    return match.group(1) if match else ""


def _carried_pr_url(existing_urls: list[str], branch_name: str | None) -> str:
    """Return the first existing PR URL that still targets branch_name."""
    if not branch_name:
        return ""
    for url in existing_urls:
        if re.search(rf"/compare/[^?]+\.\.\.{re.escape(branch_name)}(?:\?|$)", url):
            return url
    return ""


def update_comment_body(data: CommentUpdateInput) -> str:
    """Render the final tracking comment.

    Output layout:

        **<status header>** —— [View job](url) • [`branch`](url) • [Create PR ➔](url)

        ```
        <error details, failures only>
        ```

        ---
        <whatever the assistant left in the comment>

    A fresh data.pr_link replaces any "Create PR" link already in the body.
    Without one, an existing link for the same branch is carried over, so
    rendering the same comment twice never adds a second one.
    """
    body = _WORKING_RE.sub("", data.current_body).strip()
    # A previous finalize left its own header; drop it so it is re-rendered
    # rather than stacked, but keep its PR link.
    existing_pr_urls = _PR_LINK_RE.findall(body)
    body = _FINAL_HEADER_RE.sub("", body)
    body = _PR_LINK_RE.sub("", body)

    duration = ""
    if data.execution_details is not None and data.execution_details.duration_ms is not None:
        duration = format_duration(data.execution_details.duration_ms)

    if data.action_failed:
        header = "**Claude encountered an error" + (f" after {duration}" if duration else "") + "**"
    else:
        username = data.trigger_username or "user"
        header = f"**Claude finished @{username}'s task" + (f" in {duration}" if duration else "") + "**"

    links = f" —— [View job]({data.job_url})"

    branch_name = data.branch_name
    link_url = _url_in(data.branch_link) if data.branch_link else ""
    if not branch_name and link_url:
        match = re.search(r"/tree/(.+)$", link_url)
        branch_name = match.group(1) if match else None
    if branch_name:
        if not link_url:
            repo_url = data.job_url.split("/actions/runs/")[0]
            link_url = f"{repo_url}/tree/{branch_name}"
        links += f" • [`{branch_name}`]({link_url})"

    pr_url = _url_in(data.pr_link) if data.pr_link else _carried_pr_url(existing_pr_urls, branch_name)
    if pr_url:
        links += f" • [Create PR ➔]({pr_url})"

    new_body = header + links
    if data.action_failed and data.error_details:
        new_body += f"\n\n```\n{data.error_details}\n```"
    new_body += "\n\n---\n"

    body = _JOB_RUN_LINK_RE.sub("", body)
    body = _BRANCH_LINK_RE.sub("", body)
    body = _DURATION_RE.sub("", body)

    return (new_body + body.strip()).strip()
