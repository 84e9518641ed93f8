"""API token resolution.

Resolution order (stops at first success):
  1. The platform's token environment variable
     (GITHUB_TOKEN for GitHub; GITEA_TOKEN, then GITHUB_TOKEN for Gitea)
  2. `gh auth token` (GitHub only; reuses a local GitHub CLI session)
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)


def resolve_token(platform: str = "github") -> str | None:
    """Return an API token for platform, or None if no source is available.

    Never raises; callers should check for None and emit a UsageError.
    """
    env_names = ("GITEA_TOKEN", "GITHUB_TOKEN") if platform == "gitea" else ("GITHUB_TOKEN",)
    for name in env_names:
        token = os.environ.get(name)
        if token:
            return token

    if platform != "github":
        return None

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            gh_token = result.stdout.strip()
            if gh_token:
                logger.debug("Resolved GitHub token via gh CLI session.")
                return gh_token
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # gh is not installed or timed out; fall through.
        pass

    return None
