"""Local git operations on the run's working checkout."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from forgehand_core.errors import GitCommandError

logger = logging.getLogger(__name__)


class GitCheckout:
    """The single working directory a run operates on.

    The run assumes exclusive access: nothing else fetches or checks out in
    this directory while it is active.
    """

    def __init__(self, workdir: str | Path = "."):
        self.workdir = Path(workdir)

    def _run(self, *args: str) -> str:
        argv = ["git", *args]
        logger.debug("Running %s in %s", " ".join(argv), self.workdir)
        try:
            result = subprocess.run(argv, cwd=self.workdir, capture_output=True, text=True, check=False)
        except FileNotFoundError as e:
            raise GitCommandError("git executable not found") from e
        if result.returncode != 0:
            raise GitCommandError(
                f"{' '.join(argv)} exited with {result.returncode}: {result.stderr.strip() or result.stdout.strip()}"
            )
        return result.stdout

    def fetch_and_checkout(self, branch: str, depth: int) -> None:
        """Shallow-fetch branch from origin and check it out."""
        self._run("fetch", "origin", f"--depth={depth}", branch)
        self._run("checkout", branch)
        logger.info("Checked out %s (depth %d)", branch, depth)
