"""Structured step outputs for the CI runner.

Values are appended to the file named by GITHUB_OUTPUT (Gitea Actions reads
the same file) so later pipeline stages can consume them.
"""

from __future__ import annotations

import logging
import uuid

logger = logging.getLogger(__name__)


class ActionOutputs:
    def __init__(self, path: str | None = None):
        self.path = path
        self.values: dict[str, str] = {}

    def set(self, name: str, value: object) -> None:
        text = str(value)
        self.values[name] = text
        if not self.path:
            logger.info("Output %s=%s (no output file configured)", name, text)
            return
        if "\n" in text:
            delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
            line = f"{name}<<{delimiter}\n{text}\n{delimiter}\n"
        else:
            line = f"{name}={text}\n"
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line)
