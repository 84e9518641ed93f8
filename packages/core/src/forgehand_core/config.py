"""Run configuration.

Everything a run needs from its environment is resolved once, at process
start, into a frozen RunConfig that is passed by value into the core. Nothing
below this module reads os.environ.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping, Optional

import yaml

from forgehand_core.errors import ConfigError

PLATFORMS = ("github", "gitea")

DEFAULT_CONFIG: dict = {
    "platform": "github",
    "trigger_phrase": "@claude",
    "assignee_trigger": "",
    "direct_prompt": "",
    "base_branch": None,
    "server_url": None,  # None = platform default, see _resolve_urls
    "api_url": None,
    "use_gitea": False,
    "gitea_host": None,
    "gitea_token": "",
    "action_path": "",
}

# Settings that may come from the YAML file. Run identifiers and job signals
# are per-invocation and only ever come from the environment or the CLI.
_FILE_KEYS = frozenset(DEFAULT_CONFIG)


@dataclass(frozen=True)
class RunConfig:
    platform: str = "github"
    trigger_phrase: str = "@claude"
    assignee_trigger: str = ""
    direct_prompt: str = ""
    base_branch: Optional[str] = None
    server_url: str = "https://github.com"
    api_url: str = "https://api.github.com"

    # Event identity, provided by the CI runner.
    event_name: Optional[str] = None
    event_path: Optional[str] = None
    run_id: Optional[str] = None
    repository: Optional[str] = None
    actor: Optional[str] = None

    # Hand-off values from the prepare phase and the assistant job.
    comment_id: Optional[int] = None
    claude_branch: Optional[str] = None
    trigger_username: Optional[str] = None
    prepare_success: bool = True
    prepare_error: Optional[str] = None
    claude_success: bool = True
    output_file: Optional[str] = None
    github_output: Optional[str] = None

    # Tool-server launch settings.
    workspace: str = "."
    action_path: str = ""
    use_gitea: bool = False
    gitea_host: Optional[str] = None
    gitea_token: str = ""

    @property
    def owner_and_repo(self) -> tuple[str, str]:
        if not self.repository or "/" not in self.repository:
            raise ConfigError(f"Repository must be in owner/name format, got {self.repository!r}")
        owner, _, name = self.repository.partition("/")
        return owner, name

    def require(self, *names: str) -> None:
        """Raise ConfigError naming every listed field that is unset."""
        missing = [name for name in names if getattr(self, name) in (None, "")]
        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}")


def get_platform(env: Mapping[str, str] | None = None) -> str:
    env = os.environ if env is None else env
    value = (env.get("PLATFORM") or "github").lower()
    if value not in PLATFORMS:
        raise ConfigError(f"Invalid PLATFORM value: {value}. Expected 'github' or 'gitea'.")
    return value


def _flag(value: str | None, default: bool) -> bool:
    """Job signals are true unless explicitly the literal string 'false'."""
    if value is None:
        return default
    return value.strip().lower() != "false"


def _opt_in(value: str | None) -> bool:
    return value is not None and value.strip().lower() == "true"


def _from_env(env: Mapping[str, str], platform: str) -> dict:
    prefix = "GITEA" if platform == "gitea" else "GITHUB"

    def ci(name: str) -> str | None:
        # Gitea runners also export the GITHUB_* names; prefer the native ones.
        return env.get(f"{prefix}_{name}") or env.get(f"GITHUB_{name}")

    values: dict = {
        "platform": platform,
        "trigger_phrase": env.get("TRIGGER_PHRASE"),
        "assignee_trigger": env.get("ASSIGNEE_TRIGGER"),
        "direct_prompt": env.get("DIRECT_PROMPT"),
        "base_branch": env.get("BASE_BRANCH") or None,
        "server_url": ci("SERVER_URL"),
        "api_url": ci("API_URL"),
        "event_name": ci("EVENT_NAME"),
        "event_path": ci("EVENT_PATH"),
        "run_id": ci("RUN_ID"),
        "repository": ci("REPOSITORY"),
        "actor": ci("ACTOR"),
        "claude_branch": env.get("CLAUDE_BRANCH") or None,
        "trigger_username": env.get("TRIGGER_USERNAME") or None,
        "prepare_success": _flag(env.get("PREPARE_SUCCESS"), True),
        "prepare_error": env.get("PREPARE_ERROR") or None,
        "claude_success": _flag(env.get("CLAUDE_SUCCESS"), True),
        "output_file": env.get("OUTPUT_FILE") or None,
        "github_output": env.get("GITHUB_OUTPUT") or None,
        "workspace": env.get("GITHUB_WORKSPACE"),
        "action_path": env.get("GITHUB_ACTION_PATH"),
        "gitea_host": env.get("GITEA_HOST") or env.get("GITEA_SERVER_URL"),
        "gitea_token": env.get("GITEA_ACCESS_TOKEN"),
    }
    if _opt_in(env.get("USE_GITEA")):
        values["use_gitea"] = True

    comment_id = env.get("CLAUDE_COMMENT_ID")
    if comment_id:
        values["comment_id"] = comment_id
    return {k: v for k, v in values.items() if v is not None}


def _resolve_urls(config: dict) -> None:
    if config["platform"] == "github":
        config["server_url"] = config.get("server_url") or "https://github.com"
        config["api_url"] = config.get("api_url") or "https://api.github.com"
        return
    server_url = config.get("server_url") or config.get("gitea_host")
    if not server_url:
        raise ConfigError("GITEA_SERVER_URL must be set when PLATFORM=gitea")
    config["server_url"] = server_url
    config["api_url"] = config.get("api_url") or f"{server_url.rstrip('/')}/api/v1"


def load_config(
    config_path: str = ".forgehand.yml",
    cli_overrides: Optional[dict] = None,
    env: Mapping[str, str] | None = None,
) -> RunConfig:
    """
    Build the RunConfig by merging (in order of precedence):
      1. Built-in defaults
      2. .forgehand.yml in the current directory
      3. Environment variables
      4. CLI argument overrides
    """
    env = os.environ if env is None else env
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ConfigError(f"{config_path} must contain a mapping")
        unknown = set(file_config) - _FILE_KEYS
        if unknown:
            raise ConfigError(f"Unknown keys in {config_path}: {', '.join(sorted(unknown))}")
        config.update(file_config)

    # The platform picks the env prefix, so settle it before reading the env.
    cli_platform = (cli_overrides or {}).get("platform")
    if cli_platform:
        platform = cli_platform
    elif env.get("PLATFORM"):
        platform = get_platform(env)
    else:
        platform = config["platform"]
    config.update(_from_env(env, platform))

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if config["platform"] not in PLATFORMS:
        raise ConfigError(f"Invalid platform: {config['platform']!r}. Expected 'github' or 'gitea'.")
    _resolve_urls(config)

    if config.get("comment_id") is not None:
        try:
            config["comment_id"] = int(config["comment_id"])
        except (TypeError, ValueError):
            raise ConfigError(f"CLAUDE_COMMENT_ID must be an integer, got {config['comment_id']!r}")

    config.setdefault("workspace", os.getcwd())
    known = {f.name for f in fields(RunConfig)}
    return RunConfig(**{k: v for k, v in config.items() if k in known})
