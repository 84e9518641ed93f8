"""Tool-server launch configuration for the assistant job.

A pure transform: identifiers and settings in, a JSON document out. The
servers themselves are launched by the assistant runtime, not by forgehand.
"""

from __future__ import annotations

import json

from forgehand_core.config import RunConfig

GITHUB_MCP_IMAGE = "ghcr.io/anthropics/github-mcp-server:sha-7382253"
GITEA_MCP_IMAGE = "docker.gitea.com/gitea-mcp-server"


def build_mcp_servers(github_token: str, owner: str, repo: str, branch: str, config: RunConfig) -> dict:
    servers: dict[str, dict] = {
        "github": {
            "command": "docker",
            "args": ["run", "-i", "--rm", "-e", "GITHUB_PERSONAL_ACCESS_TOKEN", GITHUB_MCP_IMAGE],
            "env": {"GITHUB_PERSONAL_ACCESS_TOKEN": github_token},
        },
        "github_file_ops": {
            "command": "bun",
            "args": ["run", f"{config.action_path}/src/mcp/github-file-ops-server.ts"],
            "env": {
                "GITHUB_TOKEN": github_token,
                "REPO_OWNER": owner,
                "REPO_NAME": repo,
                "BRANCH_NAME": branch,
                "REPO_DIR": config.workspace,
            },
        },
    }

    if config.use_gitea:
        host = config.gitea_host.rstrip("/") if config.gitea_host else None
        env: dict[str, str] = {"GITEA_ACCESS_TOKEN": config.gitea_token}
        if host:
            env["GITEA_HOST"] = host
            env["GITEA_SERVER_URL"] = host
            env["GITEA_API_URL"] = f"{host}/api/v1"
        if config.platform == "gitea":
            env["GITEA_API_URL"] = config.api_url
        servers["gitea"] = {
            "command": "docker",
            "args": ["run", "-i", "--rm", "-e", "GITEA_ACCESS_TOKEN", GITEA_MCP_IMAGE],
            "env": env,
        }

    return servers


def prepare_mcp_config(github_token: str, owner: str, repo: str, branch: str, config: RunConfig) -> str:
    return json.dumps({"mcpServers": build_mcp_servers(github_token, owner, repo, branch, config)}, indent=2)
