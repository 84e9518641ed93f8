from __future__ import annotations

from forgehand_core.config import RunConfig
from forgehand_core.forges.base import BranchComparison, CommentInfo, Forge, PullRequestInfo

__all__ = ["BranchComparison", "CommentInfo", "Forge", "PullRequestInfo", "build_forge"]


def build_forge(config: RunConfig, token: str) -> Forge:
    """Instantiate the adapter for config.platform.

    Adapters are imported lazily so a Gitea run never needs PyGithub
    configured and vice versa.
    """
    if config.platform == "gitea":
        from forgehand_core.forges.gitea import GiteaForge

        return GiteaForge(token=token, server_url=config.server_url, api_url=config.api_url)

    from forgehand_core.forges.github import GitHubForge

    return GitHubForge(token=token, server_url=config.server_url, api_url=config.api_url)
