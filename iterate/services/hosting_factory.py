"""Factory for creating hosting collaborators from settings."""

import logging

from ..config.settings import Settings
from ..exceptions import ConfigurationError
from ..protocols.hosting_protocol import HostingProtocol
from .github_client import GitHubClient
from .local_git_host import LocalGitHost

logger = logging.getLogger(__name__)


def create_hosting_client(
    backend: str,
    github_token: str = "",
    api_url: str = "https://api.github.com",
    local_path: str = ".",
    timeout: float = 30.0,
    read_retries: int = 2,
) -> HostingProtocol:
    """
    Create a hosting collaborator for the configured backend.

    Args:
        backend: "github" for the REST API, "local" for a clone on disk
        github_token: Token used against the GitHub API
        api_url: Base URL of the GitHub API
        local_path: Path of the local clone
        timeout: Per-request timeout in seconds
        read_retries: Extra attempts for idempotent reads

    Returns:
        HostingProtocol implementation
    """
    if backend == "local":
        logger.debug(f"Using local git backend at {local_path}")
        return LocalGitHost(local_path)
    if backend == "github":
        return GitHubClient(
            token=github_token,
            api_url=api_url,
            timeout=timeout,
            read_retries=read_retries,
        )
    raise ConfigurationError(f"Unknown HOSTING_BACKEND {backend!r}")


def create_hosting_client_from_settings(settings: Settings) -> HostingProtocol:
    return create_hosting_client(
        backend=settings.HOSTING_BACKEND,
        github_token=settings.GITHUB_TOKEN,
        api_url=settings.GITHUB_API_URL,
        local_path=settings.LOCAL_REPO_PATH,
        timeout=settings.REQUEST_TIMEOUT,
        read_retries=settings.READ_RETRIES,
    )
