"""Per-operation connection parameters: effective URL and credentials."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Callable

from .models import Credentials
from .settings import SyncConfiguration

logger = logging.getLogger(__name__)

# Username accepted by GitHub/GitLab/Gitea when the password is a token
TOKEN_USERNAME = "x-oauth-basic"


def effective_url(repo_url: str, cors_proxy: str = "") -> str:
    """Prefix the repository URL with the CORS relay, if one is configured.

    Exactly one trailing slash is removed from the relay before joining, so
    ``https://proxy/`` and ``https://proxy`` give the same result while
    ``https://proxy//`` keeps one of its slashes.
    """
    if not cors_proxy:
        return repo_url

    proxy = cors_proxy[:-1] if cors_proxy.endswith("/") else cors_proxy
    return f"{proxy}/{repo_url}"


@dataclass(frozen=True)
class TransportParams:
    """Where to connect and how to authenticate."""

    url: str
    auth: Callable[[], Credentials]

    def git_env(self) -> dict[str, str]:
        """Environment for the git process.

        The credentials are sent as a basic auth header through git's
        ``GIT_CONFIG_*`` variables so the token never appears on the
        command line or in the remote URL.
        """
        env = {"GIT_TERMINAL_PROMPT": "0"}

        credentials = self.auth()
        if credentials.password:
            raw = f"{credentials.username}:{credentials.password}".encode("utf-8")
            token = base64.b64encode(raw).decode("ascii")
            env.update({
                "GIT_CONFIG_COUNT": "1",
                "GIT_CONFIG_KEY_0": "http.extraHeader",
                "GIT_CONFIG_VALUE_0": f"Authorization: Basic {token}",
            })
        return env


def resolve_transport(config: SyncConfiguration) -> TransportParams:
    """Build connection parameters from the current settings."""
    url = effective_url(config.repo_url, config.cors_proxy)
    if config.cors_proxy:
        logger.info(f"Using CORS proxy: {config.cors_proxy}")

    token = config.access_token

    def auth() -> Credentials:
        return Credentials(username=TOKEN_USERNAME, password=token)

    return TransportParams(url=url, auth=auth)
