import os
from logging import Logger, getLogger
from urllib.parse import urlencode

import httpx

from github_dashboard.clients.errors.github import OAuthExchangeError

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_ACCESS_TOKEN_URL = "https://github.com/login/oauth/access_token"  # noqa: S105

DEFAULT_SCOPE = "repo,user"


def get_oauth_client_id() -> str:
    env_vars: tuple[str, ...] = ("GITHUB_CLIENT_ID", "CLIENT_ID")
    for env_var in env_vars:
        if value := os.getenv(env_var):
            return value
    msg = "GITHUB_CLIENT_ID or CLIENT_ID must be set"
    raise ValueError(msg)


def get_oauth_client_secret() -> str:
    env_vars: tuple[str, ...] = ("GITHUB_CLIENT_SECRET", "CLIENT_SECRET")
    for env_var in env_vars:
        if value := os.getenv(env_var):
            return value
    msg = "GITHUB_CLIENT_SECRET or CLIENT_SECRET must be set"
    raise ValueError(msg)


class GitHubOAuthClient:
    """Sends users to GitHub to authorize the dashboard and exchanges the returned code for an access token."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        scope: str = DEFAULT_SCOPE,
        http_client: httpx.AsyncClient | None = None,
        logger: Logger | None = None,
    ):
        self.client_id: str = client_id or get_oauth_client_id()
        self.client_secret: str = client_secret or get_oauth_client_secret()
        self.scope: str = scope
        self.http_client: httpx.AsyncClient | None = http_client
        self.logger: Logger = logger or getLogger(__name__)

    def authorize_url(self) -> str:
        return f"{GITHUB_AUTHORIZE_URL}?{urlencode({'client_id': self.client_id, 'scope': self.scope}, safe=',')}"

    async def exchange_code(self, code: str) -> str:
        """Exchange an OAuth callback code for an access token.

        Raises:
            OAuthExchangeError: If GitHub could not be reached or did not return an access token.
        """

        payload: dict[str, str] = {"client_id": self.client_id, "client_secret": self.client_secret, "code": code}

        self.logger.info("Exchanging OAuth code for an access token")

        try:
            if self.http_client is not None:
                response: httpx.Response = await self._post(self.http_client, payload)
            else:
                async with httpx.AsyncClient() as http_client:
                    response = await self._post(http_client, payload)

            _ = response.raise_for_status()
            data: dict[str, str] = response.json()  # pyright: ignore[reportAny]
        except (httpx.HTTPError, ValueError) as e:
            self.logger.exception("Error exchanging OAuth code")
            raise OAuthExchangeError(message=str(e)) from e

        if not (access_token := data.get("access_token")):
            raise OAuthExchangeError(message=data.get("error_description") or data.get("error") or "No access token returned.")

        return access_token

    async def _post(self, http_client: httpx.AsyncClient, payload: dict[str, str]) -> httpx.Response:
        return await http_client.post(GITHUB_ACCESS_TOKEN_URL, json=payload, headers={"Accept": "application/json"})
