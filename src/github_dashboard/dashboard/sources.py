from collections.abc import Callable
from logging import Logger

import httpx
from fastmcp.utilities.logging import get_logger

from github_dashboard.clients.errors.github import AuthorizationError, RequestError
from github_dashboard.clients.github import DashboardGitHubClient
from github_dashboard.dashboard.models import RepositorySummary, repository_summaries_from_payload
from github_dashboard.dashboard.settings import DEFAULT_PER_PAGE

DEFAULT_DASHBOARD_API_URL = "http://localhost:5000"


class GitHubRepositoryPageSource:
    """Fetches pages of the authenticated user's repositories straight from GitHub."""

    def __init__(
        self,
        per_page: int = DEFAULT_PER_PAGE,
        client_factory: Callable[[str], DashboardGitHubClient] | None = None,
    ):
        self.per_page: int = per_page
        self.client_factory: Callable[[str], DashboardGitHubClient] = client_factory or (
            lambda access_token: DashboardGitHubClient(access_token=access_token)
        )

    async def fetch_page(self, page: int, access_token: str) -> list[RepositorySummary]:
        client: DashboardGitHubClient = self.client_factory(access_token)

        return await client.list_repositories(page=page, per_page=self.per_page)


class DashboardApiPageSource:
    """Fetches pages of repositories through the dashboard server's `/fetch-repos` route."""

    def __init__(
        self,
        base_url: str = DEFAULT_DASHBOARD_API_URL,
        http_client: httpx.AsyncClient | None = None,
        logger: Logger | None = None,
    ):
        self.http_client: httpx.AsyncClient = http_client or httpx.AsyncClient(base_url=base_url)
        self.logger: Logger = logger or get_logger(name=__name__)

    async def fetch_page(self, page: int, access_token: str) -> list[RepositorySummary]:
        action = "Fetch repositories"

        self.logger.info(f"Fetching page {page} from {self.http_client.base_url}")

        try:
            response: httpx.Response = await self.http_client.get(
                "/fetch-repos", params={"page": page}, headers={"Authorization": access_token}
            )
        except httpx.HTTPError as e:
            raise RequestError(action=action, message=str(e)) from e

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise AuthorizationError(action=action)

        if response.is_error:
            raise RequestError(action=action, message=f"{response.status_code}: {response.text}")

        try:
            payload = response.json()  # pyright: ignore[reportAny]
        except ValueError as e:
            raise RequestError(action=action, message=f"Invalid JSON: {e}") from e

        return repository_summaries_from_payload(payload)

    async def aclose(self) -> None:
        await self.http_client.aclose()
