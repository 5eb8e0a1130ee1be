from collections.abc import Callable
from logging import Logger
from typing import Any

from fastmcp import FastMCP
from fastmcp.tools import Tool
from fastmcp.utilities.logging import get_logger
from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response

from github_dashboard.clients.errors.github import AuthorizationError, ClientError, OAuthExchangeError, ResourceNotFoundError
from github_dashboard.clients.github import DashboardGitHubClient, get_github_token, parse_authorization_header
from github_dashboard.clients.models.github import CreateRepositoryRequest, RepositoryDetails
from github_dashboard.clients.oauth import GitHubOAuthClient
from github_dashboard.dashboard.languages import LanguagePercentages, LanguageUsage
from github_dashboard.dashboard.models import RepositorySummary
from github_dashboard.dashboard.query import SortOrder
from github_dashboard.dashboard.settings import DashboardSettings
from github_dashboard.dashboard.sources import GitHubRepositoryPageSource
from github_dashboard.dashboard.sync import RepositoryViewModel
from github_dashboard.review.reviewer import CodeReviewer, CodeReviewError
from github_dashboard.servers.shared.annotations import CODE_SNIPPET, REPOSITORY_ID, SEARCH_TERM, SORT_ORDER
from github_dashboard.servers.shared.errors import CodeReviewUnavailableError, MissingAccessTokenError

ClientFactory = Callable[[str], DashboardGitHubClient]


def default_client_factory(access_token: str) -> DashboardGitHubClient:
    return DashboardGitHubClient(access_token=access_token)


def error_response(message: str, status_code: int, details: str | None = None) -> JSONResponse:
    content: dict[str, str] = {"error": message}

    if details:
        content["details"] = details

    return JSONResponse(content=content, status_code=status_code)


def client_error_response(error: ClientError, message: str) -> JSONResponse:
    """Map a client error to the response returned by the dashboard routes."""

    if isinstance(error, AuthorizationError):
        return error_response(message="Unauthorized", status_code=401, details=str(error))

    if isinstance(error, ResourceNotFoundError):
        return error_response(message=message, status_code=404, details=str(error))

    return error_response(message=message, status_code=500, details=str(error))


class DashboardServer:
    """Proxies the dashboard's calls to GitHub and to the code reviewer.

    The HTTP routes act on behalf of the access token sent in each request's Authorization header, the MCP tools act on
    behalf of the server's own GitHub token."""

    def __init__(
        self,
        client_factory: ClientFactory | None = None,
        oauth_client: GitHubOAuthClient | None = None,
        code_reviewer: CodeReviewer | None = None,
        settings: DashboardSettings | None = None,
        logger: Logger | None = None,
    ):
        self.client_factory: ClientFactory = client_factory or default_client_factory
        self.code_reviewer: CodeReviewer | None = code_reviewer
        self.settings: DashboardSettings = settings or DashboardSettings()
        self.logger: Logger = logger or get_logger(name=__name__)

        self._oauth_client: GitHubOAuthClient | None = oauth_client

    @property
    def oauth_client(self) -> GitHubOAuthClient:
        if self._oauth_client is None:
            self._oauth_client = GitHubOAuthClient(logger=self.logger)

        return self._oauth_client

    def register_routes(self, fastmcp: FastMCP[Any]) -> FastMCP[Any]:
        _ = fastmcp.custom_route("/auth/github", methods=["GET"])(self.auth_redirect)
        _ = fastmcp.custom_route("/auth/github/callback", methods=["GET"])(self.auth_callback)
        _ = fastmcp.custom_route("/fetch-repos", methods=["GET"])(self.fetch_repositories)
        _ = fastmcp.custom_route("/user", methods=["GET"])(self.fetch_user)
        _ = fastmcp.custom_route("/create-repo", methods=["POST"])(self.create_repository)
        _ = fastmcp.custom_route("/repo/{repository_id:int}", methods=["GET"])(self.fetch_repository)
        _ = fastmcp.custom_route("/repo/{repository_id:int}/languages", methods=["GET"])(self.fetch_repository_languages)
        _ = fastmcp.custom_route("/codeReview", methods=["POST"])(self.code_review)

        return fastmcp

    def register_tools(self, fastmcp: FastMCP[Any]) -> FastMCP[Any]:
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.list_repositories))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.get_repository))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.get_repository_languages))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.review_code))

        return fastmcp

    def _require_access_token(self, request: Request) -> str:
        if access_token := parse_authorization_header(request.headers.get("Authorization")):
            return access_token

        raise MissingAccessTokenError

    def _request_client(self, request: Request) -> DashboardGitHubClient:
        return self.client_factory(self._require_access_token(request))

    def _server_client(self) -> DashboardGitHubClient:
        return self.client_factory(get_github_token())

    def _require_code_reviewer(self) -> CodeReviewer:
        if self.code_reviewer is None:
            raise CodeReviewUnavailableError

        return self.code_reviewer

    # Routes

    async def auth_redirect(self, request: Request) -> Response:
        try:
            return RedirectResponse(url=self.oauth_client.authorize_url(), status_code=302)
        except ValueError:
            self.logger.exception("OAuth is not configured")
            return PlainTextResponse("Error during authentication", status_code=500)

    async def auth_callback(self, request: Request) -> Response:
        if not (code := request.query_params.get("code")):
            return error_response(message="The code query parameter is required", status_code=400)

        try:
            access_token: str = await self.oauth_client.exchange_code(code=code)
        except (OAuthExchangeError, ValueError):
            self.logger.exception("Error fetching access token")
            return PlainTextResponse("Error during authentication", status_code=500)

        return JSONResponse(content={"accessToken": access_token})

    async def fetch_repositories(self, request: Request) -> Response:
        try:
            page: int = int(request.query_params.get("page") or 1)
        except ValueError:
            return error_response(message="The page query parameter must be an integer", status_code=400)

        if page < 1:
            return error_response(message="The page query parameter must be at least 1", status_code=400)

        try:
            client: DashboardGitHubClient = self._request_client(request)
            repositories: list[RepositorySummary] = await client.list_repositories(page=page, per_page=self.settings.per_page)
        except MissingAccessTokenError as e:
            return error_response(message="Unauthorized", status_code=401, details=str(e))
        except ClientError as e:
            return client_error_response(e, message="Failed to fetch repositories")
        except ValidationError as e:
            self.logger.exception("GitHub returned repositories that could not be validated")
            return error_response(message="Failed to fetch repositories", status_code=500, details=str(e))

        return JSONResponse(content=[repository.model_dump(mode="json") for repository in repositories])

    async def fetch_user(self, request: Request) -> Response:
        try:
            client: DashboardGitHubClient = self._request_client(request)
            user = await client.get_authenticated_user()
        except MissingAccessTokenError as e:
            return error_response(message="Unauthorized", status_code=401, details=str(e))
        except ClientError as e:
            return client_error_response(e, message="Failed to fetch user details")

        return JSONResponse(content=user.model_dump(mode="json"))

    async def create_repository(self, request: Request) -> Response:
        try:
            body: Any = await request.json()  # pyright: ignore[reportAny]
        except ValueError:
            return error_response(message="The request body must be JSON", status_code=400)

        if not isinstance(body, dict) or not body.get("name") or not body.get("visibility"):  # pyright: ignore[reportUnknownMemberType]
            return error_response(message="Repository name and visibility are required", status_code=400)

        try:
            create_request: CreateRepositoryRequest = CreateRepositoryRequest.model_validate(body)
        except ValidationError as e:
            return error_response(message="Invalid repository request", status_code=400, details=str(e))

        try:
            client: DashboardGitHubClient = self._request_client(request)
            repository: RepositoryDetails = await client.create_repository(request=create_request)
        except MissingAccessTokenError as e:
            return error_response(message="Unauthorized", status_code=401, details=str(e))
        except ClientError as e:
            return client_error_response(e, message="Failed to create repository")

        self.logger.info(f"Repository created: {repository.owner.login}/{repository.name}")

        return JSONResponse(
            content={"message": "Repository created successfully", "repo": repository.model_dump(mode="json")},
            status_code=201,
        )

    async def fetch_repository(self, request: Request) -> Response:
        repository_id: int = request.path_params["repository_id"]

        try:
            client: DashboardGitHubClient = self._request_client(request)
            repository: RepositoryDetails = await client.get_repository_by_id(repository_id=repository_id, error_on_not_found=True)
        except MissingAccessTokenError as e:
            return error_response(message="Unauthorized", status_code=401, details=str(e))
        except ClientError as e:
            return client_error_response(e, message="Error fetching repository details")

        return JSONResponse(content=repository.model_dump(mode="json"))

    async def fetch_repository_languages(self, request: Request) -> Response:
        repository_id: int = request.path_params["repository_id"]

        try:
            client: DashboardGitHubClient = self._request_client(request)
            percentages: LanguagePercentages = await self._get_language_percentages(client=client, repository_id=repository_id)
        except MissingAccessTokenError as e:
            return error_response(message="Unauthorized", status_code=401, details=str(e))
        except ClientError as e:
            return client_error_response(e, message="Error fetching repository languages")

        return JSONResponse(content=percentages.model_dump(mode="json"))

    async def code_review(self, request: Request) -> Response:
        try:
            body: Any = await request.json()  # pyright: ignore[reportAny]
        except ValueError:
            return error_response(message="The request body must be JSON", status_code=400)

        code_snippet: Any = body.get("codeSnippet") if isinstance(body, dict) else None  # pyright: ignore[reportUnknownMemberType]

        if not isinstance(code_snippet, str) or not code_snippet.strip():
            return error_response(message="The codeSnippet field is required", status_code=400)

        try:
            review: str = await self.review_code(code_snippet=code_snippet)
        except CodeReviewUnavailableError as e:
            return error_response(message="Failed to review code snippet", status_code=503, details=str(e))
        except CodeReviewError:
            self.logger.exception("Error during code review")
            return error_response(message="Failed to review code snippet", status_code=500)

        return JSONResponse(content={"review": review})

    async def _get_language_percentages(self, client: DashboardGitHubClient, repository_id: int) -> LanguagePercentages:
        repository: RepositoryDetails = await client.get_repository_by_id(repository_id=repository_id, error_on_not_found=True)

        language_usage: LanguageUsage = await client.get_repository_languages(owner=repository.owner.login, repo=repository.name)

        return language_usage.to_percentages()

    # Tools

    async def list_repositories(
        self, search_term: SEARCH_TERM = "", sort_order: SORT_ORDER = SortOrder.NAME
    ) -> list[RepositorySummary]:
        """List the repositories of the authenticated user, optionally filtered by name, visibility or language."""

        access_token: str = get_github_token()

        view_model = RepositoryViewModel(
            source=GitHubRepositoryPageSource(per_page=self.settings.per_page, client_factory=self.client_factory),
            access_token=access_token,
            settings=self.settings,
            logger=self.logger,
        )

        await view_model.sync_all()

        view_model.set_search_term(search_term)
        view_model.set_sort_order(sort_order)

        return view_model.visible_repositories

    async def get_repository(self, repository_id: REPOSITORY_ID) -> RepositoryDetails:
        """Get the details of a repository by its unique identifier."""

        return await self._server_client().get_repository_by_id(repository_id=repository_id, error_on_not_found=True)

    async def get_repository_languages(self, repository_id: REPOSITORY_ID) -> LanguagePercentages:
        """Get the share of each language in a repository, in percent."""

        return await self._get_language_percentages(client=self._server_client(), repository_id=repository_id)

    async def review_code(self, code_snippet: CODE_SNIPPET) -> str:
        """Review a code snippet for bugs, security issues, readability and performance."""

        return await self._require_code_reviewer().review(code_snippet=code_snippet)
