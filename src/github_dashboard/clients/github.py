import os
from collections.abc import Awaitable, Callable, Sequence
from logging import Logger, getLogger
from typing import Any, Literal, TypeVar, overload

import httpx
from githubkit import GitHub as GitHubKit
from githubkit.auth.token import TokenAuthStrategy
from githubkit.exception import GitHubException as GitHubKitGitHubException
from githubkit.exception import RequestFailed as GitHubKitRequestFailed
from githubkit.response import Response as GitHubKitResponse
from githubkit.retry import RetryChainDecision, RetryRateLimit, RetryServerError
from githubkit.versions.v2022_11_28.models import FullRepository as GitHubKitFullRepository
from pydantic import BaseModel

from github_dashboard.clients.errors.github import AuthorizationError, RequestError, ResourceNotFoundError
from github_dashboard.clients.models.github import (
    AuthenticatedUser,
    CreateRepositoryRequest,
    RepositoryDetails,
    dump_githubkit_model,
)
from github_dashboard.dashboard.languages import LanguageUsage
from github_dashboard.dashboard.models import RepositorySummary
from github_dashboard.dashboard.settings import DEFAULT_PER_PAGE

GITHUBKIT_RESPONSE_TYPE = BaseModel | Sequence[BaseModel]

T = TypeVar("T", bound=GITHUBKIT_RESPONSE_TYPE)


def extract_response(response: GitHubKitResponse[T], /) -> T:
    """Extract the response from a response."""

    return response.parsed_data


def get_github_token() -> str:
    env_vars: tuple[str, ...] = ("GITHUB_TOKEN", "GITHUB_PERSONAL_ACCESS_TOKEN")
    for env_var in env_vars:
        if value := os.getenv(env_var):
            return value
    msg = "GITHUB_TOKEN or GITHUB_PERSONAL_ACCESS_TOKEN must be set"
    raise ValueError(msg)


def parse_authorization_header(header: str | None) -> str | None:
    """Extract the access token from an Authorization header holding a raw token, `token <t>` or `Bearer <t>`."""

    if not header or not (header := header.strip()):
        return None

    scheme, _, credentials = header.partition(" ")

    if credentials and scheme.lower() in {"token", "bearer"}:
        return credentials.strip() or None

    return header


def get_githubkit_client(access_token: str | None = None) -> GitHubKit[Any]:
    # Retry server errors up to 3 times
    retry_server_error = RetryServerError()

    # Retry rate limit errors up to 3 times
    retry_rate_limit = RetryRateLimit(max_retry=3)

    retry_chain = RetryChainDecision(
        retry_server_error,
        retry_rate_limit,
    )

    return GitHubKit[TokenAuthStrategy](auth=TokenAuthStrategy(token=access_token or get_github_token()), auto_retry=retry_chain)


class DashboardGitHubClient:
    """The GitHub REST calls behind the dashboard, made on behalf of a single access token."""

    githubkit_client: GitHubKit[Any]
    logger: Logger

    log_requests: bool
    log_responses: bool
    log_on_error: bool

    def __init__(
        self,
        access_token: str | None = None,
        githubkit_client: GitHubKit[Any] | None = None,
        logger: Logger | None = None,
        log_requests: bool = True,
        log_responses: bool = False,
        log_on_error: bool = True,
    ):
        self.githubkit_client = githubkit_client or get_githubkit_client(access_token=access_token)
        self.logger = logger or getLogger(__name__)
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.log_on_error = log_on_error

    def _get_loggers(
        self, log_request: bool | None = None, log_response: bool | None = None, log_on_error: bool | None = None
    ) -> tuple[Callable[[str], Any], Callable[[str], Any], Callable[[BaseException | str], Any]]:
        request_logger = self.logger.info if log_request or self.log_requests else self.logger.debug
        response_logger = self.logger.info if log_response or self.log_responses else self.logger.debug
        error_logger = self.logger.exception if log_on_error or self.log_on_error else self.logger.debug
        return request_logger, response_logger, error_logger

    @overload
    async def _perform_rest_request(
        self,
        action: str,
        log_request: bool | None = None,
        log_response: bool | None = None,
        log_on_error: bool | None = None,
        error_on_not_found: Literal[False] = False,
        *,
        method: Callable[..., Awaitable[GitHubKitResponse[T]]],
        **request_args: Any,  # pyright: ignore[reportAny]
    ) -> T | None: ...

    @overload
    async def _perform_rest_request(
        self,
        action: str,
        log_request: bool | None = None,
        log_response: bool | None = None,
        log_on_error: bool | None = None,
        error_on_not_found: Literal[True] = True,
        *,
        method: Callable[..., Awaitable[GitHubKitResponse[T]]],
        **request_args: Any,  # pyright: ignore[reportAny]
    ) -> T: ...

    async def _perform_rest_request(
        self,
        action: str,
        log_request: bool | None = None,
        log_response: bool | None = None,
        log_on_error: bool | None = None,
        error_on_not_found: bool | None = None,
        *,
        method: Callable[..., Awaitable[GitHubKitResponse[T]]],
        **request_args: Any,  # pyright: ignore[reportAny]
    ) -> T | None:
        """Perform a request and extract the response.

        Args:
            action: The action being performed.
            log_request: Whether to log the request.
            log_response: Whether to log the response.
            log_on_error: Whether to log on error.
            error_on_not_found: Whether to raise an error if the resource is not found.

        Raises:
            AuthorizationError: If GitHub rejects the access token.
            ResourceNotFoundError: If the resource is not found and error_on_not_found is True.
            RequestError: If the request fails.
        """

        request_logger, response_logger, error_logger = self._get_loggers(
            log_request=log_request, log_response=log_response, log_on_error=log_on_error
        )

        request_logger(f"Performing {action} using {method.__name__} with kwargs {request_args}")

        try:
            response: GitHubKitResponse[T] = await method(**request_args)
        except GitHubKitRequestFailed as e:
            if e.response.status_code == httpx.codes.UNAUTHORIZED:
                error_logger(f"Access token rejected performing {action} using {method.__name__}")

                raise AuthorizationError(action=action) from e

            if e.response.status_code == httpx.codes.NOT_FOUND:
                if error_on_not_found:
                    raise ResourceNotFoundError(action=action, resource=e.request.url.path) from e

                return None

            error_logger(f"RequestFailed error performing {action} using {method.__name__} with kwargs {request_args}: {e}")

            raise RequestError(action=action, message=str(e)) from e
        except GitHubKitGitHubException as e:
            error_logger(f"Error performing {action} using {method.__name__} with kwargs {request_args}: {e}")

            raise RequestError(action=action, message=str(e)) from e

        extracted_response = extract_response(response)

        response_logger(f"Extracted response for {action} using {method.__name__} with kwargs {request_args}: {extracted_response}")

        return extracted_response

    async def _get_repository_by_id(self, repository_id: int) -> GitHubKitResponse[GitHubKitFullRepository]:
        return await self.githubkit_client.arequest("GET", f"/repositories/{repository_id}", response_model=GitHubKitFullRepository)

    async def list_repositories(self, page: int = 1, per_page: int = DEFAULT_PER_PAGE) -> list[RepositorySummary]:
        """List one page of the public and private repositories of the authenticated user. An empty list marks the end."""

        githubkit_repositories = await self._perform_rest_request(
            action="List repositories",
            error_on_not_found=True,
            method=self.githubkit_client.rest.repos.async_list_for_authenticated_user,
            page=page,
            per_page=per_page,
        )

        return [RepositorySummary.from_payload(dump_githubkit_model(repository)) for repository in githubkit_repositories]

    async def get_authenticated_user(self) -> AuthenticatedUser:
        """Get the user the access token belongs to."""

        githubkit_user = await self._perform_rest_request(
            action="Get authenticated user",
            error_on_not_found=True,
            method=self.githubkit_client.rest.users.async_get_authenticated,
        )

        return AuthenticatedUser.from_payload(dump_githubkit_model(githubkit_user))

    @overload
    async def get_repository_by_id(self, repository_id: int, error_on_not_found: Literal[True] = True) -> RepositoryDetails: ...

    @overload
    async def get_repository_by_id(self, repository_id: int, error_on_not_found: Literal[False] = False) -> RepositoryDetails | None: ...

    async def get_repository_by_id(self, repository_id: int, error_on_not_found: bool = False) -> RepositoryDetails | None:
        """Get a repository by its unique identifier."""

        if githubkit_repository := await self._perform_rest_request(
            action="Get repository",
            error_on_not_found=error_on_not_found,
            method=self._get_repository_by_id,
            repository_id=repository_id,
        ):
            return RepositoryDetails.from_payload(dump_githubkit_model(githubkit_repository))

        return None

    async def get_repository_languages(self, owner: str, repo: str) -> LanguageUsage:
        """Get the number of bytes written in each language of a repository."""

        githubkit_language = await self._perform_rest_request(
            action="Get repository languages",
            error_on_not_found=True,
            method=self.githubkit_client.rest.repos.async_list_languages,
            owner=owner,
            repo=repo,
        )

        return LanguageUsage.from_mapping(githubkit_language.model_dump())

    async def create_repository(self, request: CreateRepositoryRequest) -> RepositoryDetails:
        """Create a repository for the authenticated user."""

        githubkit_repository = await self._perform_rest_request(
            action="Create repository",
            error_on_not_found=True,
            method=self.githubkit_client.rest.repos.async_create_for_authenticated_user,
            name=request.name,
            description=request.description,
            private=request.private,
            auto_init=request.auto_init,
        )

        repository: RepositoryDetails = RepositoryDetails.from_payload(dump_githubkit_model(githubkit_repository))

        if request.allow_forking or not repository.allow_forking:
            return repository

        # Forking can only be restricted once the repository exists
        githubkit_repository = await self._perform_rest_request(
            action="Disable forking",
            error_on_not_found=True,
            method=self.githubkit_client.rest.repos.async_update,
            owner=repository.owner.login,
            repo=repository.name,
            allow_forking=False,
        )

        return RepositoryDetails.from_payload(dump_githubkit_model(githubkit_repository))
