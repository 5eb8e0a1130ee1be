from collections.abc import Sequence
from logging import Logger
from typing import Protocol

from fastmcp.utilities.logging import get_logger
from pydantic import BaseModel, Field, ValidationError

from github_dashboard.clients.errors.github import AuthorizationError, ClientError
from github_dashboard.dashboard.models import RepositorySummary
from github_dashboard.dashboard.query import SortOrder, ViewQuery
from github_dashboard.dashboard.settings import DashboardSettings

FIRST_PAGE = 1


class RepositoryPageSource(Protocol):
    """An upstream source returning one page of repositories per call. An empty page marks the end of the data."""

    async def fetch_page(self, page: int, access_token: str) -> Sequence[RepositorySummary]: ...


class SyncError(Exception):
    """A page of repositories could not be synchronized."""

    def __init__(self, message: str, page: int):
        super().__init__(f"{message} (page: {page})")
        self.page: int = page


class SyncAuthorizationError(SyncError):
    """The upstream source rejected the credential. Re-authenticate before retrying."""

    def __init__(self, page: int):
        super().__init__(message="The credential was rejected while fetching repositories.", page=page)


class SyncTransportError(SyncError):
    """The page could not be fetched or parsed. A refresh may retry it."""

    def __init__(self, page: int, reason: str):
        super().__init__(message=f"Failed to fetch repositories: {reason}", page=page)


class SyncState(BaseModel):
    """The pagination state of one dashboard session."""

    pages_fetched: int = Field(default=0, description="The number of non-empty pages merged so far.")
    next_page: int = Field(default=FIRST_PAGE, description="The page cursor requested by the next page advance.")
    is_last_page: bool = Field(default=False, description="Whether an empty page has been received.")
    is_initial_load: bool = Field(default=True, description="Whether the first page is still outstanding.")
    is_fetching_more: bool = Field(default=False, description="Whether a page after the first is in flight.")
    generation: int = Field(default=0, description="Incremented on every refresh, responses of older generations are discarded.")


class DashboardView(BaseModel):
    """What a renderer needs to draw the dashboard."""

    repositories: list[RepositorySummary] = Field(description="The filtered and sorted repositories to display.")
    total_repositories: int = Field(description="The number of repositories fetched so far.")
    search_term: str = Field(description="The active search term.")
    sort_order: SortOrder = Field(description="The active sort order.")
    is_initial_load: bool = Field(description="Whether the loading indicator should replace the list.")
    is_fetching_more: bool = Field(description="Whether another page is being fetched.")
    is_last_page: bool = Field(description="Whether every page has been fetched.")
    settings: DashboardSettings = Field(description="The UI preferences of the dashboard.")


class RepositoryViewModel:
    """Accumulates pages of repositories and derives the filtered, sorted list the dashboard renders.

    All transitions are expected to run on a single event loop. Fetches are never issued in parallel for the same
    page, and responses that arrive after a refresh are dropped instead of merged."""

    source: RepositoryPageSource
    access_token: str
    settings: DashboardSettings
    state: SyncState
    query: ViewQuery
    logger: Logger

    _repositories: dict[int, RepositorySummary]
    _pages_in_flight: set[int]

    def __init__(
        self,
        source: RepositoryPageSource,
        access_token: str,
        settings: DashboardSettings | None = None,
        logger: Logger | None = None,
    ):
        self.source = source
        self.access_token = access_token
        self.settings = settings or DashboardSettings()
        self.logger = logger or get_logger(name=__name__)

        self.state = SyncState()
        self.query = ViewQuery(sort_order=self.settings.sort_order)

        self._repositories = {}
        self._pages_in_flight = set()

    @property
    def repositories(self) -> list[RepositorySummary]:
        """Every repository fetched so far, in the order they were first received."""

        return list(self._repositories.values())

    @property
    def visible_repositories(self) -> list[RepositorySummary]:
        """The repositories to render. Nothing is rendered while the first page of a (re)load is outstanding."""

        if self.state.is_initial_load:
            return []

        return self.query.apply(self.repositories)

    def set_search_term(self, search_term: str) -> None:
        self.query = self.query.model_copy(update={"search_term": search_term})

    def set_sort_order(self, sort_order: SortOrder) -> None:
        self.query = self.query.model_copy(update={"sort_order": sort_order})

    def snapshot(self) -> DashboardView:
        return DashboardView(
            repositories=self.visible_repositories,
            total_repositories=len(self._repositories),
            search_term=self.query.search_term,
            sort_order=self.query.sort_order,
            is_initial_load=self.state.is_initial_load,
            is_fetching_more=self.state.is_fetching_more,
            is_last_page=self.state.is_last_page,
            settings=self.settings,
        )

    async def load_more(self) -> None:
        """Advance to the next page cursor."""

        await self.fetch_page(page=self.state.next_page)

    async def fetch_page(self, page: int) -> None:
        """Fetch a page of repositories and merge it into the accumulated set.

        Does nothing once the last page has been seen or while the same page is already in flight.

        Raises:
            SyncAuthorizationError: If the upstream source rejected the credential.
            SyncTransportError: If the page could not be fetched or validated.
        """

        if self.state.is_last_page:
            self.logger.debug(f"Skipping fetch of page {page}, the last page has already been reached.")
            return

        if page in self._pages_in_flight:
            self.logger.debug(f"Skipping fetch of page {page}, a fetch for it is already in flight.")
            return

        generation: int = self.state.generation
        is_initial_page: bool = self.state.is_initial_load

        self._pages_in_flight.add(page)

        if not is_initial_page:
            self.state.is_fetching_more = True

        self.logger.info(f"Fetching page {page} of repositories (generation {generation}).")

        try:
            repositories: Sequence[RepositorySummary] = await self.source.fetch_page(page=page, access_token=self.access_token)
        except AuthorizationError as e:
            if not self._resolve_fetch(page=page, generation=generation):
                self.logger.info(f"Ignoring authorization failure for page {page} from generation {generation}.")
                return

            self.logger.warning(f"Authorization failed fetching page {page} of repositories.")
            raise SyncAuthorizationError(page=page) from e
        except (ClientError, ValidationError) as e:
            if not self._resolve_fetch(page=page, generation=generation):
                self.logger.info(f"Ignoring failure for page {page} from generation {generation}: {e}")
                return

            self.logger.exception(f"Error fetching page {page} of repositories")
            raise SyncTransportError(page=page, reason=str(e)) from e
        except Exception as e:
            if not self._resolve_fetch(page=page, generation=generation):
                self.logger.info(f"Ignoring unexpected failure for page {page} from generation {generation}: {e!r}")
                return

            self.logger.exception(f"Unexpected error fetching page {page} of repositories")
            raise SyncTransportError(page=page, reason=f"{type(e).__name__}: {e}") from e

        if not self._resolve_fetch(page=page, generation=generation):
            self.logger.info(f"Discarding page {page} from generation {generation}, the dashboard has been refreshed since.")
            return

        if not repositories:
            self.logger.info(f"Page {page} is empty, no further pages will be fetched.")
            self.state.is_last_page = True
            return

        added: int = self._merge(repositories)

        self.state.pages_fetched += 1
        self.state.next_page = max(self.state.next_page, page + 1)

        self.logger.info(f"Merged page {page}: {added} new of {len(repositories)} repositories, {len(self._repositories)} total.")

    async def refresh(self) -> None:
        """Discard everything fetched so far and synchronize again from the first page."""

        self.logger.info("Refreshing repositories.")

        self.state = SyncState(generation=self.state.generation + 1)
        self._repositories = {}
        self._pages_in_flight = set()

        await self.fetch_page(page=FIRST_PAGE)

    async def sync_all(self) -> None:
        """Fetch pages until the upstream source runs out of repositories."""

        while not self.state.is_last_page:
            if self.state.next_page in self._pages_in_flight:
                self.logger.debug(f"Page {self.state.next_page} is already in flight, leaving the rest of the sync to its caller.")
                return

            await self.load_more()

    def _resolve_fetch(self, page: int, generation: int) -> bool:
        """Clear the in-flight markers of a completed fetch. Returns whether the fetch belongs to the current generation."""

        if generation != self.state.generation:
            return False

        self._pages_in_flight.discard(page)
        self.state.is_initial_load = False
        self.state.is_fetching_more = False

        return True

    def _merge(self, repositories: Sequence[RepositorySummary]) -> int:
        added: int = 0

        for repository in repositories:
            if repository.id in self._repositories:
                continue

            self._repositories[repository.id] = repository
            added += 1

        return added
