import asyncio
from collections.abc import Sequence

import httpx
import pytest

from github_dashboard.clients.errors.github import AuthorizationError, RequestError
from github_dashboard.dashboard.models import RepositorySummary
from github_dashboard.dashboard.query import SortOrder
from github_dashboard.dashboard.settings import DashboardSettings
from github_dashboard.dashboard.sync import (
    RepositoryViewModel,
    SyncAuthorizationError,
    SyncTransportError,
)
from tests.conftest import FakePageSource, make_repository, names


class BlockingPageSource:
    """A page source whose fetches only complete when released."""

    def __init__(self):
        self.requests: list[int] = []
        self.responses: dict[int, asyncio.Future[Sequence[RepositorySummary]]] = {}

    async def fetch_page(self, page: int, access_token: str) -> Sequence[RepositorySummary]:
        self.requests.append(page)

        future: asyncio.Future[Sequence[RepositorySummary]] = asyncio.get_running_loop().create_future()
        self.responses[page] = future

        return await future

    def release(self, page: int, repositories: Sequence[RepositorySummary]) -> None:
        self.responses.pop(page).set_result(repositories)


@pytest.fixture
def source(first_page: list[RepositorySummary], second_page: list[RepositorySummary]) -> FakePageSource:
    return FakePageSource(pages={1: first_page, 2: second_page, 3: []})


@pytest.fixture
def view_model(source: FakePageSource, access_token: str) -> RepositoryViewModel:
    return RepositoryViewModel(source=source, access_token=access_token)


class TestPagination:
    async def test_initial_state(self, view_model: RepositoryViewModel):
        assert view_model.state.is_initial_load is True
        assert view_model.state.is_last_page is False
        assert view_model.state.next_page == 1
        assert view_model.visible_repositories == []

    async def test_pages_until_empty(self, view_model: RepositoryViewModel, source: FakePageSource, access_token: str):
        await view_model.load_more()
        await view_model.load_more()
        await view_model.load_more()

        assert len(view_model.repositories) == 4
        assert view_model.state.is_last_page is True
        assert view_model.state.pages_fetched == 2
        assert source.requests == [(1, access_token), (2, access_token), (3, access_token)]

        await view_model.load_more()

        assert len(source.requests) == 3

    async def test_first_page_ends_initial_load(self, view_model: RepositoryViewModel):
        await view_model.load_more()

        assert view_model.state.is_initial_load is False
        assert view_model.state.is_fetching_more is False
        assert names(view_model.visible_repositories) == ["alpha", "zeta"]

    async def test_sync_all(self, view_model: RepositoryViewModel, source: FakePageSource):
        await view_model.sync_all()

        assert view_model.state.is_last_page is True
        assert [page for page, _ in source.requests] == [1, 2, 3]

    async def test_null_language_normalized_before_exposure(self, view_model: RepositoryViewModel):
        await view_model.load_more()

        alpha = next(repository for repository in view_model.repositories if repository.name == "alpha")

        assert alpha.language == "Unknown"
        assert names(view_model.query.model_copy(update={"search_term": "unknown"}).apply(view_model.repositories)) == ["alpha"]

    async def test_duplicate_records_are_skipped(self, access_token: str, first_page: list[RepositorySummary]):
        duplicate = make_repository(1, "zeta-renamed")
        source = FakePageSource(pages={1: first_page, 2: [duplicate, make_repository(5, "gamma")], 3: []})
        view_model = RepositoryViewModel(source=source, access_token=access_token)

        await view_model.sync_all()

        ids = [repository.id for repository in view_model.repositories]

        assert ids == [1, 2, 5]
        assert len(ids) == len(set(ids))
        assert names(view_model.repositories)[0] == "zeta"

    async def test_refetching_a_page_does_not_duplicate(self, view_model: RepositoryViewModel):
        await view_model.fetch_page(page=1)
        await view_model.fetch_page(page=1)

        assert len(view_model.repositories) == 2

    async def test_same_page_is_not_fetched_twice_concurrently(self, access_token: str, first_page: list[RepositorySummary]):
        source = BlockingPageSource()
        view_model = RepositoryViewModel(source=source, access_token=access_token)

        first = asyncio.create_task(view_model.fetch_page(page=1))
        await asyncio.sleep(0)

        await view_model.fetch_page(page=1)

        assert source.requests == [1]

        source.release(1, first_page)
        await first

        assert len(view_model.repositories) == 2

    async def test_fetching_more_flag(self, access_token: str, first_page: list[RepositorySummary]):
        source = BlockingPageSource()
        view_model = RepositoryViewModel(source=source, access_token=access_token)

        initial = asyncio.create_task(view_model.load_more())
        await asyncio.sleep(0)

        assert view_model.state.is_initial_load is True
        assert view_model.state.is_fetching_more is False

        source.release(1, first_page)
        await initial

        more = asyncio.create_task(view_model.load_more())
        await asyncio.sleep(0)

        assert view_model.state.is_fetching_more is True
        assert view_model.snapshot().is_fetching_more is True
        assert len(view_model.visible_repositories) == 2

        source.release(2, [])
        await more

        assert view_model.state.is_fetching_more is False
        assert view_model.state.is_last_page is True


class TestFailures:
    async def test_authorization_failure(self, access_token: str, first_page: list[RepositorySummary]):
        source = FakePageSource(pages={1: first_page, 2: AuthorizationError(action="List repositories")})
        view_model = RepositoryViewModel(source=source, access_token=access_token)

        await view_model.load_more()

        with pytest.raises(SyncAuthorizationError) as exc_info:
            await view_model.load_more()

        assert not isinstance(exc_info.value, SyncTransportError)
        assert exc_info.value.page == 2
        assert view_model.state.is_last_page is False
        assert view_model.state.is_fetching_more is False
        assert view_model.state.next_page == 2
        assert names(view_model.repositories) == ["zeta", "alpha"]

    async def test_authorization_failure_on_first_page_ends_initial_load(self, access_token: str):
        source = FakePageSource(pages={1: AuthorizationError(action="List repositories")})
        view_model = RepositoryViewModel(source=source, access_token=access_token)

        with pytest.raises(SyncAuthorizationError):
            await view_model.load_more()

        assert view_model.state.is_initial_load is False
        assert view_model.repositories == []

    async def test_transport_failure_can_be_retried(self, access_token: str, first_page: list[RepositorySummary]):
        source = FakePageSource(pages={1: RequestError(action="List repositories", message="Connection reset")})
        view_model = RepositoryViewModel(source=source, access_token=access_token)

        with pytest.raises(SyncTransportError, match="Connection reset"):
            await view_model.load_more()

        assert view_model.state.is_last_page is False
        assert view_model.repositories == []

        source.pages[1] = first_page
        await view_model.refresh()

        assert [page for page, _ in source.requests] == [1, 1]
        assert len(view_model.repositories) == 2

    async def test_unexpected_failure_clears_in_flight_page(self, access_token: str, first_page: list[RepositorySummary]):
        source = FakePageSource(pages={1: httpx.ConnectError("Connection refused")})
        view_model = RepositoryViewModel(source=source, access_token=access_token)

        with pytest.raises(SyncTransportError, match="ConnectError: Connection refused") as exc_info:
            await view_model.load_more()

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert view_model.state.is_initial_load is False
        assert view_model.state.is_last_page is False

        source.pages[1] = first_page
        await view_model.load_more()

        assert [page for page, _ in source.requests] == [1, 1]
        assert names(view_model.repositories) == ["zeta", "alpha"]


class TestQuery:
    async def test_search_and_sort(self, view_model: RepositoryViewModel):
        await view_model.sync_all()

        view_model.set_search_term("ALPHA")

        assert names(view_model.visible_repositories) == ["alpha", "Alpha"]

        view_model.set_sort_order(SortOrder.UPDATED)
        view_model.set_search_term("")

        assert len(view_model.visible_repositories) == 4
        assert len(view_model.repositories) == 4

    async def test_initial_sort_order_from_settings(self, source: FakePageSource, access_token: str):
        settings = DashboardSettings(sort_order=SortOrder.CREATED)
        view_model = RepositoryViewModel(source=source, access_token=access_token, settings=settings)

        assert view_model.query.sort_order == SortOrder.CREATED
        assert view_model.snapshot().settings is settings

    async def test_snapshot(self, view_model: RepositoryViewModel):
        await view_model.sync_all()
        view_model.set_search_term("py")

        view = view_model.snapshot()

        assert names(view.repositories) == ["Alpha"]
        assert view.total_repositories == 4
        assert view.is_last_page is True
        assert view.is_initial_load is False


class TestRefresh:
    async def test_refresh_resets_and_refetches(self, view_model: RepositoryViewModel, source: FakePageSource):
        await view_model.sync_all()

        await view_model.refresh()

        assert view_model.state.generation == 1
        assert view_model.state.is_last_page is False
        assert view_model.state.next_page == 2
        assert len(view_model.repositories) == 2
        assert [page for page, _ in source.requests] == [1, 2, 3, 1]

    async def test_refresh_hides_stale_repositories(self, access_token: str, first_page: list[RepositorySummary]):
        source = BlockingPageSource()
        view_model = RepositoryViewModel(source=source, access_token=access_token)

        initial = asyncio.create_task(view_model.load_more())
        await asyncio.sleep(0)
        source.release(1, first_page)
        await initial

        refresh = asyncio.create_task(view_model.refresh())
        await asyncio.sleep(0)

        assert view_model.state.is_initial_load is True
        assert view_model.visible_repositories == []
        assert view_model.snapshot().repositories == []

        source.release(1, first_page[:1])
        await refresh

        assert names(view_model.visible_repositories) == ["zeta"]

    async def test_stale_response_is_discarded(
        self, access_token: str, first_page: list[RepositorySummary], second_page: list[RepositorySummary]
    ):
        source = BlockingPageSource()
        view_model = RepositoryViewModel(source=source, access_token=access_token)

        initial = asyncio.create_task(view_model.load_more())
        await asyncio.sleep(0)
        source.release(1, first_page)
        await initial

        stale = asyncio.create_task(view_model.load_more())
        await asyncio.sleep(0)

        refresh = asyncio.create_task(view_model.refresh())
        await asyncio.sleep(0)

        source.release(2, second_page)
        await stale

        assert view_model.repositories == []
        assert view_model.state.is_initial_load is True

        source.release(1, first_page)
        await refresh

        assert names(view_model.repositories) == ["zeta", "alpha"]
        assert view_model.state.next_page == 2
