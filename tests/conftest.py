from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, overload

import pytest
from pydantic import BaseModel

from github_dashboard.dashboard.models import RepositorySummary

ACCESS_TOKEN = "gho_test_token"  # noqa: S105


def make_repository_payload(
    repository_id: int,
    name: str,
    language: str | None = "Python",
    visibility: str = "public",
    size: int = 100,
    created_at: datetime | None = None,
    updated_at: datetime | None = None,
    **extra: Any,  # pyright: ignore[reportAny]
) -> dict[str, Any]:
    created: datetime = created_at or datetime(2024, 1, 1, tzinfo=UTC)
    updated: datetime = updated_at or created

    return {
        "id": repository_id,
        "name": name,
        "language": language,
        "visibility": visibility,
        "private": visibility != "public",
        "size": size,
        "created_at": created.isoformat(),
        "updated_at": updated.isoformat(),
        "owner": {"login": "octocat", "url": "https://api.github.com/users/octocat"},
        **extra,
    }


def make_repository(
    repository_id: int,
    name: str,
    language: str | None = "Python",
    visibility: str = "public",
    created_at: datetime | None = None,
    updated_at: datetime | None = None,
) -> RepositorySummary:
    return RepositorySummary.from_payload(
        make_repository_payload(
            repository_id=repository_id,
            name=name,
            language=language,
            visibility=visibility,
            created_at=created_at,
            updated_at=updated_at,
        )
    )


class FakePageSource:
    """A page source serving pre-built pages, recording every page requested."""

    def __init__(self, pages: dict[int, Sequence[RepositorySummary] | Exception]):
        self.pages: dict[int, Sequence[RepositorySummary] | Exception] = pages
        self.requests: list[tuple[int, str]] = []

    async def fetch_page(self, page: int, access_token: str) -> Sequence[RepositorySummary]:
        self.requests.append((page, access_token))

        result = self.pages.get(page, [])

        if isinstance(result, Exception):
            raise result

        return result


@pytest.fixture
def access_token() -> str:
    return ACCESS_TOKEN


@pytest.fixture
def first_page() -> list[RepositorySummary]:
    return [make_repository(1, "zeta", language="Go"), make_repository(2, "alpha", language=None)]


@pytest.fixture
def second_page() -> list[RepositorySummary]:
    return [make_repository(3, "Alpha", language="Python", visibility="private"), make_repository(4, "beta", language="TypeScript")]


def handle_exclude_keys(dictionary: dict[str, Any], exclude_keys: list[str] | None = None) -> dict[str, Any]:
    if exclude_keys is None:
        return dictionary
    return {key: value for key, value in dictionary.items() if key not in exclude_keys}


@overload
def dump_for_snapshot(
    basemodel: None,
    /,
    exclude_keys: list[str] | None = None,
    exclude_none: bool = True,
    **dump_kwargs: Any,
) -> None: ...


@overload
def dump_for_snapshot(
    basemodel: BaseModel,
    /,
    exclude_keys: list[str] | None = None,
    exclude_none: bool = True,
    **dump_kwargs: Any,
) -> dict[str, Any]: ...


def dump_for_snapshot(
    basemodel: None | BaseModel,
    /,
    exclude_keys: list[str] | None = None,
    exclude_none: bool = True,
    **dump_kwargs: Any,
) -> dict[str, Any] | None:
    if basemodel is None:
        return None

    return handle_exclude_keys(basemodel.model_dump(mode="json", exclude_none=exclude_none, **dump_kwargs), exclude_keys)


def names(repositories: Sequence[RepositorySummary]) -> list[str]:
    return [repository.name for repository in repositories]
