import unicodedata
from collections.abc import Callable, Sequence
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from github_dashboard.dashboard.models import RepositorySummary


class SortOrder(str, Enum):
    NAME = "name"
    """By name, ascending."""

    CREATED = "created"
    """By creation time, newest first."""

    UPDATED = "updated"
    """By last update, most recent first."""


class ViewQuery(BaseModel):
    """The search term and sort order applied to the accumulated repositories."""

    model_config = ConfigDict(frozen=True)

    search_term: str = Field(default="", description="Free text matched against the name, visibility and language.")
    sort_order: SortOrder = Field(default=SortOrder.NAME, description="The order to display repositories in.")

    def apply(self, repositories: Sequence[RepositorySummary]) -> list[RepositorySummary]:
        return sort_repositories(filter_repositories(repositories, self.search_term), self.sort_order)


def matches_search_term(repository: RepositorySummary, search_term: str) -> bool:
    needle: str = search_term.lower()

    haystacks: tuple[str, ...] = (repository.name, repository.visibility.value, repository.language)

    return any(needle in haystack.lower() for haystack in haystacks)


def filter_repositories(repositories: Sequence[RepositorySummary], search_term: str) -> list[RepositorySummary]:
    """Return the repositories whose name, visibility or language contains the search term, ignoring case.

    An empty search term matches every repository. The input is never modified."""

    if not search_term:
        return list(repositories)

    return [repository for repository in repositories if matches_search_term(repository, search_term)]


def collation_key(text: str) -> tuple[str, str, str]:
    """A sort key approximating the default Unicode collation.

    Letters compare by base character first, then accents, then case with lowercase first."""

    decomposed: str = unicodedata.normalize("NFKD", text)
    base: str = "".join(character for character in decomposed if not unicodedata.combining(character))

    return base.casefold(), decomposed.casefold(), text.swapcase()


def _name_key(repository: RepositorySummary) -> tuple[str, str, str]:
    return collation_key(repository.name)


def _created_key(repository: RepositorySummary) -> datetime:
    return repository.created_at


def _updated_key(repository: RepositorySummary) -> datetime:
    return repository.updated_at


SORT_KEYS: dict[SortOrder, tuple[Callable[[RepositorySummary], tuple[str, str, str] | datetime], bool]] = {
    SortOrder.NAME: (_name_key, False),
    SortOrder.CREATED: (_created_key, True),
    SortOrder.UPDATED: (_updated_key, True),
}


def sort_repositories(repositories: Sequence[RepositorySummary], sort_order: SortOrder) -> list[RepositorySummary]:
    """Return a sorted copy of the repositories. Ties keep their original relative order."""

    key, descending = SORT_KEYS[sort_order]

    return sorted(repositories, key=key, reverse=descending)  # pyright: ignore[reportArgumentType, reportCallIssue]
