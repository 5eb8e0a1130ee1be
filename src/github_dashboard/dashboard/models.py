from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

UNKNOWN_LANGUAGE = "Unknown"


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    INTERNAL = "internal"


class RepositoryOwner(BaseModel):
    """The owner of a repository."""

    model_config = ConfigDict(frozen=True)

    login: str = Field(description="The login of the owner.")
    url: str = Field(description="The API URL of the owner.")


class RepositorySummary(BaseModel):
    """A repository as listed on the dashboard."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int = Field(description="The unique identifier of the repository.")
    name: str = Field(min_length=1, description="The name of the repository.")
    language: str = Field(default=UNKNOWN_LANGUAGE, description="The primary language of the repository.")
    visibility: Visibility = Field(description="The visibility of the repository.")
    size: int = Field(ge=0, description="The size of the repository in kilobytes.")
    created_at: datetime = Field(description="The date and time the repository was created.")
    updated_at: datetime = Field(description="The date and time the repository was updated.")
    owner: RepositoryOwner = Field(description="The owner of the repository.")

    description: str | None = Field(default=None, description="The description of the repository.")
    archived: bool = Field(default=False, description="Whether the repository is archived.")
    fork: bool = Field(default=False, description="Whether the repository is a fork.")
    default_branch: str | None = Field(default=None, description="The default branch of the repository.")
    forks_count: int = Field(default=0, description="The number of forks.")
    open_issues_count: int = Field(default=0, description="The number of open issues.")
    stargazers_count: int = Field(default=0, description="The number of stars.")
    topics: list[str] = Field(default_factory=list, description="The topics of the repository.")
    html_url: str | None = Field(default=None, description="The URL of the repository on GitHub.")
    clone_url: str | None = Field(default=None, description="The HTTPS clone URL.")
    ssh_url: str | None = Field(default=None, description="The SSH clone URL.")
    languages_url: str | None = Field(default=None, description="The API URL of the language breakdown.")

    @model_validator(mode="before")
    @classmethod
    def _derive_visibility(cls, data: Any) -> Any:  # pyright: ignore[reportAny]
        """Older payloads only carry the `private` flag."""

        if isinstance(data, Mapping) and not data.get("visibility") and "private" in data:
            return {**data, "visibility": Visibility.PRIVATE if data["private"] else Visibility.PUBLIC}

        return data  # pyright: ignore[reportAny]

    @field_validator("language", mode="before")
    @classmethod
    def _normalize_language(cls, value: str | None) -> str:
        return value or UNKNOWN_LANGUAGE

    @field_validator("topics", mode="before")
    @classmethod
    def _normalize_topics(cls, value: list[str] | None) -> list[str]:
        return value or []

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        """GitHub timestamps are UTC, a timestamp without an offset is read as UTC."""

        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)

    @model_validator(mode="after")
    def _check_timestamps(self) -> Self:
        if self.updated_at < self.created_at:
            msg = f"Repository {self.name} was updated ({self.updated_at}) before it was created ({self.created_at})"
            raise ValueError(msg)

        return self

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Self:
        """Validate a single repository from an untyped GitHub REST payload."""

        return cls.model_validate(payload)


REPOSITORY_SUMMARIES_ADAPTER: TypeAdapter[list[RepositorySummary]] = TypeAdapter(list[RepositorySummary])


def repository_summaries_from_payload(payload: Sequence[Mapping[str, Any]] | Any) -> list[RepositorySummary]:  # pyright: ignore[reportAny]
    """Validate a page of repositories from an untyped GitHub REST payload."""

    return REPOSITORY_SUMMARIES_ADAPTER.validate_python(payload)
