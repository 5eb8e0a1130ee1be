from typing import Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field

from github_dashboard.dashboard.models import RepositorySummary


def dump_githubkit_model(model: BaseModel, /) -> dict[str, Any]:
    """Dump a githubkit model to its JSON payload, leaving out fields GitHub did not return."""

    return model.model_dump(mode="json", by_alias=True, exclude_unset=True)


class RepositoryLicense(BaseModel):
    """A repository license."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = Field(description="The name of the license.")
    spdx_id: str | None = Field(default=None, description="The SPDX identifier of the license.")
    url: str | None = Field(default=None, description="The URL of the license.")


class RepositoryDetails(RepositorySummary):
    """A repository with the attributes shown on its detail page."""

    allow_forking: bool = Field(default=True, description="Whether the repository can be forked.")
    watchers_count: int = Field(default=0, description="The number of watchers.")
    subscribers_count: int = Field(default=0, description="The number of subscribers.")
    homepage: str | None = Field(default=None, description="The homepage URL of the repository.")
    license: RepositoryLicense | None = Field(default=None, description="The license information of the repository.")


class AuthenticatedUser(BaseModel):
    """The user the access token belongs to."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    login: str = Field(description="The login of the user.")
    id: int = Field(description="The unique identifier of the user.")
    name: str | None = Field(default=None, description="The display name of the user.")
    avatar_url: str | None = Field(default=None, description="The URL of the user's avatar.")
    html_url: str | None = Field(default=None, description="The URL of the user's profile.")
    public_repos: int = Field(default=0, description="The number of public repositories.")
    followers: int = Field(default=0, description="The number of followers.")
    following: int = Field(default=0, description="The number of users followed.")

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Self:
        return cls.model_validate(payload)


class CreateRepositoryRequest(BaseModel):
    """A request to create a repository for the authenticated user."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, description="The name of the repository.")
    visibility: Literal["public", "private"] = Field(description="The visibility of the repository.")
    description: str = Field(default="", description="The description of the repository.")
    auto_init: bool = Field(default=False, alias="autoInit", description="Whether to create an initial commit with a README.")
    allow_forking: bool = Field(default=True, alias="allowForking", description="Whether the repository can be forked.")

    @property
    def private(self) -> bool:
        return self.visibility == "private"
