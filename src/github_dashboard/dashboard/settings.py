import os
from typing import Self

from pydantic import BaseModel, ConfigDict, Field

from github_dashboard.dashboard.query import SortOrder

DEFAULT_PER_PAGE = 10


class DashboardSettings(BaseModel):
    """UI preferences shared by the dashboard views.

    Settings are immutable, a view model receives one at construction and hands out the same snapshot to readers.
    Use `model_copy(update=...)` to derive changed settings."""

    model_config = ConfigDict(frozen=True)

    sort_order: SortOrder = Field(default=SortOrder.NAME, description="The initial sort order of the repository list.")
    show_tags: bool = Field(default=True, description="Whether the language and visibility tags are shown.")
    show_repository_size: bool = Field(default=True, description="Whether the repository size is shown.")
    dark_mode: bool = Field(default=False, description="Whether the dark theme is used.")
    per_page: int = Field(default=DEFAULT_PER_PAGE, gt=0, le=100, description="The number of repositories fetched per page.")

    @classmethod
    def from_env(cls) -> Self:
        settings: dict[str, str] = {}

        if sort_order := os.getenv("DASHBOARD_SORT_ORDER"):
            settings["sort_order"] = sort_order

        if per_page := os.getenv("DASHBOARD_PER_PAGE"):
            settings["per_page"] = per_page

        if dark_mode := os.getenv("DASHBOARD_DARK_MODE"):
            settings["dark_mode"] = dark_mode

        return cls.model_validate(settings)

    def toggle_tags(self) -> Self:
        return self.model_copy(update={"show_tags": not self.show_tags})

    def toggle_repository_size(self) -> Self:
        return self.model_copy(update={"show_repository_size": not self.show_repository_size})

    def toggle_dark_mode(self) -> Self:
        return self.model_copy(update={"dark_mode": not self.dark_mode})
