from collections.abc import Sequence
from datetime import datetime

import click
import yaml
from pydantic import BaseModel

from github_dashboard.dashboard.models import RepositorySummary
from github_dashboard.dashboard.settings import DashboardSettings
from github_dashboard.dashboard.sync import DashboardView

LIGHT_PALETTE: dict[str, str] = {"header": "black", "name": "blue", "details": "black"}
DARK_PALETTE: dict[str, str] = {"header": "bright_white", "name": "bright_cyan", "details": "bright_black"}


def get_palette(settings: DashboardSettings) -> dict[str, str]:
    return DARK_PALETTE if settings.dark_mode else LIGHT_PALETTE


def format_date(value: datetime) -> str:
    return value.strftime("%d %b %Y")


def stylize(text: str, color: str, styled: bool, bold: bool = False) -> str:
    return click.style(text, fg=color, bold=bold) if styled else text


def render_repository(repository: RepositorySummary, settings: DashboardSettings, styled: bool = False) -> str:
    palette: dict[str, str] = get_palette(settings)

    line: str = stylize(repository.name, palette["name"], styled, bold=True)

    if settings.show_tags:
        line += f" [{repository.language}] [{repository.visibility.value}]"

    details: list[str] = []

    if settings.show_repository_size:
        details.append(f"{repository.size} KB")

    details.append(f"Updated {format_date(repository.updated_at)}")

    return f"{line}\n    " + stylize(" | ".join(details), palette["details"], styled)


def render_dashboard(view: DashboardView, styled: bool = False) -> str:
    """Render the dashboard as text.

    When `styled` is set, names and details are colored with the light or dark palette picked by the view's settings."""

    if view.is_initial_load:
        return "Loading repositories..."

    header: str = f"Repositories: {len(view.repositories)} of {view.total_repositories} (sorted by {view.sort_order.value})"

    if view.search_term:
        header += f", matching '{view.search_term}'"

    header = stylize(header, get_palette(view.settings)["header"], styled)

    if not view.repositories:
        return f"{header}\nNo repositories found."

    lines: list[str] = [header, *[render_repository(repository, view.settings, styled) for repository in view.repositories]]

    if view.is_fetching_more:
        lines.append("Loading more repositories...")

    return "\n".join(lines)


def dump_model_as_yaml(model: BaseModel | Sequence[BaseModel], /) -> str:
    if isinstance(model, BaseModel):
        return yaml.safe_dump(model.model_dump(mode="json"), sort_keys=False, indent=1, width=400)

    return "\n".join([yaml.safe_dump(item.model_dump(mode="json"), sort_keys=False, indent=1, width=400) for item in model])
