import asyncio
import os
from logging import Logger
from typing import Literal

import click
from fastmcp import FastMCP
from fastmcp.server.middleware.logging import LoggingMiddleware
from fastmcp.utilities.logging import configure_logging, get_logger
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware

from github_dashboard.clients.github import get_github_token
from github_dashboard.dashboard.query import SortOrder
from github_dashboard.dashboard.render import dump_model_as_yaml, render_dashboard
from github_dashboard.dashboard.settings import DashboardSettings
from github_dashboard.dashboard.sources import DashboardApiPageSource, GitHubRepositoryPageSource
from github_dashboard.dashboard.sync import RepositoryPageSource, RepositoryViewModel
from github_dashboard.review.reviewer import get_code_reviewer
from github_dashboard.servers.dashboard import DashboardServer

logger: Logger = get_logger(name=__name__)

DEFAULT_CORS_ORIGIN = "http://localhost:5173"
DEFAULT_PORT = 5000


def get_cors_origins() -> list[str]:
    return [origin.strip() for origin in (os.getenv("DASHBOARD_CORS_ORIGIN") or DEFAULT_CORS_ORIGIN).split(",") if origin.strip()]


settings: DashboardSettings = DashboardSettings.from_env()

mcp: FastMCP[None] = FastMCP[None](name="GitHub Dashboard")

mcp.add_middleware(middleware=LoggingMiddleware(include_payloads=True, logger=logger))

dashboard_server: DashboardServer = DashboardServer(code_reviewer=get_code_reviewer(), settings=settings, logger=logger)
_ = dashboard_server.register_routes(fastmcp=mcp)
_ = dashboard_server.register_tools(fastmcp=mcp)


async def sync_repositories(view_model: RepositoryViewModel, source: RepositoryPageSource) -> None:
    try:
        await view_model.sync_all()
    finally:
        if isinstance(source, DashboardApiPageSource):
            await source.aclose()


@click.group()
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]), default="INFO", help="The log level")
def cli(log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]):
    configure_logging(level=log_level)


@cli.command()
@click.option(
    "--transport",
    type=click.Choice(["stdio", "http"]),
    default="http",
    help="The transport to run the server on. The dashboard routes are only served over http.",
)
@click.option("--host", default="127.0.0.1", help="The host to bind the http server to")
@click.option("--port", type=int, default=DEFAULT_PORT, help="The port to bind the http server to")
def serve(transport: Literal["stdio", "http"], host: str, port: int):
    """Run the dashboard server."""

    if transport == "stdio":
        mcp.run(transport="stdio")
        return

    cors = Middleware(CORSMiddleware, allow_origins=get_cors_origins(), allow_credentials=True, allow_methods=["*"], allow_headers=["*"])

    mcp.run(transport="http", host=host, port=port, middleware=[cors])


@cli.command()
@click.option("--search", "search_term", default="", help="Only show repositories whose name, visibility or language contains this text")
@click.option("--sort", "sort_order", type=click.Choice([order.value for order in SortOrder]), default=None, help="The sort order")
@click.option("--api-url", default=None, help="Fetch through a running dashboard server instead of calling GitHub directly")
@click.option("--hide-tags", is_flag=True, default=False, help="Hide the language and visibility of each repository")
@click.option("--hide-size", is_flag=True, default=False, help="Hide the size of each repository")
@click.option("--dark-mode/--light-mode", default=None, help="The color palette, defaults to DASHBOARD_DARK_MODE")
@click.option("--output", type=click.Choice(["text", "yaml"]), default="text", help="The output format")
def repos(
    search_term: str,
    sort_order: str | None,
    api_url: str | None,
    hide_tags: bool,
    hide_size: bool,
    dark_mode: bool | None,
    output: Literal["text", "yaml"],
):
    """List your repositories."""

    dashboard_settings: DashboardSettings = settings.model_copy(
        update={
            "show_tags": not hide_tags,
            "show_repository_size": not hide_size,
            "dark_mode": settings.dark_mode if dark_mode is None else dark_mode,
        }
    )

    source: RepositoryPageSource = (
        DashboardApiPageSource(base_url=api_url) if api_url else GitHubRepositoryPageSource(per_page=dashboard_settings.per_page)
    )

    view_model = RepositoryViewModel(source=source, access_token=get_github_token(), settings=dashboard_settings, logger=logger)

    asyncio.run(sync_repositories(view_model=view_model, source=source))

    view_model.set_search_term(search_term)

    if sort_order:
        view_model.set_sort_order(SortOrder(sort_order))

    if output == "yaml":
        click.echo(dump_model_as_yaml(view_model.visible_repositories))
        return

    click.echo(render_dashboard(view_model.snapshot(), styled=True))


if __name__ == "__main__":
    cli()
