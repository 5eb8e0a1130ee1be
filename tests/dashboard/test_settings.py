import pytest
from pydantic import ValidationError

from github_dashboard.dashboard.query import SortOrder
from github_dashboard.dashboard.settings import DEFAULT_PER_PAGE, DashboardSettings


def test_defaults():
    settings = DashboardSettings()

    assert settings.sort_order == SortOrder.NAME
    assert settings.show_tags is True
    assert settings.show_repository_size is True
    assert settings.dark_mode is False
    assert settings.per_page == DEFAULT_PER_PAGE


def test_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DASHBOARD_SORT_ORDER", "updated")
    monkeypatch.setenv("DASHBOARD_PER_PAGE", "25")
    monkeypatch.setenv("DASHBOARD_DARK_MODE", "true")

    settings = DashboardSettings.from_env()

    assert settings.sort_order == SortOrder.UPDATED
    assert settings.per_page == 25
    assert settings.dark_mode is True


def test_from_env_rejects_invalid_sort_order(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DASHBOARD_SORT_ORDER", "stars")

    with pytest.raises(ValidationError):
        DashboardSettings.from_env()


def test_toggles_return_new_settings():
    settings = DashboardSettings()

    toggled = settings.toggle_tags().toggle_repository_size().toggle_dark_mode()

    assert (toggled.show_tags, toggled.show_repository_size, toggled.dark_mode) == (False, False, True)
    assert (settings.show_tags, settings.show_repository_size, settings.dark_mode) == (True, True, False)


def test_is_frozen():
    settings = DashboardSettings()

    with pytest.raises(ValidationError):
        settings.dark_mode = True  # pyright: ignore[reportAttributeAccessIssue]
