"""Tests for settings loading and store discovery."""

from pathlib import Path

import pytest

from apitome.config import CONFIG_FILENAME, Settings, load_settings
from apitome.utils.store_discovery import discover_store


@pytest.fixture
def home(tmp_path, monkeypatch):
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


@pytest.fixture
def project(tmp_path):
    project_dir = tmp_path / "project"
    project_dir.mkdir()
    return project_dir


def test_defaults(home, project):
    settings = load_settings(start_dir=project, environ={})

    assert settings == Settings()
    assert settings.query_timeout == 180.0
    assert settings.max_history_messages == 10


def test_global_config(home, project):
    (home / CONFIG_FILENAME).write_text(
        '[api]\nbase-url = "https://global.example.com"\nquery-timeout = 60\n'
    )

    settings = load_settings(start_dir=project, environ={})

    assert settings.api_base_url == "https://global.example.com"
    assert settings.query_timeout == 60.0
    assert isinstance(settings.query_timeout, float)


def test_project_config_replaces_global(home, project):
    (home / CONFIG_FILENAME).write_text('[api]\nbase-url = "https://global.example.com"\n')
    (project / CONFIG_FILENAME).write_text("[chat]\nmax-history-messages = 4\n")

    settings = load_settings(start_dir=project, environ={})

    assert settings.max_history_messages == 4
    assert settings.api_base_url == Settings().api_base_url


def test_environment_overrides_file(home, project):
    (project / CONFIG_FILENAME).write_text('[api]\nbase-url = "https://file.example.com"\n')

    settings = load_settings(
        start_dir=project,
        environ={"APITOME_API_BASE_URL": "https://env.example.com", "APITOME_STORE": "/tmp/x.db"},
    )

    assert settings.api_base_url == "https://env.example.com"
    assert settings.store_path == "/tmp/x.db"


def test_invalid_config_names_file(home, project):
    (project / CONFIG_FILENAME).write_text("[api\n")

    with pytest.raises(ValueError, match=CONFIG_FILENAME):
        load_settings(start_dir=project, environ={})


def test_store_explicit_path(home, project):
    assert discover_store("~/stores/a.db", start_dir=project) == str(home / "stores" / "a.db")


def test_store_single_project_file(home, project):
    (project / ".apitome").mkdir()
    (project / ".apitome" / "work.db").touch()

    assert discover_store(start_dir=project) == str(project / ".apitome" / "work.db")


def test_store_multiple_project_files(home, project):
    (project / ".apitome").mkdir()
    (project / ".apitome" / "a.db").touch()
    (project / ".apitome" / "b.db").touch()

    with pytest.raises(ValueError, match="a.db, b.db"):
        discover_store(start_dir=project)


def test_store_default(home, project):
    assert Path(discover_store(start_dir=project)) == home / ".apitome" / "apitome.db"
