"""Pytest fixtures for lazycompass tests."""

import logging
import os
from pathlib import Path

import pytest

from lazycompass.config import Config, ConfigPaths, ConnectionSpec


@pytest.fixture
def mock_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Provide a mock home directory and set HOME env var."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove lazycompass-related environment variables."""
    for var in ["LAZYCOMPASS_CONFIG_HOME", "XDG_CONFIG_HOME"]:
        monkeypatch.delenv(var, raising=False)
    for var in list(os.environ):
        if var.startswith("LC_TEST_"):
            monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config_home(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, clean_env: None
) -> Path:
    """Provide a mock LAZYCOMPASS_CONFIG_HOME directory.

    Depends on clean_env to ensure env is clean before setting it.
    """
    config = tmp_path / "global"
    config.mkdir()
    monkeypatch.setenv("LAZYCOMPASS_CONFIG_HOME", str(config))
    return config


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """Provide a repository with an empty .lazycompass directory."""
    repo = tmp_path / "repo"
    (repo / ".lazycompass").mkdir(parents=True)
    return repo


@pytest.fixture
def paths(config_home: Path, repo_root: Path) -> ConfigPaths:
    """ConfigPaths covering both tiers."""
    return ConfigPaths(global_root=config_home, repo_root=repo_root)


@pytest.fixture
def write_file():
    """Write text to a path, creating parent directories."""

    def _write(path: Path, contents: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(contents)
        return path

    return _write


@pytest.fixture
def make_config():
    """Build a Config directly, bypassing the files."""

    def _make(**values) -> Config:
        return Config(**values)

    return _make


@pytest.fixture
def local_connection() -> ConnectionSpec:
    return ConnectionSpec(
        name="local", uri="mongodb://localhost:27017", default_database="app"
    )


@pytest.fixture(autouse=True)
def reset_lazycompass_logger():
    """Drop handlers installed by configure_logging between tests."""
    yield
    root = logging.getLogger("lazycompass")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
