"""Configuration path discovery.

Locates the global config root and the repository root that hold
config.toml, .env, and the saved query/aggregation directories.
"""

import os
from dataclasses import dataclass
from pathlib import Path

APP_DIR = "lazycompass"
REPO_DIR = ".lazycompass"
CONFIG_FILE = "config.toml"
DOTENV_FILE = ".env"


def get_config_home() -> Path:
    """Get the lazycompass global config directory.

    Priority:
    1. $LAZYCOMPASS_CONFIG_HOME if set
    2. $XDG_CONFIG_HOME/lazycompass if XDG_CONFIG_HOME is set
    3. ~/.config/lazycompass (default)

    Returns:
        Path to the global config directory.
    """
    if config_home := os.environ.get("LAZYCOMPASS_CONFIG_HOME"):
        return Path(config_home)

    if xdg_config_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_config_home) / APP_DIR

    return Path.home() / ".config" / APP_DIR


def find_repo_root(start: Path) -> Path | None:
    """Find the nearest ancestor holding .lazycompass/ or .git.

    Args:
        start: Directory to start searching from.

    Returns:
        The repository root, or None when start is not inside a repository.
    """
    for directory in (start, *start.parents):
        if (directory / REPO_DIR).is_dir():
            return directory
        if (directory / ".git").exists():
            return directory
    return None


@dataclass(frozen=True)
class ConfigPaths:
    """Locations of the global and repository configuration tiers."""

    global_root: Path
    repo_root: Path | None = None

    @classmethod
    def resolve_from(cls, cwd: Path) -> "ConfigPaths":
        """Build paths for a working directory."""
        return cls(global_root=get_config_home(), repo_root=find_repo_root(cwd))

    @property
    def global_config_path(self) -> Path:
        return self.global_root / CONFIG_FILE

    @property
    def global_dotenv_path(self) -> Path:
        return self.global_root / DOTENV_FILE

    @property
    def global_queries_dir(self) -> Path:
        return self.global_root / "queries"

    @property
    def global_aggregations_dir(self) -> Path:
        return self.global_root / "aggregations"

    @property
    def repo_config_root(self) -> Path | None:
        if self.repo_root is None:
            return None
        return self.repo_root / REPO_DIR

    @property
    def repo_config_path(self) -> Path | None:
        root = self.repo_config_root
        return root / CONFIG_FILE if root is not None else None

    @property
    def repo_dotenv_path(self) -> Path | None:
        if self.repo_root is None:
            return None
        return self.repo_root / DOTENV_FILE

    @property
    def repo_queries_dir(self) -> Path | None:
        root = self.repo_config_root
        return root / "queries" if root is not None else None

    @property
    def repo_aggregations_dir(self) -> Path | None:
        root = self.repo_config_root
        return root / "aggregations" if root is not None else None

    @property
    def queries_dir(self) -> Path:
        """Directory saved queries are read from and written to.

        The repository tier is used when present, the global tier otherwise.
        """
        return self.repo_queries_dir or self.global_queries_dir

    @property
    def aggregations_dir(self) -> Path:
        """Directory saved aggregations are read from and written to."""
        return self.repo_aggregations_dir or self.global_aggregations_dir
