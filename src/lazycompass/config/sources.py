"""Custom pydantic-settings source for lazycompass's TOML configuration.

This module provides a settings source that loads the global and repository
config tiers, merges them, and interpolates ${VAR} placeholders before the
result reaches model validation.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic_settings import BaseSettings
from pydantic_settings.sources import InitSettingsSource

from lazycompass.exceptions import ConfigParseError

from .env import EnvLookup, interpolate
from .merge import merge_tiers
from .paths import ConfigPaths

logger = logging.getLogger(__name__)

SECTIONS = ("theme", "logging", "timeouts")


def load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file if it exists.

    Args:
        path: Path to the TOML file.

    Returns:
        Dictionary of configuration values; empty when the file is absent.

    Raises:
        ConfigParseError: If the file cannot be read, is not UTF-8, or is
            invalid TOML.
    """
    if not path.is_file():
        return {}

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(str(path), f"invalid TOML: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigParseError(str(path), f"not valid UTF-8 (byte {e.start})") from e
    except OSError as e:
        raise ConfigParseError(str(path), f"unable to read: {e.strerror}") from e


class CompassTomlSettingsSource(InitSettingsSource):
    """Settings source that loads lazycompass's two config tiers.

    Priority order (lowest to highest):
    1. Built-in field defaults
    2. Global config (~/.config/lazycompass/config.toml)
    3. Repo config (<repo>/.lazycompass/config.toml)

    The designated string fields `connections[].uri` and `logging.file` are
    interpolated after the merge, so only values that survive it are looked
    up.
    """

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        paths: ConfigPaths,
        env: EnvLookup | None = None,
    ) -> None:
        """Initialize the TOML settings source.

        Args:
            settings_cls: The pydantic-settings class.
            paths: Config tier locations.
            env: Placeholder lookup. Defaults to the process environment
                plus the repo .env, else the global .env.
        """
        self.paths = paths
        self.env = env or EnvLookup((paths.repo_dotenv_path, paths.global_dotenv_path))
        self.loaded_files: list[Path] = []

        toml_data = self._load_configs()
        super().__init__(settings_cls, toml_data)

    def _load_configs(self) -> dict[str, Any]:
        global_path = self.paths.global_config_path
        global_tier = self._load_tier(global_path)

        repo_tier: dict[str, Any] = {}
        repo_path = self.paths.repo_config_path
        if repo_path is not None:
            repo_tier = self._load_tier(repo_path)

        merged = merge_tiers(
            global_tier,
            repo_tier,
            global_source=str(global_path),
            repo_source=str(repo_path),
        )
        return self._interpolate(merged)

    def _load_tier(self, path: Path) -> dict[str, Any]:
        data = load_toml_file(path)
        for section in SECTIONS:
            if section in data and not isinstance(data[section], dict):
                raise ConfigParseError(str(path), f"[{section}] must be a table")
        if path.is_file():
            logger.debug("Loaded config file %s", path)
            self.loaded_files.append(path)
        return data

    def _interpolate(self, merged: dict[str, Any]) -> dict[str, Any]:
        connections = merged.get("connections")
        if isinstance(connections, list):
            resolved = []
            for index, connection in enumerate(connections):
                if isinstance(connection, dict) and isinstance(connection.get("uri"), str):
                    uri = interpolate(connection["uri"], f"connections[{index}].uri", self.env)
                    connection = {**connection, "uri": uri}
                resolved.append(connection)
            merged["connections"] = resolved

        section = merged.get("logging")
        if isinstance(section, dict) and isinstance(section.get("file"), str):
            merged["logging"] = {
                **section,
                "file": interpolate(section["file"], "logging.file", self.env),
            }

        return merged
