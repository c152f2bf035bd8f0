"""Configuration loading and validation.

Loads the global and repository config tiers into a validated Config
snapshot. Either a fully valid Config is returned or a ConfigError is raised;
no partially validated value escapes this module.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from lazycompass.exceptions import (
    ConfigError,
    ConnectionNotFoundError,
    InvalidValueError,
    MissingRequiredError,
)
from lazycompass.security import PermissionReport, normalize_path

from .env import EnvLookup
from .paths import ConfigPaths
from .settings import Config, ConnectionSpec
from .sources import CompassTomlSettingsSource

logger = logging.getLogger(__name__)

_MISSING_TYPES = {"missing", "missing_required"}


def _field_path(loc: tuple[int | str, ...]) -> str:
    """Render a pydantic error location as `connections[0].uri`."""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or "config"


def translate_validation_error(error: ValidationError) -> ConfigError:
    """Convert the first pydantic error into a ConfigError naming its field."""
    first = error.errors()[0]
    field = _field_path(first["loc"])
    if first["type"] in _MISSING_TYPES:
        detail = "is required" if first["type"] == "missing" else first["msg"]
        return MissingRequiredError(field, detail)
    return InvalidValueError(field, first["msg"].lower())


def load_config_with_report(
    paths: ConfigPaths,
    env: EnvLookup | None = None,
) -> tuple[Config, list[PermissionReport]]:
    """Load configuration files and return a Config with permission reports.

    This is the main entry point for loading configuration. It handles
    loading both tiers, merging, interpolation, validation, and
    normalizing permissions on the files that were read.

    Args:
        paths: Config tier locations.
        env: Placeholder lookup override, mainly for tests.

    Returns:
        Tuple of (config, permission_reports).

    Raises:
        ConfigError: If any tier is unparsable or the merged result is invalid.
    """
    source = CompassTomlSettingsSource(Config, paths=paths, env=env)

    try:
        config = Config(**source())
    except ValidationError as e:
        raise translate_validation_error(e) from e

    reports = []
    for file in source.loaded_files:
        for target in (file.parent, file):
            if (report := normalize_path(target)) is not None:
                reports.append(report)

    logger.debug(
        "Loaded config from %d file(s) with %d connection(s)",
        len(source.loaded_files),
        len(config.connections),
    )
    return config, reports


def load_config(paths: ConfigPaths, env: EnvLookup | None = None) -> Config:
    """Load the effective Config for one run.

    Raises:
        ConfigError: If any tier is unparsable or the merged result is invalid.
    """
    config, _ = load_config_with_report(paths, env)
    return config


def log_file_path(paths: ConfigPaths, config: Config) -> Path:
    """Resolve `logging.file`; relative paths live under the global root."""
    file = Path(config.logging.file).expanduser()
    if file.is_absolute():
        return file
    return paths.global_root / file


def select_connection(config: Config, name: str | None = None) -> ConnectionSpec:
    """Pick the connection a command runs against.

    Args:
        config: Effective config.
        name: Requested connection name. Blank counts as not given.

    Returns:
        The named connection, or the only configured one when no name is given.

    Raises:
        ConnectionNotFoundError: If nothing matches or the choice is ambiguous.
    """
    if not config.connections:
        raise ConnectionNotFoundError("No connections configured")

    name = name.strip() if name else None
    if name:
        for connection in config.connections:
            if connection.name == name:
                return connection
        raise ConnectionNotFoundError(f"Connection '{name}' not found")

    if len(config.connections) == 1:
        return config.connections[0]

    raise ConnectionNotFoundError(
        "Multiple connections configured; pass --connection "
        f"({', '.join(config.connection_names())})"
    )
