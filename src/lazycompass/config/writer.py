"""Editing config files in place.

Connections are appended with tomlkit so comments and formatting already in
the file survive the edit. Every edit passes the safety gate as a local
write and goes through the secure write path.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import AoT, Array

from lazycompass.exceptions import (
    ConfigParseError,
    DuplicateConnectionError,
    InvalidValueError,
    RepoConfigNotFoundError,
)
from lazycompass.safety import LOCAL_WRITE, SafetyOverrides, ensure_allowed
from lazycompass.security import path_lock, write_secure_file

from .paths import ConfigPaths
from .settings import Config, ConnectionSpec

logger = logging.getLogger(__name__)


class ConfigScope(str, Enum):
    GLOBAL = "global"
    REPO = "repo"


def resolve_config_scope(
    paths: ConfigPaths, use_global: bool = False, use_repo: bool = False
) -> ConfigScope:
    """Pick the tier to edit: explicit flag, else repo inside a repo, else global."""
    if use_global:
        return ConfigScope.GLOBAL
    if use_repo or paths.repo_config_root is not None:
        return ConfigScope.REPO
    return ConfigScope.GLOBAL


def scope_config_path(paths: ConfigPaths, scope: ConfigScope) -> Path:
    """Config file for a tier.

    Raises:
        RepoConfigNotFoundError: For the repo tier outside a repository.
    """
    if scope is ConfigScope.GLOBAL:
        return paths.global_config_path
    if paths.repo_config_path is None:
        raise RepoConfigNotFoundError()
    return paths.repo_config_path


def _read_document(path: Path) -> tomlkit.TOMLDocument:
    if not path.is_file():
        return tomlkit.document()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigParseError(str(path), f"unable to read: {e.strerror}") from e
    except UnicodeDecodeError as e:
        raise ConfigParseError(str(path), f"not valid UTF-8 (byte {e.start})") from e
    try:
        return tomlkit.parse(text)
    except TOMLKitError as e:
        raise ConfigParseError(str(path), f"invalid TOML: {e}") from e


def _entry(connection: ConnectionSpec) -> dict[str, Any]:
    entry = {"name": connection.name, "uri": connection.uri}
    if connection.default_database:
        entry["default_database"] = connection.default_database
    return entry


def append_connection(
    paths: ConfigPaths,
    connection: ConnectionSpec,
    scope: ConfigScope,
    *,
    config: Config,
    overrides: SafetyOverrides,
) -> Path:
    """Append a connection to the global or repo config file.

    The file is created when it does not exist. The read, the duplicate
    check, and the write all happen under the path lock.

    Returns:
        The config file that was written.

    Raises:
        ReadOnlyError: If read-only mode is in effect. Nothing is written.
        RepoConfigNotFoundError: For the repo tier outside a repository.
        DuplicateConnectionError: If the file already names this connection.
        ConfigParseError: If the existing file cannot be parsed.
    """
    ensure_allowed(config, overrides, LOCAL_WRITE)
    path = scope_config_path(paths, scope)

    with path_lock(path):
        document = _read_document(path)
        existing = document.get("connections")
        entry = _entry(connection)

        if existing is not None and not isinstance(existing, (AoT, Array)):
            raise InvalidValueError("connections", f"must be an array of tables in {path}")
        if existing is not None and any(
            isinstance(item, dict) and item.get("name") == connection.name
            for item in existing
        ):
            raise DuplicateConnectionError(connection.name, str(path))

        if isinstance(existing, Array):
            inline = tomlkit.inline_table()
            inline.update(entry)
            existing.append(inline)
        else:
            table = tomlkit.table()
            table.update(entry)
            if existing is None:
                tables = tomlkit.aot()
                tables.append(table)
                document["connections"] = tables
            else:
                existing.append(table)

        write_secure_file(path, tomlkit.dumps(document))

    logger.info("Added connection '%s' to %s", connection.name, path)
    return path
