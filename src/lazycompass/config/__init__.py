"""Configuration package for lazycompass.

This package provides TOML-based configuration with a global and a
repository tier, ${VAR} interpolation, and validation into an immutable
Config snapshot.
"""

from lazycompass.config.env import EnvLookup, interpolate
from lazycompass.config.loader import (
    load_config,
    load_config_with_report,
    log_file_path,
    select_connection,
    translate_validation_error,
)
from lazycompass.config.merge import deep_merge, merge_connections, merge_tiers
from lazycompass.config.paths import ConfigPaths, find_repo_root, get_config_home
from lazycompass.config.settings import (
    Config,
    ConnectionSpec,
    LoggingConfig,
    ThemeConfig,
    TimeoutConfig,
)
from lazycompass.config.sources import CompassTomlSettingsSource, load_toml_file
from lazycompass.config.writer import (
    ConfigScope,
    append_connection,
    resolve_config_scope,
    scope_config_path,
)

__all__ = [
    # Paths
    "ConfigPaths",
    "find_repo_root",
    "get_config_home",
    # Environment
    "EnvLookup",
    "interpolate",
    # Merge
    "deep_merge",
    "merge_connections",
    "merge_tiers",
    # Loading
    "load_config",
    "load_config_with_report",
    "load_toml_file",
    "log_file_path",
    "select_connection",
    "translate_validation_error",
    # Settings
    "Config",
    "ConnectionSpec",
    "LoggingConfig",
    "ThemeConfig",
    "TimeoutConfig",
    # Sources
    "CompassTomlSettingsSource",
    # Editing
    "ConfigScope",
    "append_connection",
    "resolve_config_scope",
    "scope_config_path",
]
