"""lazycompass - configuration, saved spec resolution, and safety gating."""

from lazycompass.config import Config, ConfigPaths, load_config
from lazycompass.safety import Decision, Operation, SafetyOverrides, evaluate
from lazycompass.saved import parse_saved_id, resolve_target
from lazycompass.session import ConfigSession

__all__ = [
    "Config",
    "ConfigPaths",
    "ConfigSession",
    "Decision",
    "Operation",
    "SafetyOverrides",
    "evaluate",
    "load_config",
    "parse_saved_id",
    "resolve_target",
]
