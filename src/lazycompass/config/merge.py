"""Merge utilities for the global and repository config tiers."""

from typing import Any

from lazycompass.exceptions import DuplicateConnectionError, InvalidValueError


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Merges `override` into `base` recursively. For nested dicts, the merge
    is recursive. For all other types (including lists), the override value
    replaces the base value entirely.

    Args:
        base: The base dictionary to merge into.
        override: The dictionary whose values take precedence.

    Returns:
        A new dictionary with merged values. Neither input is modified.

    Examples:
        >>> deep_merge({"a": 1}, {"b": 2})
        {'a': 1, 'b': 2}

        >>> deep_merge({"logging": {"level": "info"}}, {"logging": {"file": "x.log"}})
        {'logging': {'level': 'info', 'file': 'x.log'}}
    """
    result = base.copy()

    for key, override_value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(override_value, dict)
        ):
            result[key] = deep_merge(result[key], override_value)
        else:
            result[key] = override_value

    return result


def _connection_list(tier: dict[str, Any], source: str) -> list[Any]:
    connections = tier.get("connections", [])
    if not isinstance(connections, list):
        raise InvalidValueError("connections", f"must be an array of tables in {source}")

    seen: set[str] = set()
    for connection in connections:
        if not isinstance(connection, dict):
            continue
        name = connection.get("name")
        if isinstance(name, str):
            if name in seen:
                raise DuplicateConnectionError(name, source)
            seen.add(name)
    return connections


def merge_connections(
    base: list[Any], override: list[Any]
) -> list[Any]:
    """Merge two connection lists by name.

    An override entry replaces a base entry of the same name as a whole, at
    the base entry's position. Entries present in only one list are kept;
    override-only entries are appended in their own order.

    Examples:
        >>> merge_connections(
        ...     [{"name": "a", "uri": "g"}, {"name": "b", "uri": "g"}],
        ...     [{"name": "a", "uri": "r"}, {"name": "c", "uri": "r"}],
        ... )
        [{'name': 'a', 'uri': 'r'}, {'name': 'b', 'uri': 'g'}, {'name': 'c', 'uri': 'r'}]
    """
    result = list(base)
    positions = {
        entry.get("name"): index
        for index, entry in enumerate(result)
        if isinstance(entry, dict)
    }

    for entry in override:
        name = entry.get("name") if isinstance(entry, dict) else None
        if name is not None and name in positions:
            result[positions[name]] = entry
        else:
            result.append(entry)

    return result


def merge_tiers(
    global_tier: dict[str, Any],
    repo_tier: dict[str, Any],
    global_source: str = "global config",
    repo_source: str = "repo config",
) -> dict[str, Any]:
    """Merge the global and repository config dictionaries.

    Scalars and section keys that the repository sets explicitly win over
    the global values; missing keys fall through to the global tier and then
    to the model defaults. Connections are merged by name.

    Raises:
        DuplicateConnectionError: If a name repeats within a tier or after
            the merge.
        InvalidValueError: If `connections` is not a list.
    """
    global_connections = _connection_list(global_tier, global_source)
    repo_connections = _connection_list(repo_tier, repo_source)

    merged = deep_merge(
        {k: v for k, v in global_tier.items() if k != "connections"},
        {k: v for k, v in repo_tier.items() if k != "connections"},
    )
    if "connections" in global_tier or "connections" in repo_tier:
        merged["connections"] = merge_connections(global_connections, repo_connections)
        _connection_list(merged, "merged config")

    return merged
