"""Loading, listing, and writing saved queries and aggregations.

Each saved spec is one `<stem>.json` file in a queries or aggregations
directory. Listing a directory skips files that fail to parse and reports
them as warnings; loading a single spec raises.
"""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, TypeVar

from lazycompass.config.settings import Config
from lazycompass.exceptions import (
    AddressingError,
    PayloadInvalidError,
    SpecExistsError,
    SpecNotFoundError,
)
from lazycompass.safety import (
    LOCAL_WRITE,
    SafetyOverrides,
    ensure_allowed,
    redact_sensitive_text,
)
from lazycompass.security import normalize_path, write_secure_file

from .ids import InvalidSavedId, SavedSpecId, parse_saved_id, saved_id_or_raise
from .payloads import (
    SavedAggregationPayload,
    SavedQueryPayload,
    parse_aggregation_payload,
    parse_query_payload,
)

logger = logging.getLogger(__name__)

SPEC_SUFFIX = ".json"

T = TypeVar("T")


@dataclass(frozen=True)
class SavedQuery:
    id: SavedSpecId
    payload: SavedQueryPayload
    path: Path


@dataclass(frozen=True)
class SavedAggregation:
    id: SavedSpecId
    payload: SavedAggregationPayload
    path: Path


@dataclass
class ScanResult(Generic[T]):
    """Specs found in a directory plus warnings for the files skipped."""

    items: list[T] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _as_id(saved_id: SavedSpecId | str) -> SavedSpecId:
    if isinstance(saved_id, str):
        return saved_id_or_raise(saved_id)
    return saved_id


def spec_path(directory: Path, saved_id: SavedSpecId | str) -> Path:
    """Path of the file that stores a saved spec."""
    return directory / f"{_as_id(saved_id).stem}{SPEC_SUFFIX}"


def collect_spec_paths(directory: Path) -> list[Path]:
    """Sorted `*.json` files in a directory; empty when it does not exist."""
    if not directory.is_dir():
        return []
    return sorted(
        path for path in directory.iterdir() if path.is_file() and path.suffix == SPEC_SUFFIX
    )


def _read_json(path: Path) -> Any:
    normalize_path(path.parent)
    normalize_path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PayloadInvalidError(str(path), f"unable to read: {e.strerror}") from e
    except UnicodeDecodeError as e:
        raise PayloadInvalidError(
            str(path), f"not valid UTF-8 (byte {e.start})"
        ) from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise PayloadInvalidError(str(path), f"invalid JSON: {e}") from e


def _load(
    directory: Path, saved_id: SavedSpecId | str, parse: Callable[[Any], T]
) -> tuple[SavedSpecId, T, Path]:
    spec_id = _as_id(saved_id)
    path = spec_path(directory, spec_id)
    if not path.is_file():
        raise SpecNotFoundError(spec_id.stem, str(path))
    data = _read_json(path)
    try:
        payload = parse(data)
    except ValueError as e:
        raise PayloadInvalidError(str(path), str(e)) from e
    return spec_id, payload, path


def load_query(directory: Path, saved_id: SavedSpecId | str) -> SavedQuery:
    """Load one saved query.

    Raises:
        AddressingError: If a string id is malformed.
        SpecNotFoundError: If the file does not exist.
        PayloadInvalidError: If the file is not a valid query payload.
    """
    return SavedQuery(*_load(directory, saved_id, parse_query_payload))


def load_aggregation(directory: Path, saved_id: SavedSpecId | str) -> SavedAggregation:
    """Load one saved aggregation.

    Raises:
        AddressingError: If a string id is malformed.
        SpecNotFoundError: If the file does not exist.
        PayloadInvalidError: If the file is not a valid pipeline.
    """
    return SavedAggregation(*_load(directory, saved_id, parse_aggregation_payload))


def _scan(
    directory: Path,
    kind: str,
    parse: Callable[[Any], Any],
    build: Callable[[SavedSpecId, Any, Path], T],
) -> ScanResult[T]:
    result: ScanResult[T] = ScanResult()
    for path in collect_spec_paths(directory):
        try:
            parsed_id = parse_saved_id(path.stem)
            if isinstance(parsed_id, InvalidSavedId):
                raise parsed_id.to_error()
            data = _read_json(path)
            try:
                payload = parse(data)
            except ValueError as e:
                raise PayloadInvalidError(str(path), str(e)) from e
        except (AddressingError, PayloadInvalidError) as e:
            warning = redact_sensitive_text(f"skipping saved {kind} {path}: {e}")
            logger.warning(warning)
            result.warnings.append(warning)
            continue
        result.items.append(build(parsed_id, payload, path))
    return result


def scan_queries(directory: Path) -> ScanResult[SavedQuery]:
    """List the saved queries in a directory, skipping invalid files."""
    return _scan(directory, "query", parse_query_payload, SavedQuery)


def scan_aggregations(directory: Path) -> ScanResult[SavedAggregation]:
    """List the saved aggregations in a directory, skipping invalid files."""
    return _scan(directory, "aggregation", parse_aggregation_payload, SavedAggregation)


def _write(
    directory: Path,
    saved_id: SavedSpecId | str,
    body: Any,
    config: Config,
    overrides: SafetyOverrides,
    overwrite: bool,
) -> Path:
    ensure_allowed(config, overrides, LOCAL_WRITE)

    spec_id = _as_id(saved_id)
    path = spec_path(directory, spec_id)
    try:
        return write_secure_file(
            path, json.dumps(body, indent=2) + "\n", exclusive=not overwrite
        )
    except FileExistsError as e:
        raise SpecExistsError(spec_id.stem, str(path)) from e


def write_saved_query(
    directory: Path,
    saved_id: SavedSpecId | str,
    payload: SavedQueryPayload,
    *,
    config: Config,
    overrides: SafetyOverrides,
    overwrite: bool = False,
) -> Path:
    """Save a query after the safety gate allows a local write.

    Raises:
        ReadOnlyError: If read-only mode is in effect. Nothing is written.
        SpecExistsError: If the file exists and overwrite is False.
    """
    return _write(directory, saved_id, payload.to_json(), config, overrides, overwrite)


def write_saved_aggregation(
    directory: Path,
    saved_id: SavedSpecId | str,
    payload: SavedAggregationPayload,
    *,
    config: Config,
    overrides: SafetyOverrides,
    overwrite: bool = False,
) -> Path:
    """Save an aggregation after the safety gate allows a local write.

    Raises:
        ReadOnlyError: If read-only mode is in effect. Nothing is written.
        SpecExistsError: If the file exists and overwrite is False.
    """
    return _write(directory, saved_id, payload.to_json(), config, overrides, overwrite)
