"""Resolving where a saved spec runs."""

import logging
from dataclasses import dataclass

from lazycompass.config.loader import select_connection
from lazycompass.config.settings import Config, ConnectionSpec
from lazycompass.exceptions import (
    ConnectionNotFoundError,
    MissingCollectionError,
    MissingDatabaseError,
    ScopeConflictError,
)

from .ids import SavedSpecId, Scoped

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedTarget:
    """The connection, database, and collection a spec executes against."""

    connection: ConnectionSpec | None
    database: str
    collection: str


def _hint(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _pick_connection(config: Config, name: str | None) -> ConnectionSpec | None:
    # A named connection must exist; without a name only an unambiguous
    # single connection is picked.
    if name is not None:
        return select_connection(config, name)
    try:
        return select_connection(config)
    except ConnectionNotFoundError:
        return None


def resolve_target(
    saved_id: SavedSpecId,
    config: Config,
    database: str | None = None,
    collection: str | None = None,
    connection: str | None = None,
) -> ResolvedTarget:
    """Resolve the execution target of a saved spec.

    A scoped spec's database and collection come from its name. Passing a
    hint that disagrees with them is a usage error; an equal hint is fine.

    A shared spec takes its collection from the caller and its database from
    the caller or, failing that, from the selected connection's
    default_database.

    Args:
        saved_id: Identity parsed from the spec's filename.
        config: Effective config.
        database: Explicit --db hint.
        collection: Explicit --collection hint.
        connection: Explicit --connection hint.

    Raises:
        ScopeConflictError: If a hint disagrees with a scoped spec.
        MissingCollectionError: If a shared spec has no collection.
        MissingDatabaseError: If a shared spec has no database from any source.
        ConnectionNotFoundError: If a named connection does not exist.
    """
    database = _hint(database)
    collection = _hint(collection)
    selected = _pick_connection(config, _hint(connection))

    if isinstance(saved_id, Scoped):
        if database is not None and database != saved_id.database:
            raise ScopeConflictError(saved_id.stem, "db", saved_id.database, database)
        if collection is not None and collection != saved_id.collection:
            raise ScopeConflictError(saved_id.stem, "collection", saved_id.collection, collection)
        return ResolvedTarget(selected, saved_id.database, saved_id.collection)

    if collection is None:
        raise MissingCollectionError(saved_id.stem)

    if database is None and selected is not None:
        database = selected.default_database
        if database:
            logger.debug(
                "Using default database '%s' of connection '%s'", database, selected.name
            )
    if not database:
        raise MissingDatabaseError(saved_id.stem)

    return ResolvedTarget(selected, database, collection)
