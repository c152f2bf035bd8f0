"""Saved queries and aggregations.

Addressing by filename, payload validation, directory listing, secure
writes, and execution target resolution.
"""

from lazycompass.saved.ids import (
    InvalidReason,
    InvalidSavedId,
    SavedSpecId,
    Scoped,
    Shared,
    parse_saved_id,
    saved_id_or_raise,
)
from lazycompass.saved.payloads import (
    SavedAggregationPayload,
    SavedQueryPayload,
    parse_aggregation_payload,
    parse_query_payload,
)
from lazycompass.saved.store import (
    SavedAggregation,
    SavedQuery,
    ScanResult,
    collect_spec_paths,
    load_aggregation,
    load_query,
    scan_aggregations,
    scan_queries,
    spec_path,
    write_saved_aggregation,
    write_saved_query,
)
from lazycompass.saved.target import ResolvedTarget, resolve_target

__all__ = [
    # Addressing
    "InvalidReason",
    "InvalidSavedId",
    "SavedSpecId",
    "Scoped",
    "Shared",
    "parse_saved_id",
    "saved_id_or_raise",
    # Payloads
    "SavedAggregationPayload",
    "SavedQueryPayload",
    "parse_aggregation_payload",
    "parse_query_payload",
    # Store
    "SavedAggregation",
    "SavedQuery",
    "ScanResult",
    "collect_spec_paths",
    "load_aggregation",
    "load_query",
    "scan_aggregations",
    "scan_queries",
    "spec_path",
    "write_saved_aggregation",
    "write_saved_query",
    # Targets
    "ResolvedTarget",
    "resolve_target",
]
