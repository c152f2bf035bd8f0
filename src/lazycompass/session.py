"""Session state for interactive front ends.

A session owns exactly one Config snapshot. Reloading builds a new snapshot
and swaps the reference; code that captured the old snapshot keeps using it
unchanged. Saved spec scans run on a worker thread and report back through
a message queue so the caller's UI loop never waits on disk I/O.
"""

import logging
import queue
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field

from lazycompass.config import Config, ConfigPaths, load_config_with_report
from lazycompass.exceptions import LazyCompassError
from lazycompass.safety import SafetyOverrides, connection_warnings
from lazycompass.saved import SavedAggregation, SavedQuery, scan_aggregations, scan_queries
from lazycompass.security import PermissionReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanComplete:
    """Message posted when a saved spec scan finishes."""

    request_id: int
    queries: list[SavedQuery] = field(default_factory=list)
    aggregations: list[SavedAggregation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ScanFailed:
    """Message posted when a saved spec scan raises."""

    request_id: int
    error: str


ScanMessage = ScanComplete | ScanFailed


class ConfigSession:
    """Holds the current Config snapshot for one interactive session.

    Args:
        paths: Config tier locations.
        overrides: Safety flags supplied at startup.
    """

    def __init__(self, paths: ConfigPaths, overrides: SafetyOverrides | None = None) -> None:
        self.paths = paths
        self.overrides = overrides or SafetyOverrides()
        self.messages: queue.Queue[ScanMessage] = queue.Queue()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="lazycompass-scan")
        self._next_request_id = 0
        self._config, self.permission_reports = load_config_with_report(paths)

    @property
    def config(self) -> Config:
        """The current snapshot."""
        return self._config

    def warnings(self) -> list[str]:
        """Advisory warnings for the current snapshot."""
        notes = [report.warning for report in self.permission_reports if not report.corrected]
        notes.extend(connection_warnings(self._config, self.overrides))
        return notes

    def reload(self) -> Config:
        """Load a fresh snapshot and replace the current one.

        If loading fails the current snapshot stays in place and the error
        propagates.
        """
        config, reports = load_config_with_report(self.paths)
        self._config = config
        self.permission_reports = reports
        logger.info("Configuration reloaded")
        return config

    def scan_saved_specs(self) -> int:
        """Start a background scan of the saved spec directories.

        Returns:
            The request id carried by the resulting message.
        """
        self._next_request_id += 1
        request_id = self._next_request_id
        future = self._executor.submit(self._scan, request_id)
        future.add_done_callback(self._post_failure(request_id))
        return request_id

    def _scan(self, request_id: int) -> None:
        queries = scan_queries(self.paths.queries_dir)
        aggregations = scan_aggregations(self.paths.aggregations_dir)
        self.messages.put(
            ScanComplete(
                request_id,
                queries=queries.items,
                aggregations=aggregations.items,
                warnings=queries.warnings + aggregations.warnings,
            )
        )

    def _post_failure(self, request_id: int):
        def callback(future: Future) -> None:
            error = future.exception()
            if error is None:
                return
            if not isinstance(error, (LazyCompassError, OSError)):
                logger.error("Saved spec scan crashed", exc_info=error)
            self.messages.put(ScanFailed(request_id, str(error)))

        return callback

    def poll(self) -> list[ScanMessage]:
        """Drain pending messages without blocking."""
        drained = []
        while True:
            try:
                drained.append(self.messages.get_nowait())
            except queue.Empty:
                return drained

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "ConfigSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
