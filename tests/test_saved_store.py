"""Tests for loading, listing, and writing saved specs."""

import json
import os
import threading
from pathlib import Path

import pytest

from lazycompass.config import Config
from lazycompass.exceptions import (
    InvalidSegmentsError,
    PayloadInvalidError,
    ReadOnlyError,
    SpecExistsError,
    SpecNotFoundError,
)
from lazycompass.safety import SafetyOverrides
from lazycompass.saved import (
    SavedAggregationPayload,
    SavedQueryPayload,
    Scoped,
    Shared,
    load_aggregation,
    load_query,
    scan_aggregations,
    scan_queries,
    write_saved_aggregation,
    write_saved_query,
)


@pytest.fixture
def queries_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "queries"
    directory.mkdir()
    return directory


@pytest.fixture
def aggregations_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "aggregations"
    directory.mkdir()
    return directory


class TestLoadQuery:
    """Tests for load_query."""

    def test_loads_scoped_query(self, queries_dir: Path) -> None:
        (queries_dir / "app.users.active_users.json").write_text(
            '{"filter": {"active": true}, "projection": {"email": 1}, "limit": 5}'
        )
        query = load_query(queries_dir, "app.users.active_users")
        assert query.id == Scoped("app", "users", "active_users")
        assert query.payload.filter == {"active": True}
        assert query.payload.projection == {"email": 1}
        assert query.payload.limit == 5
        assert query.payload.sort is None

    def test_empty_object_is_valid(self, queries_dir: Path) -> None:
        (queries_dir / "everything.json").write_text("{}")
        query = load_query(queries_dir, Shared("everything"))
        assert query.payload == SavedQueryPayload()

    def test_not_found(self, queries_dir: Path) -> None:
        with pytest.raises(SpecNotFoundError) as exc_info:
            load_query(queries_dir, "missing")
        assert exc_info.value.stem == "missing"

    def test_bad_name(self, queries_dir: Path) -> None:
        with pytest.raises(InvalidSegmentsError):
            load_query(queries_dir, "db.name")

    def test_unknown_key_rejected(self, queries_dir: Path) -> None:
        (queries_dir / "q.json").write_text('{"filter": {}, "notes": "x"}')
        with pytest.raises(PayloadInvalidError) as exc_info:
            load_query(queries_dir, "q")
        assert "unknown field 'notes'" in str(exc_info.value)

    @pytest.mark.parametrize("limit", ["-1", "1.5", '"10"', "true"])
    def test_bad_limit_rejected(self, queries_dir: Path, limit: str) -> None:
        (queries_dir / "q.json").write_text(f'{{"limit": {limit}}}')
        with pytest.raises(PayloadInvalidError) as exc_info:
            load_query(queries_dir, "q")
        assert "limit" in str(exc_info.value)

    def test_array_rejected(self, queries_dir: Path) -> None:
        (queries_dir / "q.json").write_text("[]")
        with pytest.raises(PayloadInvalidError):
            load_query(queries_dir, "q")

    def test_non_utf8_file(self, queries_dir: Path) -> None:
        path = queries_dir / "bad.json"
        path.write_bytes(b'{"filter": "\xff\xfe"}')
        with pytest.raises(PayloadInvalidError) as exc_info:
            load_query(queries_dir, "bad")
        assert exc_info.value.path == str(path)
        assert "UTF-8" in str(exc_info.value)

    def test_invalid_json(self, queries_dir: Path) -> None:
        path = queries_dir / "q.json"
        path.write_text("{not json")
        with pytest.raises(PayloadInvalidError) as exc_info:
            load_query(queries_dir, "q")
        assert exc_info.value.path == str(path)


class TestLoadAggregation:
    """Tests for load_aggregation."""

    def test_loads_pipeline(self, aggregations_dir: Path) -> None:
        (aggregations_dir / "app.orders.by_user.json").write_text(
            '[{"$match": {"status": "open"}}, {"$group": {"_id": "$user"}}]'
        )
        aggregation = load_aggregation(aggregations_dir, "app.orders.by_user")
        assert aggregation.payload.stage_names == ["$match", "$group"]

    def test_object_rejected(self, aggregations_dir: Path) -> None:
        (aggregations_dir / "a.json").write_text('{"$match": {}}')
        with pytest.raises(PayloadInvalidError) as exc_info:
            load_aggregation(aggregations_dir, "a")
        assert "JSON array" in str(exc_info.value)

    def test_multi_key_stage_rejected(self, aggregations_dir: Path) -> None:
        (aggregations_dir / "a.json").write_text('[{"$match": {}, "$limit": 1}]')
        with pytest.raises(PayloadInvalidError) as exc_info:
            load_aggregation(aggregations_dir, "a")
        assert "stage 0" in str(exc_info.value)

    def test_stage_key_needs_dollar(self, aggregations_dir: Path) -> None:
        (aggregations_dir / "a.json").write_text('[{"$match": {}}, {"limit": 1}]')
        with pytest.raises(PayloadInvalidError) as exc_info:
            load_aggregation(aggregations_dir, "a")
        assert "stage 1" in str(exc_info.value)

    def test_non_object_stage_rejected(self, aggregations_dir: Path) -> None:
        (aggregations_dir / "a.json").write_text('["$match"]')
        with pytest.raises(PayloadInvalidError):
            load_aggregation(aggregations_dir, "a")


class TestScan:
    """Tests for directory listing."""

    def test_skips_invalid_files_with_warning(self, queries_dir: Path) -> None:
        (queries_dir / "valid.json").write_text('{"filter": {"active": true}}')
        (queries_dir / "db.name.json").write_text('{"filter": {}}')
        (queries_dir / "broken.json").write_text("{")
        (queries_dir / "notes.txt").write_text("ignored")

        result = scan_queries(queries_dir)

        assert [query.id for query in result.items] == [Shared("valid")]
        assert len(result.warnings) == 2
        assert any("db.name.json" in warning for warning in result.warnings)
        assert any("broken.json" in warning for warning in result.warnings)

    def test_non_utf8_file_skipped(self, queries_dir: Path) -> None:
        (queries_dir / "good.json").write_text("{}")
        (queries_dir / "bad.json").write_bytes(b'{"filter": "\xff\xfe"}')

        result = scan_queries(queries_dir)

        assert [query.id for query in result.items] == [Shared("good")]
        assert len(result.warnings) == 1
        assert "bad.json" in result.warnings[0]

    def test_non_utf8_aggregation_skipped(self, aggregations_dir: Path) -> None:
        (aggregations_dir / "bad.json").write_bytes(b"[\x80]")
        result = scan_aggregations(aggregations_dir)
        assert result.items == []
        assert len(result.warnings) == 1

    def test_missing_directory_is_empty(self, tmp_path: Path) -> None:
        result = scan_aggregations(tmp_path / "nope")
        assert result.items == []
        assert result.warnings == []

    def test_sorted_by_filename(self, aggregations_dir: Path) -> None:
        for stem in ["b", "a", "app.users.c"]:
            (aggregations_dir / f"{stem}.json").write_text("[]")
        result = scan_aggregations(aggregations_dir)
        assert [agg.id.stem for agg in result.items] == ["a", "app.users.c", "b"]


class TestWrite:
    """Tests for the gated write path."""

    def test_write_query_when_writes_enabled(self, queries_dir: Path) -> None:
        payload = SavedQueryPayload(filter={"status": "open"}, limit=50)
        path = write_saved_query(
            queries_dir,
            "app.orders.recent",
            payload,
            config=Config(read_only=False),
            overrides=SafetyOverrides(),
        )
        assert path == queries_dir / "app.orders.recent.json"
        assert json.loads(path.read_text()) == {"filter": {"status": "open"}, "limit": 50}
        if os.name == "posix":
            assert (path.stat().st_mode & 0o777) == 0o600
        assert load_query(queries_dir, "app.orders.recent").payload == payload

    def test_read_only_blocks_before_touching_disk(self, tmp_path: Path) -> None:
        directory = tmp_path / "queries"
        with pytest.raises(ReadOnlyError) as exc_info:
            write_saved_query(
                directory,
                "recent",
                SavedQueryPayload(),
                config=Config(),
                overrides=SafetyOverrides(),
            )
        assert exc_info.value.override == "--write-enabled"
        assert not directory.exists()

    def test_write_enabled_override(self, aggregations_dir: Path) -> None:
        payload = SavedAggregationPayload(stages=[{"$match": {}}])
        path = write_saved_aggregation(
            aggregations_dir,
            "pipeline",
            payload,
            config=Config(),
            overrides=SafetyOverrides(write_enabled=True),
        )
        assert json.loads(path.read_text()) == [{"$match": {}}]

    def test_refuses_overwrite(self, queries_dir: Path) -> None:
        (queries_dir / "recent.json").write_text("{}")
        kwargs = {"config": Config(read_only=False), "overrides": SafetyOverrides()}
        with pytest.raises(SpecExistsError):
            write_saved_query(queries_dir, "recent", SavedQueryPayload(limit=1), **kwargs)
        write_saved_query(
            queries_dir, "recent", SavedQueryPayload(limit=1), overwrite=True, **kwargs
        )
        assert load_query(queries_dir, "recent").payload.limit == 1

    def test_concurrent_saves_without_overwrite(self, queries_dir: Path) -> None:
        """Only one of several racing saves of the same name succeeds."""
        writers = 8
        barrier = threading.Barrier(writers)
        written: list[int] = []
        refused: list[int] = []

        def save(index: int) -> None:
            barrier.wait()
            try:
                write_saved_query(
                    queries_dir,
                    "recent",
                    SavedQueryPayload(limit=index),
                    config=Config(read_only=False),
                    overrides=SafetyOverrides(),
                )
            except SpecExistsError:
                refused.append(index)
            else:
                written.append(index)

        threads = [threading.Thread(target=save, args=(i,)) for i in range(writers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(written) == 1
        assert len(refused) == writers - 1
        assert load_query(queries_dir, "recent").payload.limit == written[0]
