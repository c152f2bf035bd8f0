"""Tests for saved/ids.py filename addressing."""

import pytest

from lazycompass.exceptions import EmptySegmentError, InvalidSegmentsError
from lazycompass.saved import (
    InvalidReason,
    InvalidSavedId,
    Scoped,
    Shared,
    parse_saved_id,
    saved_id_or_raise,
)


class TestParseSavedId:
    """Tests for parse_saved_id."""

    def test_single_segment_is_shared(self) -> None:
        assert parse_saved_id("active_users") == Shared("active_users")

    def test_three_segments_are_scoped(self) -> None:
        assert parse_saved_id("app.users.active_users") == Scoped(
            database="app", collection="users", name="active_users"
        )

    def test_dotted_collection(self) -> None:
        assert parse_saved_id("app.foo.bar.orders.by_user") == Scoped(
            database="app", collection="foo.bar.orders", name="by_user"
        )

    def test_two_segments_are_ambiguous(self) -> None:
        parsed = parse_saved_id("a.b")
        assert isinstance(parsed, InvalidSavedId)
        assert parsed.reason is InvalidReason.INVALID_SEGMENTS

    @pytest.mark.parametrize(
        "stem", ["a..b", ".users", "users.", "app..users.name", "", "app. .name"]
    )
    def test_empty_segments(self, stem: str) -> None:
        parsed = parse_saved_id(stem)
        assert isinstance(parsed, InvalidSavedId)
        assert parsed.reason is InvalidReason.EMPTY_SEGMENT

    def test_path_separator_rejected(self) -> None:
        parsed = parse_saved_id("../etc/passwd")
        assert isinstance(parsed, InvalidSavedId)
        assert parsed.reason is InvalidReason.INVALID_SEGMENTS

    def test_stem_round_trips(self) -> None:
        for stem in ["active_users", "app.foo.bar.orders.by_user"]:
            assert parse_saved_id(stem).stem == stem


class TestSavedIdOrRaise:
    """Tests for saved_id_or_raise."""

    def test_valid(self) -> None:
        assert saved_id_or_raise("recent") == Shared("recent")

    def test_invalid_segments_error(self) -> None:
        with pytest.raises(InvalidSegmentsError) as exc_info:
            saved_id_or_raise("db.name")
        assert "two segments" in str(exc_info.value)

    def test_empty_segment_error(self) -> None:
        with pytest.raises(EmptySegmentError):
            saved_id_or_raise("a..b")
