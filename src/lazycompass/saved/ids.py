"""Saved spec addressing.

A saved spec's identity comes from its filename stem alone:

- `<name>` is a shared spec, run against a database and collection chosen
  at run time.
- `<db>.<collection>.<name>` is a scoped spec. The collection may itself
  contain dots: `app.foo.bar.orders.by_user` targets collection
  `foo.bar.orders` in database `app`.
- Two segments are ambiguous and rejected, as is any empty segment.

Parsing returns a tagged value instead of raising, so a directory scan can
treat malformed names as ordinary data.
"""

from dataclasses import dataclass
from enum import Enum

from lazycompass.exceptions import AddressingError, EmptySegmentError, InvalidSegmentsError

SEPARATOR = "."


@dataclass(frozen=True)
class Shared:
    name: str

    @property
    def stem(self) -> str:
        return self.name


@dataclass(frozen=True)
class Scoped:
    database: str
    collection: str
    name: str

    @property
    def stem(self) -> str:
        return SEPARATOR.join((self.database, self.collection, self.name))


SavedSpecId = Shared | Scoped


class InvalidReason(str, Enum):
    INVALID_SEGMENTS = "invalid_segments"
    EMPTY_SEGMENT = "empty_segment"


@dataclass(frozen=True)
class InvalidSavedId:
    stem: str
    reason: InvalidReason
    detail: str

    def to_error(self) -> AddressingError:
        if self.reason is InvalidReason.EMPTY_SEGMENT:
            return EmptySegmentError(self.stem, self.detail)
        return InvalidSegmentsError(self.stem, self.detail)


def parse_saved_id(stem: str) -> Shared | Scoped | InvalidSavedId:
    """Derive a saved spec identity from a filename stem.

    Examples:
        >>> parse_saved_id("active_users")
        Shared(name='active_users')
        >>> parse_saved_id("app.users.active_users")
        Scoped(database='app', collection='users', name='active_users')
        >>> parse_saved_id("a.b").reason
        <InvalidReason.INVALID_SEGMENTS: 'invalid_segments'>
    """
    if "/" in stem or "\\" in stem:
        return InvalidSavedId(
            stem, InvalidReason.INVALID_SEGMENTS, "name cannot contain path separators"
        )

    segments = stem.split(SEPARATOR)
    if any(not segment.strip() for segment in segments):
        return InvalidSavedId(
            stem, InvalidReason.EMPTY_SEGMENT, "name cannot contain empty segments"
        )

    if len(segments) == 1:
        return Shared(stem)

    if len(segments) == 2:
        return InvalidSavedId(
            stem,
            InvalidReason.INVALID_SEGMENTS,
            "two segments are ambiguous; use <name> or <db>.<collection>.<name>",
        )

    return Scoped(
        database=segments[0],
        collection=SEPARATOR.join(segments[1:-1]),
        name=segments[-1],
    )


def saved_id_or_raise(stem: str) -> SavedSpecId:
    """Parse a stem, raising AddressingError when it is malformed."""
    parsed = parse_saved_id(stem)
    if isinstance(parsed, InvalidSavedId):
        raise parsed.to_error()
    return parsed
