"""Exception hierarchy for trackmatch.

Per-record conditions (``InvalidCoordinate``, ``MalformedTimestamp``)
are raised by the distance engine and the sample model and caught by
the matcher, which turns them into skip counts.  The remaining
exceptions describe whole-input problems and are reported by the CLI.
"""


class TrackMatchError(ValueError):
    """Base class for all trackmatch errors."""


class InvalidCoordinate(TrackMatchError):
    """A latitude, longitude or altitude is out of range or not finite."""


class MalformedTimestamp(TrackMatchError):
    """A date/time field or millisecond offset cannot be parsed."""


class EmptyInput(TrackMatchError):
    """The truth or sensor series is empty."""


class ConfigError(TrackMatchError):
    """The configuration is missing, unreadable or invalid."""


class RecordFormatError(TrackMatchError):
    """An input table lacks the columns needed to build samples."""
