"""Errors raised while building a snapshot.

All of them are local validation failures. None is retried: any of them aborts
the snapshot, and no partial document is ever produced.
"""


class SnapshotError(Exception):
    """Base class for snapshot failures."""


class MalformedEventError(SnapshotError):
    """A change event carries a negative or otherwise invalid field."""


class InvalidIntervalError(SnapshotError):
    """The averaging interval is empty or reversed (end <= start)."""


class NoParticipantsError(SnapshotError):
    """The sum of all averages is zero, so there is nothing to be proportional to."""


class LeafNotFoundError(SnapshotError):
    """A proof was requested for a leaf that is not part of the tree."""


class DivisionByZeroError(SnapshotError, ZeroDivisionError):
    """A weighted average was requested over segments with zero total weight."""


__all__ = [
    "DivisionByZeroError",
    "InvalidIntervalError",
    "LeafNotFoundError",
    "MalformedEventError",
    "NoParticipantsError",
    "SnapshotError",
]
