"""Base class for balance-change event sources."""

from abc import ABC, abstractmethod

from stakedrop.snapshot.models import ChangeEvent


class EventSource(ABC):
    """Abstract source of stake change events.

    Subclasses must implement:
    - get_events(): every event emitted in an inclusive block range

    An implementation either returns the complete set of events for the range
    or raises; a snapshot computed from a partial set would be wrong.
    """

    @abstractmethod
    async def get_events(self, from_block: int, to_block: int) -> list[ChangeEvent]:
        """Fetch every change event in ``[from_block, to_block]``."""
        ...


def split_block_interval(
    from_block: int, to_block: int, batch_size: int
) -> list[tuple[int, int]]:
    """Split an inclusive block range into consecutive inclusive chunks.

    Args:
        from_block: First block (inclusive)
        to_block: Last block (inclusive)
        batch_size: Maximum number of blocks per chunk

    Returns:
        List of (from, to) pairs covering the range, empty if it is empty

    Raises:
        ValueError: If batch_size is not positive

    Example:
        >>> split_block_interval(0, 9, 4)
        [(0, 3), (4, 7), (8, 9)]
    """
    if batch_size <= 0:
        msg = f"batch_size must be positive, got {batch_size}"
        raise ValueError(msg)

    return [
        (start, min(start + batch_size - 1, to_block))
        for start in range(from_block, to_block + 1, batch_size)
    ]


__all__ = [
    "EventSource",
    "split_block_interval",
]
