"""Reconstruction of a balance step function from sparse change events.

A balance only changes at the blocks where an event was emitted, so the
history of one address is a piecewise-constant function of block height::

    value
      |         o-----------+
      |                     |           o---------- ...
      |  o------+           o-----------+
      +----[--------------------------------------)---> height
         start                                 end

To average it over ``[start, end)``:

* the step in force at ``start`` is the one set by the last event strictly
  before ``start``; with no such event the address held nothing, so a zero
  step is seeded at ``start``;
* the last event strictly before ``end`` keeps its value up to ``end``;
* every step is clamped to ``[start, end]`` and weighted by its width.

Block ``p`` owns the unit ``[p, p + 1)``, so the weights of a reconstruction
always add up to ``end - start``.
"""

from bisect import bisect_left
from collections.abc import Sequence

from stakedrop.snapshot.events import collapse_same_position
from stakedrop.snapshot.models import ChangeEvent, Interval, StepSegment


# Sorts before any real log index, so a real event at ``start`` wins the collapse
SYNTHETIC_TIEBREAK = -1


def last_index_before(events: Sequence[ChangeEvent], position: int) -> int | None:
    """Index of the last event strictly before ``position`` (events are sorted)."""
    idx = bisect_left([event.position for event in events], position) - 1
    return idx if idx >= 0 else None


def clamp(position: int, interval: Interval) -> int:
    """Clamp a block height into ``[start, end]``."""
    return max(interval.start, min(position, interval.end))


def build_step_function(
    events: Sequence[ChangeEvent], interval: Interval
) -> list[StepSegment] | None:
    """Turn one address's ordered events into weighted steps over the interval.

    Args:
        events: Events of a single address, ascending by (position, tiebreak)
        interval: Averaging range ``[start, end)``

    Returns:
        The steps covering the interval, or None when no event happened before
        ``end`` (the address then averages exactly zero; events at or after
        ``end`` are ignored)

    Example:
        >>> events = [
        ...     ChangeEvent(address=a, position=10, tiebreak=0, value=100),
        ...     ChangeEvent(address=a, position=20, tiebreak=0, value=300),
        ... ]
        >>> build_step_function(events, Interval(start=0, end=30))
        [StepSegment(weight=10, value=0), StepSegment(weight=10, value=100),
         StepSegment(weight=10, value=300)]
    """
    last_idx = last_index_before(events, interval.end)
    if last_idx is None:
        return None

    first_idx = last_index_before(events, interval.start)
    if first_idx is None:
        # First ever event lies inside the interval: nothing was held before it
        seed = ChangeEvent(
            address=events[0].address,
            position=interval.start,
            tiebreak=SYNTHETIC_TIEBREAK,
            value=0,
        )
        relevant = [seed, *events[: last_idx + 1]]
    else:
        relevant = list(events[first_idx : last_idx + 1])

    relevant = collapse_same_position(relevant)

    # Value set before the interval and never changed inside it
    if len(relevant) == 1:
        return [StepSegment(weight=interval.width, value=relevant[0].value)]

    closing = relevant[-1].model_copy(update={"position": interval.end})
    relevant.append(closing)

    return [
        StepSegment(
            weight=clamp(current.position, interval) - clamp(previous.position, interval),
            value=previous.value,
        )
        for previous, current in zip(relevant, relevant[1:])
    ]


def segment_weight_total(segments: Sequence[StepSegment]) -> int:
    """Sum of the widths of a step function."""
    return sum(segment.weight for segment in segments)


__all__ = [
    "SYNTHETIC_TIEBREAK",
    "build_step_function",
    "clamp",
    "last_index_before",
    "segment_weight_total",
]
