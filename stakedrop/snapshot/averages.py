"""Duration-weighted averages of reconstructed balances."""

from collections.abc import Mapping, Sequence

from stakedrop.helpers.logging import get_logger
from stakedrop.snapshot.errors import DivisionByZeroError
from stakedrop.snapshot.models import AddressAverage, ChangeEvent, Interval, StepSegment
from stakedrop.snapshot.step_function import build_step_function


logger = get_logger(__name__)


def weighted_average(segments: Sequence[StepSegment]) -> int:
    """Average of the step values weighted by their widths, rounded down.

    Only Python integers are involved, so token amounts far beyond 64 bits
    keep full precision.

    Raises:
        DivisionByZeroError: If the segments have zero total weight

    Example:
        >>> weighted_average([StepSegment(weight=1, value=1), StepSegment(weight=2, value=4)])
        3
    """
    total_weight = 0
    total_value = 0
    for segment in segments:
        total_weight += segment.weight
        total_value += segment.value * segment.weight

    if total_weight == 0:
        msg = "Cannot average segments with zero total weight"
        raise DivisionByZeroError(msg)

    return total_value // total_weight


def average_value(events: Sequence[ChangeEvent], interval: Interval) -> int:
    """Average balance of one address over the interval.

    Addresses without any event before the end of the interval average zero
    and never reach the weighted average itself.
    """
    segments = build_step_function(events, interval)
    if segments is None:
        return 0
    return weighted_average(segments)


def compute_average_balances(
    events_by_address: Mapping[str, Sequence[ChangeEvent]],
    interval: Interval,
) -> dict[str, AddressAverage]:
    """Average balance of every address, dropping those that average zero.

    Args:
        events_by_address: Output of normalize_events
        interval: Averaging range ``[start, end)``

    Returns:
        Mapping of address to its non-zero average
    """
    averages: dict[str, AddressAverage] = {}
    for address, events in events_by_address.items():
        value = average_value(events, interval)
        if value:
            averages[address] = AddressAverage(address=address, average_value=value)

    logger.info(
        "Averaged %d addresses over blocks [%d, %d): %d with a non-zero balance",
        len(events_by_address),
        interval.start,
        interval.end,
        len(averages),
    )
    return averages


__all__ = [
    "average_value",
    "compute_average_balances",
    "weighted_average",
]
