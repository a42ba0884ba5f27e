"""Grouping, deduplication and ordering of raw change events."""

from collections import defaultdict
from collections.abc import Iterable, Mapping

from eth_utils import to_checksum_address

from stakedrop.snapshot.errors import MalformedEventError
from stakedrop.snapshot.models import ChangeEvent


def event_sort_key(event: ChangeEvent) -> tuple[int, int]:
    """Chronological order of the events of one address."""
    return (event.position, event.tiebreak)


def collapse_same_position(events: Iterable[ChangeEvent]) -> list[ChangeEvent]:
    """Keep only the highest-tiebreak event at each position, in position order.

    Example:
        >>> a = ChangeEvent(address="0x..", position=5, tiebreak=1, value=10)
        >>> b = ChangeEvent(address="0x..", position=5, tiebreak=3, value=20)
        >>> [e.value for e in collapse_same_position([b, a])]
        [20]
    """
    latest: dict[int, ChangeEvent] = {}
    for event in events:
        current = latest.get(event.position)
        if current is None or event.tiebreak >= current.tiebreak:
            latest[event.position] = event
    return [latest[position] for position in sorted(latest)]


def validate_event(event: ChangeEvent) -> ChangeEvent:
    """Check one event and return it with a checksummed address.

    Raises:
        MalformedEventError: On a negative value, position or tiebreak, or an
            address that is not a 20-byte hex string
    """
    if event.value < 0:
        msg = f"Negative value {event.value} for {event.address} at block {event.position}"
        raise MalformedEventError(msg)
    if event.position < 0:
        msg = f"Negative position {event.position} for {event.address}"
        raise MalformedEventError(msg)
    if event.tiebreak < 0:
        msg = f"Negative tiebreak {event.tiebreak} for {event.address} at block {event.position}"
        raise MalformedEventError(msg)

    try:
        address = to_checksum_address(event.address)
    except (TypeError, ValueError) as e:
        msg = f"Invalid address {event.address!r}: {e}"
        raise MalformedEventError(msg) from e

    if address == event.address:
        return event
    return event.model_copy(update={"address": address})


def normalize_events(events: Iterable[ChangeEvent]) -> dict[str, list[ChangeEvent]]:
    """Group events by address, drop same-position duplicates and sort them.

    Addresses are checksummed, so differently cased spellings of one account
    end up in one group. Within a group, events sharing a block keep only the
    one with the highest log index.

    Args:
        events: Change events in any order, possibly with duplicates

    Returns:
        Mapping of checksummed address to its events ordered by
        (position, tiebreak)

    Raises:
        MalformedEventError: If any event fails validation
    """
    grouped: dict[str, list[ChangeEvent]] = defaultdict(list)
    for event in events:
        valid = validate_event(event)
        grouped[valid.address].append(valid)

    return {
        address: collapse_same_position(sorted(group, key=event_sort_key))
        for address, group in grouped.items()
    }


def latest_values(
    events_by_address: Mapping[str, list[ChangeEvent]],
    up_to: int | None = None,
) -> dict[str, int]:
    """Last known value of each address at or before a block.

    Args:
        events_by_address: Output of normalize_events
        up_to: Highest block to consider (None means every event)

    Returns:
        Mapping of address to its latest value, without zero balances
    """
    values: dict[str, int] = {}
    for address, events in events_by_address.items():
        relevant = [e for e in events if up_to is None or e.position <= up_to]
        if relevant and relevant[-1].value:
            values[address] = relevant[-1].value
    return values


__all__ = [
    "collapse_same_position",
    "event_sort_key",
    "latest_values",
    "normalize_events",
    "validate_event",
]
