"""End-to-end snapshot creation: events in, Merkle manifest out."""

from collections.abc import Mapping
from datetime import datetime

from stakedrop.data.blocks.resolver import PositionResolver
from stakedrop.data.stake_sets.base import EventSource
from stakedrop.helpers.constants import DEFAULT_FREQUENCY
from stakedrop.helpers.logging import get_logger
from stakedrop.snapshot.allocation import allocate_claims
from stakedrop.snapshot.averages import compute_average_balances
from stakedrop.snapshot.events import latest_values, normalize_events
from stakedrop.snapshot.manifest import (
    Snapshot,
    build_manifest,
    calculate_apy,
    months_between,
    normalize_frequency,
)
from stakedrop.snapshot.models import AddressAverage


logger = get_logger(__name__)


def build_snapshot(
    averages: Mapping[str, AddressAverage],
    dropped_amount: int,
    block_height: int,
    *,
    frequency: str = DEFAULT_FREQUENCY,
    quantity: int = 1,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    start_block: int | None = None,
    end_block: int | None = None,
) -> Snapshot:
    """Allocate the drop over ``averages`` and assemble the snapshot document.

    Raises:
        NoParticipantsError: If every average is zero
        ValueError: On a negative dropped amount or an unknown frequency
    """
    claims = allocate_claims(averages, dropped_amount)
    average_total = sum(entry.average_value for entry in averages.values())
    total_claimable = sum(claim.claim_value for claim in claims.values())

    return Snapshot(
        merkle_tree=build_manifest(claims),
        start_date=start_date,
        end_date=end_date,
        start_block=start_block,
        end_block=end_block,
        block_height=block_height,
        average_total_staked=average_total,
        dropped_amount=dropped_amount,
        total_claimable=total_claimable,
        apy=calculate_apy(dropped_amount, average_total, frequency, quantity),
    )


class SnapshotCreator:
    """Builds distribution snapshots from stake change events.

    Every step either succeeds or raises; no partial snapshot is ever
    returned.
    """

    def __init__(
        self,
        event_source: EventSource,
        resolver: PositionResolver,
        dropped_amount: int,
        frequency: str = DEFAULT_FREQUENCY,
    ) -> None:
        """Initialize the creator.

        Args:
            event_source: Where stake change events come from
            resolver: Maps dates to block heights
            dropped_amount: Reward pool in base units
            frequency: How often drops happen, for the APY figure

        Raises:
            ValueError: On a negative amount or an unknown frequency
        """
        if dropped_amount < 0:
            msg = f"Dropped amount must not be negative, got {dropped_amount}"
            raise ValueError(msg)

        self.event_source = event_source
        self.resolver = resolver
        self.dropped_amount = dropped_amount
        self.frequency = normalize_frequency(frequency)

    async def _resolve_to_block(self, to_block: int | None) -> int:
        if to_block is not None:
            return to_block
        return await self.resolver.oracle.get_latest_height()

    async def create(
        self,
        start_date: datetime,
        end_date: datetime,
        *,
        from_block: int = 0,
        to_block: int | None = None,
    ) -> Snapshot:
        """Snapshot of the time-weighted average stakes between two dates.

        Args:
            start_date: Start of the period (exclusive at block granularity)
            end_date: End of the period
            from_block: First block to read events from
            to_block: Last block to read events from (defaults to the head)

        Returns:
            The complete snapshot

        Raises:
            SnapshotError: On malformed events, an empty interval or no
                participants
            BlockNotFoundError: If ``end_date`` is later than the chain head
        """
        to_block = await self._resolve_to_block(to_block)
        interval = await self.resolver.resolve_interval(start_date, end_date)

        events = await self.event_source.get_events(from_block, to_block)
        averages = compute_average_balances(normalize_events(events), interval)

        snapshot = build_snapshot(
            averages,
            self.dropped_amount,
            to_block,
            frequency=self.frequency,
            quantity=max(1, months_between(start_date, end_date)),
            start_date=start_date,
            end_date=end_date,
            start_block=interval.start,
            end_block=interval.end,
        )
        logger.info(
            "Snapshot for %s .. %s: %d claims, root %s",
            start_date.isoformat(),
            end_date.isoformat(),
            len(snapshot.merkle_tree.claims),
            snapshot.merkle_tree.root,
        )
        return snapshot

    async def create_at_height(
        self, from_block: int = 0, to_block: int | None = None
    ) -> Snapshot:
        """Snapshot of the stakes held at ``to_block``.

        Each address's ``averageStake`` is its stake at that block.
        """
        to_block = await self._resolve_to_block(to_block)
        events = await self.event_source.get_events(from_block, to_block)

        stakes = latest_values(normalize_events(events), up_to=to_block)
        averages = {
            address: AddressAverage(address=address, average_value=value)
            for address, value in stakes.items()
        }

        snapshot = build_snapshot(
            averages,
            self.dropped_amount,
            to_block,
            frequency=self.frequency,
        )
        logger.info(
            "Snapshot at block %d: %d claims, root %s",
            to_block,
            len(snapshot.merkle_tree.claims),
            snapshot.merkle_tree.root,
        )
        return snapshot


__all__ = [
    "SnapshotCreator",
    "build_snapshot",
]
