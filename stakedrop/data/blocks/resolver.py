"""Mapping calendar dates to block heights.

Block timestamps grow monotonically with height, so the first block at (or
after) a given instant can be found by bisection. The expensive part is the
number of timestamp lookups, so the search starts from an estimate based on
the average block rate and gallops outward, with jumps that grow by one day's
worth of blocks each attempt, until the target is bracketed.
"""

import asyncio
import math
from datetime import UTC, datetime

from stakedrop.data.blocks.oracle import BlockTimestampOracle
from stakedrop.helpers.constants import SECONDS_PER_DAY
from stakedrop.helpers.logging import get_logger
from stakedrop.helpers.parsers import to_unix_timestamp
from stakedrop.snapshot.models import Interval


logger = get_logger(__name__)


class BlockNotFoundError(LookupError):
    """The chain has no block at or after the requested instant yet."""


class PositionResolver:
    """Binary search over a block timestamp oracle."""

    def __init__(
        self, oracle: BlockTimestampOracle, average_blocks_per_second: float
    ) -> None:
        """Initialize the resolver.

        Args:
            oracle: Source of block timestamps
            average_blocks_per_second: Typical block rate, used only to pick
                the starting point of each search

        Raises:
            ValueError: If the block rate is not positive
        """
        if average_blocks_per_second <= 0:
            msg = f"average_blocks_per_second must be positive, got {average_blocks_per_second}"
            raise ValueError(msg)

        self.oracle = oracle
        self.average_blocks_per_second = average_blocks_per_second
        self.blocks_per_day = max(1, math.ceil(SECONDS_PER_DAY * average_blocks_per_second))

    async def _find_any_before(self, reference: int, hint: int) -> int:
        """Some height whose block is older than ``reference`` (0 at worst)."""
        height = hint - self.blocks_per_day
        factor = 1
        while height > 0:
            if await self.oracle.get_timestamp(height) < reference:
                return height
            factor += 1
            height = max(height - factor * self.blocks_per_day, 0)
        return 0

    async def _find_any_after(self, reference: int, hint: int, latest: int) -> int:
        """Some height whose block is newer than ``reference`` (``latest`` at worst)."""
        height = max(hint + self.blocks_per_day, 0)
        factor = 1
        while height < latest:
            if await self.oracle.get_timestamp(height) > reference:
                return height
            factor += 1
            height = min(height + factor * self.blocks_per_day, latest)
        return latest

    async def _first_height(self, reference: int, *, strict: bool) -> int:
        """First height whose timestamp is > (strict) or >= ``reference``.

        Raises:
            BlockNotFoundError: If even the latest block is too old
        """
        latest = await self.oracle.get_latest_height()
        latest_timestamp = await self.oracle.get_timestamp(latest)

        too_old = latest_timestamp <= reference if strict else latest_timestamp < reference
        if too_old:
            when = datetime.fromtimestamp(reference, tz=UTC).isoformat()
            msg = f"No block after: {when} (latest block {latest})"
            raise BlockNotFoundError(msg)

        pivot = latest - math.ceil(
            (latest_timestamp - reference) * self.average_blocks_per_second
        )
        high, low = await asyncio.gather(
            self._find_any_after(reference, pivot, latest),
            self._find_any_before(reference, pivot),
        )

        while low != high:
            mid = (low + high) // 2
            timestamp = await self.oracle.get_timestamp(mid)
            past = timestamp <= reference if strict else timestamp < reference
            if past:
                low = mid + 1
            else:
                high = mid

        return high

    async def find_first_after(self, when: datetime) -> int:
        """Height of the first block mined strictly after ``when``."""
        height = await self._first_height(to_unix_timestamp(when), strict=True)
        logger.debug("First block after %s: %d", when.isoformat(), height)
        return height

    async def find_last_before(self, when: datetime) -> int:
        """Height of the last block mined strictly before ``when``."""
        height = await self._first_height(to_unix_timestamp(when), strict=False) - 1
        logger.debug("Last block before %s: %d", when.isoformat(), height)
        return height

    async def resolve_position(self, timestamp: int) -> int:
        """Height of the first block whose timestamp is at least ``timestamp``."""
        return await self._first_height(timestamp, strict=False)

    async def resolve_interval(self, start_date: datetime, end_date: datetime) -> Interval:
        """Block range covering ``[start_date, end_date)``.

        The range starts at the first block after ``start_date`` and ends
        (exclusive) right after the last block before ``end_date``.

        Raises:
            InvalidIntervalError: If no block falls between the two dates
            BlockNotFoundError: If ``end_date`` is not yet covered by the chain
        """
        start, last = await asyncio.gather(
            self.find_first_after(start_date),
            self.find_last_before(end_date),
        )
        interval = Interval(start=start, end=last + 1)
        logger.info(
            "Resolved %s .. %s to blocks [%d, %d)",
            start_date.isoformat(),
            end_date.isoformat(),
            interval.start,
            interval.end,
        )
        return interval


__all__ = [
    "BlockNotFoundError",
    "PositionResolver",
]
