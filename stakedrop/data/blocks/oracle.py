"""Sources of block timestamps (height -> Unix seconds)."""

import asyncio
from abc import ABC, abstractmethod

import httpx

from stakedrop.data.blocks.cache import BlockTimestampCache
from stakedrop.helpers.constants import DEFAULT_CONCURRENCY
from stakedrop.helpers.http import retry_with_backoff
from stakedrop.helpers.logging import get_logger
from stakedrop.helpers.rpc import RPCClient, RPCError


logger = get_logger(__name__)


class BlockTimestampOracle(ABC):
    """Monotonic mapping from block height to block timestamp.

    Subclasses must implement:
    - get_timestamp(): timestamp of one block
    - get_latest_height(): height of the chain head
    """

    @abstractmethod
    async def get_timestamp(self, height: int) -> int:
        """Unix timestamp of the block at ``height``."""
        ...

    @abstractmethod
    async def get_latest_height(self) -> int:
        """Height of the most recent block."""
        ...


class RpcBlockTimestampOracle(BlockTimestampOracle):
    """Block timestamps from a JSON-RPC node behind a two-tier cache.

    Lookups go to an in-process table first, then to the optional persistent
    cache, and only then to the node. The in-process table stores the pending
    task of a lookup, so concurrent requests for one height share a single
    network call. At most ``max_concurrency`` requests are in flight at once.
    """

    def __init__(
        self,
        rpc_client: RPCClient,
        http_client: httpx.AsyncClient,
        cache: BlockTimestampCache | None = None,
        max_concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        """Initialize the oracle.

        Args:
            rpc_client: JSON-RPC client for the chain
            http_client: HTTP client used for every request
            cache: Persistent cache (None keeps lookups in memory only)
            max_concurrency: Maximum number of simultaneous RPC requests

        Raises:
            ValueError: If max_concurrency is not positive
        """
        if max_concurrency <= 0:
            msg = f"max_concurrency must be positive, got {max_concurrency}"
            raise ValueError(msg)

        self.rpc_client = rpc_client
        self.http_client = http_client
        self.cache = cache
        self.semaphore = asyncio.Semaphore(max_concurrency)
        self.hot_cache: dict[int, asyncio.Task[int]] = {}

    @retry_with_backoff(retry_on=(httpx.HTTPError, RPCError))
    async def _fetch_timestamp(self, height: int) -> int:
        async with self.semaphore:
            return await self.rpc_client.get_block_timestamp(self.http_client, height)

    async def _resolve(self, height: int) -> int:
        if self.cache is not None:
            cached = await self.cache.get(height)
            if cached is not None:
                return cached

        timestamp = await self._fetch_timestamp(height)
        logger.debug("Fetched timestamp %d for block %d", timestamp, height)

        if self.cache is not None:
            await self.cache.put(height, timestamp)
        return timestamp

    async def get_timestamp(self, height: int) -> int:
        """Unix timestamp of a block, from cache when possible.

        Raises:
            LookupError: If the node does not know the block
            httpx.HTTPError: If the node stays unreachable after retries
        """
        task = self.hot_cache.get(height)
        if task is None:
            task = asyncio.ensure_future(self._resolve(height))
            self.hot_cache[height] = task

        try:
            return await task
        except Exception:
            # Failed lookups are not cached; the next call tries again
            if self.hot_cache.get(height) is task:
                del self.hot_cache[height]
            raise

    @retry_with_backoff(retry_on=(httpx.HTTPError, RPCError))
    async def get_latest_height(self) -> int:
        """Height of the chain head (never cached)."""
        async with self.semaphore:
            return await self.rpc_client.get_block_number(self.http_client)


class StaticBlockTimestampOracle(BlockTimestampOracle):
    """Oracle over a fixed, pre-loaded table of timestamps.

    Handy for offline recomputation of a snapshot from exported data.
    """

    def __init__(self, timestamps: dict[int, int]) -> None:
        """Initialize the oracle.

        Args:
            timestamps: Block height -> Unix timestamp, covering every height
                that will be queried

        Raises:
            ValueError: If the table is empty
        """
        if not timestamps:
            msg = "At least one block timestamp is required"
            raise ValueError(msg)
        self.timestamps = dict(timestamps)

    async def get_timestamp(self, height: int) -> int:
        """Timestamp of a block from the table.

        Raises:
            LookupError: If the height is not in the table
        """
        try:
            return self.timestamps[height]
        except KeyError:
            msg = f"Block {height} not found"
            raise LookupError(msg) from None

    async def get_latest_height(self) -> int:
        """Highest height in the table."""
        return max(self.timestamps)


__all__ = [
    "BlockTimestampOracle",
    "RpcBlockTimestampOracle",
    "StaticBlockTimestampOracle",
]
