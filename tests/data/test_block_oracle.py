"""Tests for block timestamp oracles."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from stakedrop.data.blocks.cache import BlockTimestampCache
from stakedrop.data.blocks.oracle import RpcBlockTimestampOracle, StaticBlockTimestampOracle
from stakedrop.helpers.rpc import RPCClient


def mock_rpc_client() -> MagicMock:
    """RPC client answering timestamp = 1000 + height."""
    rpc_client = MagicMock(spec=RPCClient)
    rpc_client.get_block_timestamp = AsyncMock(side_effect=lambda _client, height: 1000 + height)
    rpc_client.get_block_number = AsyncMock(return_value=500)
    return rpc_client


class TestRpcBlockTimestampOracle:
    """Tests for RpcBlockTimestampOracle class."""

    def test_rejects_non_positive_concurrency(self) -> None:
        """Test the concurrency limit must be positive."""
        with pytest.raises(ValueError, match="max_concurrency must be positive"):
            RpcBlockTimestampOracle(mock_rpc_client(), AsyncMock(), max_concurrency=0)

    @pytest.mark.asyncio
    async def test_fetches_timestamp(self) -> None:
        """Test a lookup goes to the node."""
        rpc_client = mock_rpc_client()
        oracle = RpcBlockTimestampOracle(rpc_client, AsyncMock(spec=httpx.AsyncClient))

        assert await oracle.get_timestamp(7) == 1007
        assert await oracle.get_latest_height() == 500

    @pytest.mark.asyncio
    async def test_hot_cache_avoids_repeat_calls(self) -> None:
        """Test the same height is fetched once, even concurrently."""
        rpc_client = mock_rpc_client()
        oracle = RpcBlockTimestampOracle(rpc_client, AsyncMock(spec=httpx.AsyncClient))

        results = await asyncio.gather(*(oracle.get_timestamp(3) for _ in range(5)))
        await oracle.get_timestamp(3)

        assert results == [1003] * 5
        assert rpc_client.get_block_timestamp.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_lookup_is_not_cached(self) -> None:
        """Test an error is raised and the next call tries again."""
        rpc_client = mock_rpc_client()
        rpc_client.get_block_timestamp = AsyncMock(
            side_effect=[LookupError("Block 9 not found"), 1009]
        )
        oracle = RpcBlockTimestampOracle(rpc_client, AsyncMock(spec=httpx.AsyncClient))

        with pytest.raises(LookupError, match="Block 9 not found"):
            await oracle.get_timestamp(9)

        assert await oracle.get_timestamp(9) == 1009
        assert 9 in oracle.hot_cache

    @pytest.mark.asyncio
    async def test_uses_persistent_cache(self, sqlite_engine: AsyncEngine) -> None:
        """Test fetched values are stored and later served from the database."""
        cache = BlockTimestampCache(chain_id=1, engine=sqlite_engine)
        rpc_client = mock_rpc_client()

        first = RpcBlockTimestampOracle(rpc_client, AsyncMock(spec=httpx.AsyncClient), cache)
        assert await first.get_timestamp(11) == 1011

        second = RpcBlockTimestampOracle(rpc_client, AsyncMock(spec=httpx.AsyncClient), cache)
        assert await second.get_timestamp(11) == 1011

        assert rpc_client.get_block_timestamp.await_count == 1
        assert await cache.get(11) == 1011

    @pytest.mark.asyncio
    async def test_respects_concurrency_limit(self) -> None:
        """Test no more than max_concurrency requests run at once."""
        in_flight = 0
        peak = 0

        async def slow_timestamp(_client: object, height: int) -> int:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return height

        rpc_client = mock_rpc_client()
        rpc_client.get_block_timestamp = AsyncMock(side_effect=slow_timestamp)
        oracle = RpcBlockTimestampOracle(
            rpc_client, AsyncMock(spec=httpx.AsyncClient), max_concurrency=2
        )

        await asyncio.gather(*(oracle.get_timestamp(h) for h in range(8)))

        assert peak <= 2


class TestStaticBlockTimestampOracle:
    """Tests for StaticBlockTimestampOracle class."""

    def test_rejects_empty_table(self) -> None:
        """Test an empty table is rejected."""
        with pytest.raises(ValueError, match="At least one block timestamp"):
            StaticBlockTimestampOracle({})

    @pytest.mark.asyncio
    async def test_lookup(self) -> None:
        """Test known heights, unknown heights and the head."""
        oracle = StaticBlockTimestampOracle({1: 10, 5: 50, 3: 30})

        assert await oracle.get_timestamp(3) == 30
        assert await oracle.get_latest_height() == 5
        with pytest.raises(LookupError, match="Block 4 not found"):
            await oracle.get_timestamp(4)
