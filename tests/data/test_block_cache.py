"""Tests for the persistent block timestamp cache."""

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from stakedrop.data.blocks.cache import BlockTimestampCache


class TestBlockTimestampCache:
    """Tests for BlockTimestampCache class."""

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, sqlite_engine: AsyncEngine) -> None:
        """Test an unknown block is a miss, not an error."""
        cache = BlockTimestampCache(chain_id=1, engine=sqlite_engine)

        assert await cache.get(123) is None

    @pytest.mark.asyncio
    async def test_put_then_get(self, sqlite_engine: AsyncEngine) -> None:
        """Test a stored timestamp is read back."""
        cache = BlockTimestampCache(chain_id=1, engine=sqlite_engine)

        await cache.put(123, 1_600_000_000)

        assert await cache.get(123) == 1_600_000_000

    @pytest.mark.asyncio
    async def test_put_is_idempotent(self, sqlite_engine: AsyncEngine) -> None:
        """Test storing the same block twice keeps one value."""
        cache = BlockTimestampCache(chain_id=1, engine=sqlite_engine)

        await cache.put(5, 100)
        await cache.put(5, 100)

        assert await cache.get(5) == 100

    @pytest.mark.asyncio
    async def test_chains_are_isolated(self, sqlite_engine: AsyncEngine) -> None:
        """Test the same height on two chains does not collide."""
        mainnet = BlockTimestampCache(chain_id=1, engine=sqlite_engine)
        gnosis = BlockTimestampCache(chain_id=100, engine=sqlite_engine)

        await mainnet.put(10, 111)
        await gnosis.put(10, 222)

        assert await mainnet.get(10) == 111
        assert await gnosis.get(10) == 222

    @pytest.mark.asyncio
    async def test_survives_new_instance(self, sqlite_engine: AsyncEngine) -> None:
        """Test entries persist across cache instances on one database."""
        await BlockTimestampCache(chain_id=1, engine=sqlite_engine).put(42, 4242)

        assert await BlockTimestampCache(chain_id=1, engine=sqlite_engine).get(42) == 4242
