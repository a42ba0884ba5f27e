"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from stakedrop.data.blocks.oracle import StaticBlockTimestampOracle


GENESIS_TIMESTAMP = 1_600_000_000
BLOCK_TIME = 13
CHAIN_LENGTH = 5_000


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Async engine on a throwaway SQLite file.

    A file is used instead of ``:memory:`` because every pooled connection
    would otherwise see its own empty database.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")
    yield engine
    await engine.dispose()


@pytest.fixture
def block_timestamps() -> dict[int, int]:
    """Timestamps of a chain with one block every 13 seconds.

    Returns:
        dict: Height -> Unix timestamp for heights 0 .. CHAIN_LENGTH - 1
    """
    return {height: GENESIS_TIMESTAMP + height * BLOCK_TIME for height in range(CHAIN_LENGTH)}


@pytest.fixture
def static_oracle(block_timestamps: dict[int, int]) -> StaticBlockTimestampOracle:
    """Oracle over the fixed 13-second chain."""
    return StaticBlockTimestampOracle(block_timestamps)


@pytest.fixture
def no_retry_delay(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    """Make retry_with_backoff retry immediately.

    Returns:
        AsyncMock: The patched sleep, to inspect the requested delays
    """
    fake_sleep = AsyncMock()
    monkeypatch.setattr("stakedrop.helpers.http.sleep", fake_sleep)
    return fake_sleep
