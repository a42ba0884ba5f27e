"""Persistent read-through cache for block timestamps."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine

from stakedrop.data.blocks.db import BlockTimestampDB
from stakedrop.data.blocks.models import BlockTimestamp
from stakedrop.helpers.db import (
    create_tables,
    get_engine,
    get_session_factory,
    upsert_models,
)
from stakedrop.helpers.logging import get_logger


logger = get_logger(__name__)


class BlockTimestampCache:
    """Key-value store of block timestamps keyed by (chain id, height).

    Entries never expire: a mined block keeps its timestamp forever. A miss
    is not an error, it simply returns None so the caller can go to the
    network.
    """

    def __init__(
        self,
        chain_id: int,
        engine: AsyncEngine | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            chain_id: Chain the cached heights belong to
            engine: Database engine to use (defaults to the configured
                database)
        """
        self.chain_id = chain_id
        self.engine = engine or get_engine()
        self.session_factory = get_session_factory(self.engine)
        self._tables_ready = False

    async def _ensure_tables(self) -> None:
        if not self._tables_ready:
            await create_tables(self.engine)
            self._tables_ready = True

    async def get(self, height: int) -> int | None:
        """Cached timestamp of a block, or None on a miss."""
        await self._ensure_tables()
        async with self.session_factory() as session:
            stmt = select(BlockTimestampDB.timestamp).where(
                BlockTimestampDB.chain_id == self.chain_id,
                BlockTimestampDB.height == height,
            )
            result = await session.execute(stmt)
            timestamp = result.scalar_one_or_none()

        if timestamp is None:
            logger.debug("Persistent cache miss for block %d", height)
        return timestamp

    async def put(self, height: int, timestamp: int) -> None:
        """Store a block timestamp (idempotent)."""
        await self._ensure_tables()
        async with self.session_factory() as session:
            await upsert_models(
                session,
                db_model_class=BlockTimestampDB,
                pydantic_models=[BlockTimestamp(height=height, timestamp=timestamp)],
                extra_fields={"chain_id": self.chain_id},
            )


__all__ = ["BlockTimestampCache"]
