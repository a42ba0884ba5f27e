"""Database connection helpers."""

from collections.abc import Sequence
from functools import cache
from pathlib import Path

from typing import Any

from pydantic import BaseModel
from sqlalchemy import inspect
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from stakedrop.helpers.config import get_database_url


Base = declarative_base()


@cache
def get_engine(database_url: str | None = None) -> AsyncEngine:
    """Create (once per URL) the async engine for the cache database.

    Args:
        database_url: SQLAlchemy async URL; defaults to get_database_url()

    Returns:
        AsyncEngine bound to the database
    """
    url = make_url(database_url or get_database_url())

    # SQLite needs its parent directory to exist before the first connect
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    return create_async_engine(url, echo=False)


def get_session_factory(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Build a session factory for the given (or default) engine."""
    return async_sessionmaker(
        engine or get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create all tables registered on Base if they don't exist."""
    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _insert_for_dialect(dialect_name: str) -> Any:
    inserts = {"postgresql": pg_insert, "sqlite": sqlite_insert}
    if dialect_name not in inserts:
        msg = f"Upsert is not supported for dialect {dialect_name}"
        raise ValueError(msg)
    return inserts[dialect_name]


async def upsert_models[DBModelType](
    session: AsyncSession,
    db_model_class: type[DBModelType],
    pydantic_models: Sequence[BaseModel],
    extra_fields: dict[str, Any] | None = None,
) -> None:
    """Upsert multiple models using INSERT ... ON CONFLICT DO UPDATE.

    Works on PostgreSQL and SQLite, which share the ON CONFLICT syntax.

    Args:
        session: Open database session (committed on success)
        db_model_class: The SQLAlchemy model class (e.g., BlockTimestampDB)
        pydantic_models: List of Pydantic model instances with data to upsert
        extra_fields: Additional fields not in the Pydantic model (e.g., chain id)

    Examples:
        await upsert_models(
            session,
            db_model_class=BlockTimestampDB,
            pydantic_models=[record],
            extra_fields={"chain_id": 1},
        )

    Raises:
        ValueError: If the database model class cannot be inspected
    """
    data = [model.model_dump() for model in pydantic_models]
    if not data:
        return

    if extra_fields:
        for item in data:
            item.update(extra_fields)

    mapper = inspect(db_model_class)
    if not mapper:
        msg = f"Cannot inspect {db_model_class}"
        raise ValueError(msg)
    pk_columns = [col.name for col in mapper.primary_key]

    insert = _insert_for_dialect(session.get_bind().dialect.name)
    stmt = insert(db_model_class).values(data)

    update_dict = {
        col: stmt.excluded[col] for col in data[0] if col not in pk_columns
    }
    if update_dict:
        stmt = stmt.on_conflict_do_update(index_elements=pk_columns, set_=update_dict)
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=pk_columns)

    try:
        await session.execute(stmt)
        await session.commit()
    except Exception:
        await session.rollback()
        raise


__all__ = [
    "Base",
    "create_tables",
    "get_engine",
    "get_session_factory",
    "upsert_models",
]
