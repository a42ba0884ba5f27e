"""Database models for block timestamps."""

from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import Mapped, mapped_column

from stakedrop.helpers.db import Base


class BlockTimestampDB(Base):
    """Persistent block height -> timestamp cache, one row per chain and block."""

    __tablename__ = "block_timestamps"

    chain_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    height: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
