"""Pydantic models for block timestamps."""

from pydantic import BaseModel, ConfigDict


class BlockTimestamp(BaseModel):
    """Timestamp of one block; a block's timestamp never changes once mined."""

    model_config = ConfigDict(frozen=True)

    height: int
    timestamp: int
