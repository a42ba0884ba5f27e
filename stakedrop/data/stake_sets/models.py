"""Pydantic models for stake set data returned by upstream sources."""

from pydantic import BaseModel, ConfigDict, Field

from stakedrop.snapshot.models import ChangeEvent


class SubgraphStakeSet(BaseModel):
    """One ``stakeSets`` entity from the subgraph (numbers arrive as strings)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    address: str
    subcourt_id: int = Field(..., alias="subcourtID")
    stake: int
    new_total_stake: int = Field(..., alias="newTotalStake")
    log_index: int = Field(..., alias="logIndex")
    block_number: int = Field(..., alias="blocknumber")

    def to_change_event(self) -> ChangeEvent:
        """The juror's new total stake at this block."""
        return ChangeEvent(
            address=self.address,
            position=self.block_number,
            tiebreak=self.log_index,
            value=self.new_total_stake,
        )


class StakeSetLog(BaseModel):
    """Decoded ``StakeSet`` log emitted by the staking contract."""

    address: str
    subcourt_id: int
    stake: int
    new_total_stake: int
    block_number: int
    log_index: int

    def to_change_event(self) -> ChangeEvent:
        """The juror's new total stake at this block."""
        return ChangeEvent(
            address=self.address,
            position=self.block_number,
            tiebreak=self.log_index,
            value=self.new_total_stake,
        )


__all__ = [
    "StakeSetLog",
    "SubgraphStakeSet",
]
