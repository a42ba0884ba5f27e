"""Pydantic models for the records flowing through a snapshot."""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from stakedrop.snapshot.errors import InvalidIntervalError


class ChangeEvent(BaseModel):
    """A balance change: ``value`` is the new total held by ``address``.

    ``position`` is the block height and ``tiebreak`` the log index, so
    ``(position, tiebreak)`` orders the events of one address.
    """

    model_config = ConfigDict(frozen=True)

    address: str
    position: int
    tiebreak: int
    value: int


class Interval(BaseModel):
    """Half-open block range ``[start, end)`` used for averaging."""

    model_config = ConfigDict(frozen=True)

    start: int
    end: int

    @model_validator(mode="after")
    def check_bounds(self) -> "Interval":
        """Reject empty and reversed ranges."""
        if self.end <= self.start:
            msg = f"Invalid interval [{self.start}, {self.end}): end must be greater than start"
            raise InvalidIntervalError(msg)
        return self

    @property
    def width(self) -> int:
        """Number of positions covered by the interval."""
        return self.end - self.start


class StepSegment(BaseModel):
    """A constant ``value`` held for ``weight`` positions."""

    model_config = ConfigDict(frozen=True)

    weight: int = Field(ge=0)
    value: int = Field(ge=0)


class AddressAverage(BaseModel):
    """Time-weighted average balance of one address, rounded down."""

    model_config = ConfigDict(frozen=True)

    address: str
    average_value: int = Field(ge=0)


class ClaimRecord(BaseModel):
    """What one address may claim, plus the Merkle leaf committing to it."""

    model_config = ConfigDict(frozen=True)

    address: str
    average_value: int = Field(ge=0)
    claim_value: int = Field(ge=0)
    leaf_hash: bytes


__all__ = [
    "AddressAverage",
    "ChangeEvent",
    "ClaimRecord",
    "Interval",
    "StepSegment",
]
