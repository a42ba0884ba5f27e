"""Snapshot document: the Merkle manifest plus distribution totals.

Every token amount is written as a decimal string and every hash as a
0x-prefixed hex string, so the JSON can be consumed from runtimes without
big integers.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Annotated

from eth_utils import encode_hex, to_checksum_address
from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from stakedrop.snapshot.allocation import make_leaf_node
from stakedrop.snapshot.merkle import MerkleTree, verify_hex_proof
from stakedrop.snapshot.models import ClaimRecord


DecimalString = Annotated[int, PlainSerializer(str, return_type=str, when_used="json")]
"""Integer that is written to JSON as a decimal string"""

BASIS_POINTS_MULTIPLIER = 10_000

# Rates are computed in terms of full tokens (10^18)
RATE_MULTIPLIER = 10**18

# rate * 10^4 / 10^18 == rate / 10^14
BASIS_POINTS_DIVISOR = 10**14

PERIODS_PER_YEAR = {
    "year": 1,
    "month": 12,
    "week": 48,  # considering only 4 weeks per month
    "day": 365,
    "hour": 24 * 365,
    "minute": 60 * 24 * 365,
}


class ClaimEntry(BaseModel):
    """One address's claim, with the proof needed to redeem it on-chain."""

    model_config = ConfigDict(populate_by_name=True)

    address: str
    average_stake: DecimalString = Field(..., alias="averageStake")
    value: DecimalString
    node: str = Field(..., description="Leaf hash as 0x-prefixed hex")
    proof: list[str] = Field(default_factory=list)


class MerkleManifest(BaseModel):
    """Root, shape and claims of a distribution tree."""

    model_config = ConfigDict(populate_by_name=True)

    root: str
    width: int
    height: int
    claims: list[ClaimEntry]

    def get_claim(self, address: str) -> ClaimEntry | None:
        """Claim of an address (any casing), or None if it has none."""
        wanted = to_checksum_address(address)
        for claim in self.claims:
            if to_checksum_address(claim.address) == wanted:
                return claim
        return None


class Snapshot(BaseModel):
    """Complete distribution snapshot as stored and published."""

    model_config = ConfigDict(populate_by_name=True)

    merkle_tree: MerkleManifest = Field(..., alias="merkleTree")
    start_date: datetime | None = Field(default=None, alias="startDate")
    end_date: datetime | None = Field(default=None, alias="endDate")
    start_block: int | None = Field(default=None, alias="startBlock")
    end_block: int | None = Field(default=None, alias="endBlock")
    block_height: int = Field(..., alias="blockHeight")
    average_total_staked: DecimalString = Field(..., alias="averageTotalStaked")
    dropped_amount: DecimalString = Field(..., alias="droppedAmount")
    total_claimable: DecimalString = Field(..., alias="totalClaimable")
    apy: float

    def to_json(self, *, indent: int | None = 2) -> str:
        """Serialize with camelCase keys and string amounts."""
        return self.model_dump_json(by_alias=True, indent=indent)

    def verify_claim(self, address: str) -> bool:
        """Check that an address's stored value, leaf and proof match the root.

        Returns:
            False when the address has no claim or any part disagrees
        """
        claim = self.merkle_tree.get_claim(address)
        if claim is None:
            return False

        node = encode_hex(make_leaf_node(to_checksum_address(claim.address), claim.value))
        if node.lower() != claim.node.lower():
            return False
        return verify_hex_proof(claim.proof, self.merkle_tree.root, claim.node)


def build_manifest(claims: Mapping[str, ClaimRecord]) -> MerkleManifest:
    """Build the Merkle tree over the claim leaves and attach every proof.

    Args:
        claims: Claim records keyed by address

    Returns:
        Manifest with one entry per claim, in the order of ``claims``
    """
    tree = MerkleTree(record.leaf_hash for record in claims.values())

    entries = [
        ClaimEntry(
            address=record.address,
            average_stake=record.average_value,
            value=record.claim_value,
            node=encode_hex(record.leaf_hash),
            proof=[encode_hex(node) for node in tree.get_proof(record.leaf_hash)],
        )
        for record in claims.values()
    ]

    return MerkleManifest(
        root=tree.hex_root,
        width=tree.width,
        height=tree.height,
        claims=entries,
    )


def normalize_frequency(frequency: str) -> str:
    """Map "monthly", "months" and friends onto the keys of PERIODS_PER_YEAR.

    Raises:
        ValueError: If the frequency is unknown
    """
    key = frequency.strip().lower()
    if key not in PERIODS_PER_YEAR:
        for suffix in ("ly", "s"):
            if key.endswith(suffix) and key[: -len(suffix)] in PERIODS_PER_YEAR:
                key = key[: -len(suffix)]
                break
        else:
            if key == "daily":
                key = "day"

    if key not in PERIODS_PER_YEAR:
        msg = f"Invalid frequency {frequency}"
        raise ValueError(msg)
    return key


def months_between(start: datetime, end: datetime) -> int:
    """Whole calendar months from ``start`` to ``end`` (truncated toward zero)."""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    start_rest = (start.day, start.hour, start.minute, start.second, start.microsecond)
    end_rest = (end.day, end.hour, end.minute, end.second, end.microsecond)
    if months > 0 and end_rest < start_rest:
        months -= 1
    elif months < 0 and end_rest > start_rest:
        months += 1
    return months


def calculate_apy(
    dropped_amount: int,
    total_staked: int,
    frequency: str = "month",
    quantity: int = 1,
) -> float:
    """Annualised reward rate of one drop relative to the staked total.

    The per-drop rate is truncated to whole basis points, then scaled by the
    number of drops per year (``PERIODS_PER_YEAR[frequency] / quantity``).

    Args:
        dropped_amount: Reward pool in base units
        total_staked: Total (average) stake the pool is spread over
        frequency: Distribution frequency ("month", "week", ...)
        quantity: Number of frequency periods the drop covers

    Returns:
        APY as a fraction (0.12 == 12%)

    Raises:
        ValueError: On an unknown frequency or a non-positive quantity
        ZeroDivisionError: If total_staked is zero

    Example:
        >>> calculate_apy(1 * 10**18, 100 * 10**18, "month")
        0.12
    """
    periods = PERIODS_PER_YEAR[normalize_frequency(frequency)]
    if quantity <= 0:
        msg = f"Quantity must be positive, got {quantity}"
        raise ValueError(msg)

    rate = dropped_amount * RATE_MULTIPLIER // total_staked
    rate_basis_points = rate // BASIS_POINTS_DIVISOR
    return (periods / quantity) * rate_basis_points / BASIS_POINTS_MULTIPLIER


__all__ = [
    "BASIS_POINTS_MULTIPLIER",
    "PERIODS_PER_YEAR",
    "ClaimEntry",
    "DecimalString",
    "MerkleManifest",
    "Snapshot",
    "build_manifest",
    "calculate_apy",
    "months_between",
    "normalize_frequency",
]
