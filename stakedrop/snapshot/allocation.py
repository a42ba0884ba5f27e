"""Proportional split of the dropped amount and Merkle leaf encoding."""

from collections.abc import Mapping

from eth_abi.packed import encode_packed
from eth_utils import keccak

from stakedrop.snapshot.errors import NoParticipantsError
from stakedrop.snapshot.models import AddressAverage, ClaimRecord


def make_leaf_node(address: str, amount: int) -> bytes:
    """Leaf committing to one claim.

    Solidity equivalent: ``keccak256(abi.encodePacked(account, amount))`` with
    ``account`` an ``address`` (20 bytes) and ``amount`` a ``uint256``
    (32 bytes, big-endian).

    Raises:
        eth_abi.exceptions.EncodingError: If the address is malformed or the
            amount does not fit in a uint256
    """
    return keccak(encode_packed(["address", "uint256"], [address, amount]))


def get_claim_value(average: int, dropped_amount: int, total_average: int) -> int:
    """Share of the dropped amount for one average, rounded down.

    Example:
        >>> get_claim_value(133, 1000, 183)
        726
    """
    return average * dropped_amount // total_average


def allocate_claims(
    averages: Mapping[str, AddressAverage],
    dropped_amount: int,
) -> dict[str, ClaimRecord]:
    """Split the dropped amount proportionally to the averages.

    Rounding is always down, so the claims add up to at most the dropped
    amount and fall short by less than one unit per participant.

    Args:
        averages: Non-zero averages keyed by address
        dropped_amount: Total reward pool in base units

    Returns:
        One claim per address, in the order of ``averages``

    Raises:
        ValueError: If the dropped amount is negative
        NoParticipantsError: If the averages add up to zero
    """
    if dropped_amount < 0:
        msg = f"Dropped amount must not be negative, got {dropped_amount}"
        raise ValueError(msg)

    total_average = sum(entry.average_value for entry in averages.values())
    if total_average == 0:
        msg = "Total average balance is zero; there is nothing to allocate against"
        raise NoParticipantsError(msg)

    claims: dict[str, ClaimRecord] = {}
    for address, entry in averages.items():
        if entry.average_value == 0:
            continue
        claim_value = get_claim_value(entry.average_value, dropped_amount, total_average)
        claims[address] = ClaimRecord(
            address=address,
            average_value=entry.average_value,
            claim_value=claim_value,
            # The claimable value is committed, not the average
            leaf_hash=make_leaf_node(address, claim_value),
        )
    return claims


__all__ = [
    "allocate_claims",
    "get_claim_value",
    "make_leaf_node",
]
