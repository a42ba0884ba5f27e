"""Sorted-pair keccak256 Merkle tree over claim leaves.

Leaves are deduplicated and sorted before the tree is built, and every pair
is hashed in ascending byte order, so the root depends only on the set of
leaves and a proof is just the list of siblings (no left/right flags). This
is the convention of OpenZeppelin's ``MerkleProof.verify``.
"""

from bisect import bisect_left
from collections.abc import Iterable, Sequence

from eth_utils import decode_hex, encode_hex, keccak

from stakedrop.snapshot.errors import LeafNotFoundError


EMPTY_ROOT = keccak(b"")
"""Root of a tree without leaves"""


def combined_hash(first: bytes | None, second: bytes | None) -> bytes | None:
    """Hash of two sibling nodes in ascending byte order.

    A missing sibling carries the other node up unchanged.
    """
    if first is None:
        return second
    if second is None:
        return first
    return keccak(b"".join(sorted((first, second))))


def verify_proof(proof: Sequence[bytes], root: bytes, leaf: bytes) -> bool:
    """Recompute the root from a leaf and its proof.

    Args:
        proof: Sibling hashes from the leaf layer upward
        root: Expected Merkle root
        leaf: Leaf hash being proven

    Returns:
        True if the proof leads from the leaf to the root
    """
    computed = leaf
    for sibling in proof:
        computed = keccak(b"".join(sorted((computed, sibling))))
    return computed == root


def verify_hex_proof(proof: Sequence[str], root: str, leaf: str) -> bool:
    """Hex-string flavour of verify_proof, as found in snapshot documents."""
    return verify_proof(
        [decode_hex(sibling) for sibling in proof], decode_hex(root), decode_hex(leaf)
    )


class MerkleTree:
    """Merkle tree built once from a set of 32-byte leaves."""

    def __init__(self, leaves: Iterable[bytes]) -> None:
        """Build every layer of the tree.

        Args:
            leaves: Leaf hashes in any order; duplicates are kept once
        """
        self.elements: list[bytes] = sorted(set(leaves))
        self.layers: list[list[bytes]] = self._get_layers(self.elements)

    @staticmethod
    def _get_layers(elements: list[bytes]) -> list[list[bytes]]:
        if not elements:
            return [[EMPTY_ROOT]]

        layers = [elements]
        while len(layers[-1]) > 1:
            layers.append(MerkleTree._get_next_layer(layers[-1]))
        return layers

    @staticmethod
    def _get_next_layer(elements: list[bytes]) -> list[bytes]:
        layer = []
        for idx in range(0, len(elements), 2):
            pair = elements[idx + 1] if idx + 1 < len(elements) else None
            node = combined_hash(elements[idx], pair)
            if node is not None:
                layer.append(node)
        return layer

    @property
    def root(self) -> bytes:
        """Merkle root."""
        return self.layers[-1][0]

    @property
    def hex_root(self) -> str:
        """Merkle root as a 0x-prefixed hex string."""
        return encode_hex(self.root)

    @property
    def width(self) -> int:
        """Number of distinct leaves."""
        return len(self.elements)

    @property
    def height(self) -> int:
        """Number of layers, leaves and root included."""
        return len(self.layers)

    def index_of(self, leaf: bytes) -> int:
        """Position of a leaf in the sorted leaf layer.

        Raises:
            LeafNotFoundError: If the leaf is not part of the tree
        """
        idx = bisect_left(self.elements, leaf)
        if idx == len(self.elements) or self.elements[idx] != leaf:
            msg = f"Element {encode_hex(leaf)} does not exist in the merkle tree"
            raise LeafNotFoundError(msg)
        return idx

    def get_proof(self, leaf: bytes) -> list[bytes]:
        """Sibling hashes needed to recompute the root from ``leaf``.

        Layers where the node was carried up without a sibling contribute
        nothing to the proof.

        Raises:
            LeafNotFoundError: If the leaf is not part of the tree
        """
        idx = self.index_of(leaf)
        proof = []
        for layer in self.layers:
            pair_idx = idx + 1 if idx % 2 == 0 else idx - 1
            if pair_idx < len(layer):
                proof.append(layer[pair_idx])
            idx //= 2
        return proof

    def get_hex_proof(self, leaf: str | bytes) -> list[str]:
        """get_proof with hex input and output."""
        if isinstance(leaf, str):
            leaf = decode_hex(leaf)
        return [encode_hex(node) for node in self.get_proof(leaf)]

    def __len__(self) -> int:
        return self.width

    def __contains__(self, leaf: object) -> bool:
        if not isinstance(leaf, bytes):
            return False
        idx = bisect_left(self.elements, leaf)
        return idx < len(self.elements) and self.elements[idx] == leaf


__all__ = [
    "EMPTY_ROOT",
    "MerkleTree",
    "combined_hash",
    "verify_hex_proof",
    "verify_proof",
]
