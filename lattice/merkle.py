from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from eth_utils import keccak

if TYPE_CHECKING:
    from lattice.edges import TrustEdge

HASH_SIZE = 32
ZERO_ROOT = bytes(HASH_SIZE)

_LEAF_DOMAIN = b"\x00"
_NODE_DOMAIN = b"\x01"


def _require_hash(value: bytes, name: str) -> bytes:
    if len(value) != HASH_SIZE:
        raise ValueError(f"{name} must be {HASH_SIZE} bytes, got {len(value)}")
    return bytes(value)


def hash_leaf(data: bytes) -> bytes:
    """keccak256(0x00 || data)."""
    return keccak(_LEAF_DOMAIN + bytes(data))


def hash_node(left: bytes, right: bytes) -> bytes:
    """keccak256(0x01 || left || right). Order matters."""
    return keccak(
        _NODE_DOMAIN + _require_hash(left, "left") + _require_hash(right, "right")
    )


def verify_proof(proof: Sequence[bytes], root: bytes, leaf: bytes, index: int) -> bool:
    """Walk *proof* from *leaf* upwards and compare the result with *root*.

    The low bit of *index* at each level says whether the running hash is the
    left (even) or right (odd) child. An empty proof only checks
    ``leaf == root``.
    """
    if index < 0:
        raise ValueError(f"leaf index must be non-negative, got {index}")
    computed = _require_hash(leaf, "leaf")
    expected = _require_hash(root, "root")
    idx = index

    for sibling in proof:
        if idx % 2 == 0:
            computed = hash_node(computed, sibling)
        else:
            computed = hash_node(sibling, computed)
        idx //= 2

    return computed == expected


class MerkleTree:
    """In-memory Merkle tree over pre-hashed leaves.

    This is the off-chain builder side of the scheme. Layers are built
    bottom-up; an odd trailing node is paired with itself, and proofs use
    the node itself as its missing sibling so that they verify with
    :func:`verify_proof`. An empty tree has the zero root.
    """

    def __init__(self, leaves: Iterable[bytes]) -> None:
        self._leaves = [_require_hash(leaf, "leaf") for leaf in leaves]
        self._layers = self._build_layers()

    @classmethod
    def from_edges(cls, edges: Iterable[TrustEdge]) -> MerkleTree:
        return cls(edge.leaf() for edge in edges)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def root(self) -> bytes:
        return self._layers[-1][0]

    @property
    def leaf_count(self) -> int:
        return len(self._leaves)

    @property
    def depth(self) -> int:
        return len(self._layers) - 1

    @property
    def leaves(self) -> list[bytes]:
        return list(self._leaves)

    def proof(self, index: int) -> list[bytes]:
        """Return the sibling hashes for the leaf at *index*, leaf to root."""
        count = len(self._leaves)
        if index < 0 or index >= count:
            raise IndexError(f"leaf index {index} out of range [0, {count})")

        proof: list[bytes] = []
        idx = index
        for layer in self._layers[:-1]:
            sibling_idx = idx + 1 if idx % 2 == 0 else idx - 1
            if sibling_idx < len(layer):
                proof.append(layer[sibling_idx])
            else:
                proof.append(layer[idx])
            idx //= 2
        return proof

    def verify(self, index: int, leaf: bytes) -> bool:
        return verify_proof(self.proof(index), self.root, leaf, index)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_layers(self) -> list[list[bytes]]:
        if not self._leaves:
            return [[ZERO_ROOT]]

        layers = [list(self._leaves)]
        while len(layers[-1]) > 1:
            current = layers[-1]
            parents = []
            for i in range(0, len(current), 2):
                left = current[i]
                right = current[i + 1] if i + 1 < len(current) else left
                parents.append(hash_node(left, right))
            layers.append(parents)
        return layers
