from __future__ import annotations

import struct
from collections.abc import Iterable

from lattice.anchor import MAX_EDGE_COUNT
from lattice.edges import EDGE_SIZE, TrustDimension, TrustEdge, parse_identity
from lattice.errors import EdgeCountOverflow
from lattice.merkle import MerkleTree

_COUNT = struct.Struct("<H")


class TrustEdgeStore:
    """Off-chain edge set for one truster.

    An owner holds at most one edge per ``(trustee, dimension)``; adding a
    second one replaces the first and moves it to the end, which changes its
    leaf index. The Merkle tree is rebuilt lazily after any mutation.
    """

    def __init__(self, edges: Iterable[TrustEdge] = ()) -> None:
        self._edges: list[TrustEdge] = []
        self._tree: MerkleTree | None = None
        for edge in edges:
            self.add_edge(edge)

    def add_edge(self, edge: TrustEdge) -> None:
        kept = [e for e in self._edges if not _same_slot(e, edge.trustee, edge.dimension)]
        if len(kept) >= MAX_EDGE_COUNT:
            raise EdgeCountOverflow(f"An anchor can commit at most {MAX_EDGE_COUNT} edges")
        kept.append(edge)
        self._edges = kept
        self._tree = None

    def remove_edge(self, trustee: bytes | str, dimension: int | str | TrustDimension) -> bool:
        trustee = parse_identity(trustee)
        dimension = TrustDimension.parse(dimension)
        before = len(self._edges)
        self._edges = [e for e in self._edges if not _same_slot(e, trustee, dimension)]
        self._tree = None
        return len(self._edges) < before

    @property
    def edges(self) -> list[TrustEdge]:
        return list(self._edges)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def edges_by_dimension(self, dimension: int | str | TrustDimension) -> list[TrustEdge]:
        dimension = TrustDimension.parse(dimension)
        return [e for e in self._edges if e.dimension == dimension]

    def edges_for_trustee(self, trustee: bytes | str) -> list[TrustEdge]:
        trustee = parse_identity(trustee)
        return [e for e in self._edges if e.trustee == trustee]

    @property
    def tree(self) -> MerkleTree:
        if self._tree is None:
            self._tree = MerkleTree.from_edges(self._edges)
        return self._tree

    @property
    def root(self) -> bytes:
        return self.tree.root

    def proof_for(
        self,
        trustee: bytes | str,
        dimension: int | str | TrustDimension,
    ) -> tuple[list[bytes], int] | None:
        """Return ``(proof, leaf_index)`` for the matching edge, or ``None``."""
        trustee = parse_identity(trustee)
        dimension = TrustDimension.parse(dimension)
        for index, edge in enumerate(self._edges):
            if _same_slot(edge, trustee, dimension):
                return self.tree.proof(index), index
        return None

    def to_bytes(self) -> bytes:
        """``u16 LE count`` followed by each edge's 43-byte encoding."""
        return _COUNT.pack(len(self._edges)) + b"".join(e.canonical_bytes() for e in self._edges)

    @classmethod
    def from_bytes(cls, data: bytes) -> TrustEdgeStore:
        if len(data) < _COUNT.size:
            raise ValueError("edge store blob is missing its count prefix")
        (count,) = _COUNT.unpack_from(data, 0)
        expected = _COUNT.size + count * EDGE_SIZE
        if len(data) != expected:
            raise ValueError(f"edge store blob should be {expected} bytes for {count} edges, got {len(data)}")
        edges = [
            TrustEdge.from_bytes(data[offset:offset + EDGE_SIZE])
            for offset in range(_COUNT.size, expected, EDGE_SIZE)
        ]
        seen: set[tuple[bytes, TrustDimension]] = set()
        for index, edge in enumerate(edges):
            slot = (edge.trustee, edge.dimension)
            if slot in seen:
                raise ValueError(
                    f"edge store blob repeats trustee {edge.trustee.hex()} "
                    f"in dimension {edge.dimension.label} at index {index}"
                )
            seen.add(slot)

        # Leaf order is part of the commitment; keep it exactly as stored.
        store = cls()
        store._edges = edges
        return store


def _same_slot(edge: TrustEdge, trustee: bytes, dimension: TrustDimension) -> bool:
    return edge.trustee == trustee and edge.dimension == dimension
