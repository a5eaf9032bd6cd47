from __future__ import annotations

import pytest

from lattice.edges import TrustDimension, TrustEdge
from lattice.merkle import ZERO_ROOT, MerkleTree, verify_proof
from lattice.store import TrustEdgeStore

ALICE = b"\xa1" * 32
BOB = b"\xb0" * 32


def _edge(trustee: bytes, dimension: str, weight: int = 5000, created_at: int = 1) -> TrustEdge:
    return TrustEdge(trustee=trustee, dimension=dimension, weight=weight, created_at=created_at)


class TestEdgeManagement:
    def test_empty_store(self):
        store = TrustEdgeStore()
        assert store.edge_count == 0
        assert store.root == ZERO_ROOT
        assert store.to_bytes() == b"\x00\x00"

    def test_add_replaces_same_trustee_and_dimension(self):
        store = TrustEdgeStore()
        store.add_edge(_edge(ALICE, "trading", 1000))
        store.add_edge(_edge(BOB, "trading", 2000))
        store.add_edge(_edge(ALICE, "trading", 3000))

        assert store.edge_count == 2
        assert [e.trustee for e in store.edges] == [BOB, ALICE]
        assert store.edges[-1].weight == 3000

    def test_same_trustee_different_dimension_kept(self):
        store = TrustEdgeStore([_edge(ALICE, "trading"), _edge(ALICE, "civic")])
        assert store.edge_count == 2
        assert len(store.edges_for_trustee(ALICE)) == 2
        assert store.edges_by_dimension("civic") == [_edge(ALICE, "civic")]

    def test_remove(self):
        store = TrustEdgeStore([_edge(ALICE, "trading"), _edge(BOB, "infra")])
        assert store.remove_edge(ALICE, TrustDimension.TRADING)
        assert not store.remove_edge(ALICE, TrustDimension.TRADING)
        assert store.edge_count == 1

    def test_edges_returns_copy(self):
        store = TrustEdgeStore([_edge(ALICE, "trading")])
        store.edges.clear()
        assert store.edge_count == 1


class TestCommitment:
    def test_root_matches_tree(self):
        edges = [_edge(ALICE, "trading"), _edge(BOB, "developer")]
        store = TrustEdgeStore(edges)
        assert store.root == MerkleTree.from_edges(edges).root

    def test_root_changes_after_mutation(self):
        store = TrustEdgeStore([_edge(ALICE, "trading")])
        before = store.root
        store.add_edge(_edge(BOB, "creator"))
        assert store.root != before

    def test_proof_for_verifies(self):
        store = TrustEdgeStore([_edge(bytes([i]) * 32, "civic", created_at=i) for i in range(1, 8)])
        target = _edge(bytes([5]) * 32, "civic", created_at=5)
        found = store.proof_for(target.trustee, "civic")
        assert found is not None
        proof, index = found
        assert index == 4
        assert verify_proof(proof, store.root, target.leaf(), index)

    def test_proof_for_missing(self):
        store = TrustEdgeStore([_edge(ALICE, "trading")])
        assert store.proof_for(BOB, "trading") is None


class TestSerialization:
    def test_round_trip(self):
        store = TrustEdgeStore([_edge(ALICE, "trading", 10), _edge(BOB, "infra", 20, created_at=-5)])
        blob = store.to_bytes()
        assert len(blob) == 2 + 2 * 43
        restored = TrustEdgeStore.from_bytes(blob)
        assert restored.edges == store.edges
        assert restored.root == store.root

    def test_truncated_blob(self):
        blob = TrustEdgeStore([_edge(ALICE, "trading")]).to_bytes()
        with pytest.raises(ValueError):
            TrustEdgeStore.from_bytes(blob[:-1])

    def test_decode_keeps_stored_order(self):
        edges = [_edge(BOB, "civic", 30), _edge(ALICE, "trading", 10), _edge(ALICE, "infra", 20)]
        blob = b"\x03\x00" + b"".join(e.canonical_bytes() for e in edges)
        restored = TrustEdgeStore.from_bytes(blob)
        assert restored.edges == edges
        assert restored.root == MerkleTree.from_edges(edges).root
        assert restored.proof_for(ALICE, "infra")[1] == 2

    def test_decode_rejects_repeated_slot(self):
        edges = [_edge(ALICE, "trading", 10), _edge(BOB, "trading"), _edge(ALICE, "trading", 99)]
        blob = b"\x03\x00" + b"".join(e.canonical_bytes() for e in edges)
        with pytest.raises(ValueError):
            TrustEdgeStore.from_bytes(blob)

    def test_missing_count(self):
        with pytest.raises(ValueError):
            TrustEdgeStore.from_bytes(b"\x01")
