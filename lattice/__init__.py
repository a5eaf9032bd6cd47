"""Trust-anchor commitment primitives.

This package has no service dependencies. It contains only: keccak-256
domain-separated Merkle hashing and proof checks, the canonical 43-byte
trust-edge encoding, the trust anchor record with its pure state
transitions, and an in-process anchor book.
"""

from lattice.anchor import (
    ACCOUNT_SIZE,
    TrustAnchor,
    check_edge_inclusion,
    create_anchor,
    derive_anchor_address,
    update_root,
    verify_edge_inclusion,
)
from lattice.edges import EDGE_SIZE, MAX_TRUST_WEIGHT, TrustDimension, TrustEdge
from lattice.errors import (
    AlreadyExists,
    AnchorNotFound,
    AuthorizationError,
    EdgeCountOverflow,
    InvalidMerkleProof,
    InvalidTrustWeight,
    LatticeError,
)
from lattice.memory import InMemoryAnchorBook
from lattice.merkle import ZERO_ROOT, MerkleTree, hash_leaf, hash_node, verify_proof
from lattice.store import TrustEdgeStore

__all__ = [
    "ACCOUNT_SIZE",
    "AlreadyExists",
    "AnchorNotFound",
    "AuthorizationError",
    "EDGE_SIZE",
    "EdgeCountOverflow",
    "InMemoryAnchorBook",
    "InvalidMerkleProof",
    "InvalidTrustWeight",
    "LatticeError",
    "MAX_TRUST_WEIGHT",
    "MerkleTree",
    "TrustAnchor",
    "TrustDimension",
    "TrustEdge",
    "TrustEdgeStore",
    "ZERO_ROOT",
    "check_edge_inclusion",
    "create_anchor",
    "derive_anchor_address",
    "hash_leaf",
    "hash_node",
    "update_root",
    "verify_edge_inclusion",
    "verify_proof",
]
