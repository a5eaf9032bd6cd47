"""Trust anchor records and their state transitions.

A trust anchor is the only persisted state: one fixed-size record per owner
holding the current Merkle root over that owner's off-chain edge set. The
transitions here are pure. They take the clock value explicitly and return a
new immutable :class:`TrustAnchor`, so a failed call never leaves a partially
updated record behind. Storage, locking and authentication belong to the
substrate that calls them (see :mod:`lattice.memory` and the ``registry``
service).
"""

from __future__ import annotations

import hashlib
import logging
import struct
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from lattice.edges import TrustEdge, parse_identity
from lattice.errors import (
    AuthorizationError,
    EdgeCountOverflow,
    InvalidMerkleProof,
    InvalidTrustWeight,
)
from lattice.merkle import HASH_SIZE, ZERO_ROOT, verify_proof

logger = logging.getLogger(__name__)

MAX_EDGE_COUNT = 0xFFFF
MAX_LEAF_INDEX = 0xFFFFFFFF

ANCHOR_SEED = b"trust"
DEFAULT_NAMESPACE = b"lattice"
CANONICAL_BUMP = 255

ACCOUNT_DISCRIMINATOR = hashlib.sha256(b"account:TrustAnchor").digest()[:8]

# owner | merkle_root | edge_count u16 | last_updated i64 | created_at i64 | bump u8
_PAYLOAD_LAYOUT = struct.Struct("<32s32sHqqB")
PAYLOAD_SIZE = _PAYLOAD_LAYOUT.size
ACCOUNT_SIZE = len(ACCOUNT_DISCRIMINATOR) + PAYLOAD_SIZE


def parse_hash(value: bytes | bytearray | memoryview | str, name: str = "hash") -> bytes:
    if isinstance(value, str):
        try:
            raw = bytes.fromhex(value)
        except ValueError:
            raise ValueError(f"{name} must be hex encoded") from None
    else:
        raw = bytes(value)
    if len(raw) != HASH_SIZE:
        raise ValueError(f"{name} must be {HASH_SIZE} bytes, got {len(raw)}")
    return raw


def derive_anchor_address(owner: bytes, namespace: bytes = DEFAULT_NAMESPACE) -> tuple[bytes, int]:
    """Deterministic record address for *owner* within *namespace*.

    Mirrors program-derived addressing: seeds ``b"trust" || owner`` plus the
    bump byte, hashed together with the namespace.
    """
    owner = parse_identity(owner)
    bump = CANONICAL_BUMP
    digest = hashlib.sha256(
        ANCHOR_SEED + owner + bytes([bump]) + namespace + b"ProgramDerivedAddress"
    ).digest()
    return digest, bump


class TrustAnchor(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: bytes
    merkle_root: bytes = ZERO_ROOT
    edge_count: int = Field(0, ge=0, le=MAX_EDGE_COUNT)
    last_updated: int
    created_at: int
    bump: int = Field(CANONICAL_BUMP, ge=0, le=255)

    @field_validator("owner", mode="before")
    @classmethod
    def _coerce_owner(cls, value):
        return parse_identity(value)

    @field_validator("merkle_root", mode="before")
    @classmethod
    def _coerce_root(cls, value):
        return parse_hash(value, "merkle_root")

    @field_serializer("owner", "merkle_root", when_used="json")
    def _as_hex(self, value: bytes) -> str:
        return value.hex()

    @property
    def is_empty(self) -> bool:
        return self.merkle_root == ZERO_ROOT

    def address(self, namespace: bytes = DEFAULT_NAMESPACE) -> bytes:
        return derive_anchor_address(self.owner, namespace)[0]

    def to_account_bytes(self) -> bytes:
        """Discriminator followed by the 91-byte payload (99 bytes total)."""
        return ACCOUNT_DISCRIMINATOR + _PAYLOAD_LAYOUT.pack(
            self.owner,
            self.merkle_root,
            self.edge_count,
            self.last_updated,
            self.created_at,
            self.bump,
        )

    @classmethod
    def from_account_bytes(cls, data: bytes) -> TrustAnchor:
        if len(data) != ACCOUNT_SIZE:
            raise ValueError(f"trust anchor account must be {ACCOUNT_SIZE} bytes, got {len(data)}")
        if bytes(data[:8]) != ACCOUNT_DISCRIMINATOR:
            raise ValueError("account discriminator does not match TrustAnchor")
        owner, root, count, last_updated, created_at, bump = _PAYLOAD_LAYOUT.unpack(bytes(data[8:]))
        return cls(
            owner=owner,
            merkle_root=root,
            edge_count=count,
            last_updated=last_updated,
            created_at=created_at,
            bump=bump,
        )


def create_anchor(owner: bytes | str, now: int, *, namespace: bytes = DEFAULT_NAMESPACE) -> TrustAnchor:
    """Fresh record for *owner*: zero root, zero edges, both timestamps ``now``.

    Uniqueness (``AlreadyExists``) is the substrate's compare-and-insert.
    """
    owner = parse_identity(owner)
    _, bump = derive_anchor_address(owner, namespace)
    return TrustAnchor(
        owner=owner,
        merkle_root=ZERO_ROOT,
        edge_count=0,
        last_updated=now,
        created_at=now,
        bump=bump,
    )


def update_root(
    anchor: TrustAnchor,
    caller: bytes | str,
    new_root: bytes | str,
    new_count: int,
    now: int,
) -> TrustAnchor:
    """Publish a new root and edge count on behalf of the owner.

    A zero count must come with the zero root. The converse is not checked:
    a non-zero count is accepted with any root, including zero, to stay
    compatible with existing off-chain builders.
    """
    caller = parse_identity(caller)
    if caller != anchor.owner:
        logger.warning(
            "Rejected root update for %s from non-owner %s", anchor.owner.hex(), caller.hex()
        )
        raise AuthorizationError()

    new_root = parse_hash(new_root, "new_root")
    if new_count < 0 or new_count > MAX_EDGE_COUNT:
        raise EdgeCountOverflow(f"Edge count must be between 0 and {MAX_EDGE_COUNT}")
    if new_count == 0 and new_root != ZERO_ROOT:
        raise EdgeCountOverflow()

    updated = anchor.model_copy(
        update={"merkle_root": new_root, "edge_count": new_count, "last_updated": now}
    )
    logger.info("LATTICE: Root updated for %s (%d edges)", anchor.owner.hex(), new_count)
    return updated


def check_edge_inclusion(
    anchor: TrustAnchor,
    edge: TrustEdge,
    proof: Sequence[bytes],
    leaf_index: int,
) -> bool:
    """True when *edge* is committed under the anchor's current root.

    Out-of-range weights raise :class:`InvalidTrustWeight` before any hashing.
    A proof that does not reproduce the root is an ordinary ``False``.
    """
    if not edge.has_valid_weight:
        raise InvalidTrustWeight()
    if leaf_index < 0 or leaf_index > MAX_LEAF_INDEX:
        raise ValueError(f"leaf index must fit in 32 bits, got {leaf_index}")

    leaf = edge.leaf()
    if not verify_proof(proof, anchor.merkle_root, leaf, leaf_index):
        return False

    logger.debug(
        "LATTICE: Edge verified (trustee=%s, dimension=%d, weight=%d)",
        edge.trustee.hex(),
        int(edge.dimension),
        edge.weight,
    )
    return True


def verify_edge_inclusion(
    anchor: TrustAnchor,
    edge: TrustEdge,
    proof: Sequence[bytes],
    leaf_index: int,
) -> None:
    """Strict form of :func:`check_edge_inclusion`."""
    if not check_edge_inclusion(anchor, edge, proof, leaf_index):
        raise InvalidMerkleProof()
