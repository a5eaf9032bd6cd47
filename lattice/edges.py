from __future__ import annotations

import enum
import struct

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from lattice.merkle import hash_leaf

IDENTITY_SIZE = 32
MAX_TRUST_WEIGHT = 10_000

# trustee(32) | dimension(u8) | weight(u16 LE) | created_at(i64 LE)
_EDGE_LAYOUT = struct.Struct("<32sBHq")
EDGE_SIZE = _EDGE_LAYOUT.size

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


class TrustDimension(enum.IntEnum):
    """Trust dimensions. The numeric tags are part of the leaf encoding."""

    TRADING = 0
    CIVIC = 1
    DEVELOPER = 2
    INFRA = 3
    CREATOR = 4

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: int | str | TrustDimension) -> TrustDimension:
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"Unknown dimension tag: {value}") from None
        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return cls.parse(int(text))
            try:
                return cls[text.upper()]
            except KeyError:
                raise ValueError(f"Unknown dimension: {value}") from None
        raise ValueError(f"Unknown dimension: {value!r}")


def parse_identity(value: bytes | bytearray | memoryview | str) -> bytes:
    """Accept a 32-byte identity as raw bytes or as 64 hex characters."""
    if isinstance(value, str):
        try:
            raw = bytes.fromhex(value)
        except ValueError:
            raise ValueError("identity must be hex encoded") from None
    elif isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
    else:
        raise ValueError(f"identity must be bytes or hex, got {type(value).__name__}")
    if len(raw) != IDENTITY_SIZE:
        raise ValueError(f"identity must be {IDENTITY_SIZE} bytes, got {len(raw)}")
    return raw


class TrustEdge(BaseModel):
    """A directed, weighted trust claim about ``trustee``.

    Edges live off-chain; only their leaf hashes are committed. Weight is
    only checked against the u16 width here, the 0..10000 basis-point range
    is enforced when an edge is verified.
    """

    model_config = ConfigDict(frozen=True)

    trustee: bytes
    dimension: TrustDimension
    weight: int = Field(..., ge=0, le=0xFFFF)
    created_at: int = Field(..., ge=_I64_MIN, le=_I64_MAX)

    @field_validator("trustee", mode="before")
    @classmethod
    def _coerce_trustee(cls, value):
        return parse_identity(value)

    @field_validator("dimension", mode="before")
    @classmethod
    def _coerce_dimension(cls, value):
        return TrustDimension.parse(value)

    @field_serializer("trustee", when_used="json")
    def _trustee_hex(self, value: bytes) -> str:
        return value.hex()

    def canonical_bytes(self) -> bytes:
        """The 43-byte leaf preimage. Field order, widths and byte order are fixed."""
        return _EDGE_LAYOUT.pack(self.trustee, int(self.dimension), self.weight, self.created_at)

    @classmethod
    def from_bytes(cls, data: bytes) -> TrustEdge:
        if len(data) != EDGE_SIZE:
            raise ValueError(f"trust edge encoding must be {EDGE_SIZE} bytes, got {len(data)}")
        trustee, tag, weight, created_at = _EDGE_LAYOUT.unpack(bytes(data))
        return cls(
            trustee=trustee,
            dimension=TrustDimension.parse(tag),
            weight=weight,
            created_at=created_at,
        )

    def leaf(self) -> bytes:
        return hash_leaf(self.canonical_bytes())

    @property
    def has_valid_weight(self) -> bool:
        return self.weight <= MAX_TRUST_WEIGHT
