from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field

_HEX32 = r"^[0-9a-fA-F]{64}$"

Hash32 = Annotated[str, Field(pattern=_HEX32)]


# --- Error ---


class ErrorDetail(BaseModel):
    code: str
    number: int
    message: str


class ErrorResponse(BaseModel):
    detail: ErrorDetail


# --- Health ---


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "lattice-registry"


# --- Identities ---


class RegisterIdentityRequest(BaseModel):
    label: str = Field("", max_length=255)


class RegisterIdentityResponse(BaseModel):
    message: str = "Identity registered. Save your API key - it will not be shown again."
    identity: str
    label: str
    api_key: str


# --- Anchors ---


class AnchorResponse(BaseModel):
    owner: str
    address: str
    merkle_root: str
    edge_count: int
    is_empty: bool
    last_updated: int
    created_at: int
    bump: int


class AccountDataResponse(BaseModel):
    address: str
    bump: int
    size: int
    data: str


class UpdateRootRequest(BaseModel):
    merkle_root: str = Field(..., pattern=_HEX32)
    edge_count: int = Field(..., ge=0, le=0xFFFF)


class EdgePayload(BaseModel):
    trustee: str = Field(..., pattern=_HEX32)
    dimension: int | str
    weight: int = Field(..., ge=0, le=0xFFFF)
    created_at: int = Field(..., ge=-(2**63), le=2**63 - 1)


class VerifyEdgeRequest(BaseModel):
    edge: EdgePayload
    proof: list[Hash32] = Field(default_factory=list)
    leaf_index: int = Field(..., ge=0, le=0xFFFFFFFF)


class VerifyEdgeResponse(BaseModel):
    owner: str
    verified: bool
    error: str | None = None
    leaf: str
    merkle_root: str
    edge_count: int
    last_updated: int


# --- Stats ---


class StatsResponse(BaseModel):
    identities: int
    anchors: int
    empty_anchors: int
    committed_edges: int
