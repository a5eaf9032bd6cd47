from __future__ import annotations

import logging
import time
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lattice.anchor import (
    ACCOUNT_SIZE,
    TrustAnchor,
    check_edge_inclusion,
    create_anchor,
    derive_anchor_address,
    update_root,
)
from lattice.edges import TrustDimension, TrustEdge
from lattice.errors import (
    AlreadyExists,
    AnchorNotFound,
    AuthorizationError,
    EdgeCountOverflow,
    InvalidMerkleProof,
    InvalidTrustWeight,
    LatticeError,
)
from registry.auth import authenticate_identity
from registry.config import get_session, settings
from registry.models import TrustAnchorRow
from registry.schemas import (
    AccountDataResponse,
    AnchorResponse,
    UpdateRootRequest,
    VerifyEdgeRequest,
    VerifyEdgeResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

OwnerPath = Annotated[str, Path(pattern=r"^[0-9a-fA-F]{64}$", description="Owner identity, 64 hex chars")]

_STATUS_BY_ERROR: dict[type[LatticeError], int] = {
    AlreadyExists: 409,
    AuthorizationError: 403,
    AnchorNotFound: 404,
    EdgeCountOverflow: 400,
    InvalidTrustWeight: 400,
    InvalidMerkleProof: 400,
}


def _now() -> int:
    return int(time.time())


def _domain_error(exc: LatticeError) -> HTTPException:
    return HTTPException(status_code=_STATUS_BY_ERROR.get(type(exc), 400), detail=exc.to_dict())


def _lock(stmt):
    return stmt.with_for_update()


def _load(session: Session, owner: str, *, for_update: bool = False) -> TrustAnchorRow:
    stmt = select(TrustAnchorRow).where(TrustAnchorRow.owner == owner)
    if for_update:
        stmt = _lock(stmt)
    row = session.execute(stmt).scalar_one_or_none()
    if row is None:
        raise _domain_error(AnchorNotFound())
    return row


def _anchor_response(anchor: TrustAnchor, address: str) -> AnchorResponse:
    return AnchorResponse(
        owner=anchor.owner.hex(),
        address=address,
        merkle_root=anchor.merkle_root.hex(),
        edge_count=anchor.edge_count,
        is_empty=anchor.is_empty,
        last_updated=anchor.last_updated,
        created_at=anchor.created_at,
        bump=anchor.bump,
    )


@router.post("/anchors", status_code=201, response_model=AnchorResponse, tags=["Anchors"])
def create(
    current: dict = Depends(authenticate_identity),
    session: Session = Depends(get_session),
) -> AnchorResponse:
    anchor = create_anchor(current["id"], _now(), namespace=settings.address_namespace)
    address, _ = derive_anchor_address(anchor.owner, settings.address_namespace)

    with session.begin():
        existing = session.execute(
            select(TrustAnchorRow.owner).where(TrustAnchorRow.owner == current["id"])
        ).scalar_one_or_none()
        if existing is not None:
            raise _domain_error(AlreadyExists())

        session.add(TrustAnchorRow.from_anchor(anchor, address))
        try:
            session.flush()
        except IntegrityError:
            # Lost a concurrent insert for the same owner.
            raise _domain_error(AlreadyExists()) from None

    logger.info("LATTICE: Trust anchor initialized for %s", current["id"])
    return _anchor_response(anchor, address.hex())


@router.get("/anchors/{owner}", response_model=AnchorResponse, tags=["Anchors"])
def get_anchor(owner: OwnerPath, session: Session = Depends(get_session)) -> AnchorResponse:
    with session.begin():
        row = _load(session, owner.lower())
        return _anchor_response(row.to_anchor(), row.address)


@router.get("/anchors/{owner}/account", response_model=AccountDataResponse, tags=["Anchors"])
def get_account(owner: OwnerPath, session: Session = Depends(get_session)) -> AccountDataResponse:
    with session.begin():
        row = _load(session, owner.lower())
        anchor = row.to_anchor()
        address = row.address

    return AccountDataResponse(
        address=address,
        bump=anchor.bump,
        size=ACCOUNT_SIZE,
        data=anchor.to_account_bytes().hex(),
    )


@router.put("/anchors/{owner}/root", response_model=AnchorResponse, tags=["Anchors"])
def put_root(
    req: UpdateRootRequest,
    owner: OwnerPath,
    current: dict = Depends(authenticate_identity),
    session: Session = Depends(get_session),
) -> AnchorResponse:
    with session.begin():
        row = _load(session, owner.lower(), for_update=True)
        try:
            updated = update_root(row.to_anchor(), current["id"], req.merkle_root, req.edge_count, _now())
        except LatticeError as exc:
            raise _domain_error(exc) from None
        row.apply(updated)
        session.add(row)
        address = row.address

    return _anchor_response(updated, address)


@router.post("/anchors/{owner}/verify", response_model=VerifyEdgeResponse, tags=["Anchors"])
def verify(
    req: VerifyEdgeRequest,
    owner: OwnerPath,
    session: Session = Depends(get_session),
) -> VerifyEdgeResponse:
    try:
        dimension = TrustDimension.parse(req.edge.dimension)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None

    edge = TrustEdge(
        trustee=req.edge.trustee,
        dimension=dimension,
        weight=req.edge.weight,
        created_at=req.edge.created_at,
    )
    proof = [bytes.fromhex(sibling) for sibling in req.proof]

    with session.begin():
        anchor = _load(session, owner.lower()).to_anchor()

    try:
        verified = check_edge_inclusion(anchor, edge, proof, req.leaf_index)
    except InvalidTrustWeight as exc:
        raise _domain_error(exc) from None

    return VerifyEdgeResponse(
        owner=anchor.owner.hex(),
        verified=verified,
        error=None if verified else InvalidMerkleProof.code,
        leaf=edge.leaf().hex(),
        merkle_root=anchor.merkle_root.hex(),
        edge_count=anchor.edge_count,
        last_updated=anchor.last_updated,
    )
