from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lattice.merkle import ZERO_ROOT
from registry.config import get_session
from registry.models import Identity, TrustAnchorRow
from registry.schemas import StatsResponse


router = APIRouter()


@router.get("/stats", response_model=StatsResponse, tags=["Stats"])
def stats(session: Session = Depends(get_session)) -> StatsResponse:
    with session.begin():
        identities = session.execute(select(func.count(Identity.id))).scalar_one()
        anchors = session.execute(select(func.count(TrustAnchorRow.owner))).scalar_one()
        empty_anchors = session.execute(
            select(func.count(TrustAnchorRow.owner)).where(TrustAnchorRow.merkle_root == ZERO_ROOT.hex())
        ).scalar_one()
        committed_edges = session.execute(
            select(func.coalesce(func.sum(TrustAnchorRow.edge_count), 0))
        ).scalar_one()

    return StatsResponse(
        identities=int(identities),
        anchors=int(anchors),
        empty_anchors=int(empty_anchors),
        committed_edges=int(committed_edges),
    )
