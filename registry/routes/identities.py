from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lattice.edges import IDENTITY_SIZE
from registry.auth import new_api_key
from registry.config import get_session
from registry.models import Identity
from registry.schemas import RegisterIdentityRequest, RegisterIdentityResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/identities/register",
    status_code=201,
    response_model=RegisterIdentityResponse,
    tags=["Identities"],
)
def register(req: RegisterIdentityRequest, session: Session = Depends(get_session)) -> RegisterIdentityResponse:
    api_key, key_prefix, api_key_hash = new_api_key()
    handle = secrets.token_bytes(IDENTITY_SIZE).hex()

    with session.begin():
        session.add(
            Identity(
                id=handle,
                label=req.label,
                api_key_prefix=key_prefix,
                api_key_hash=api_key_hash,
            )
        )

    logger.info("Registered identity %s", handle)
    return RegisterIdentityResponse(identity=handle, label=req.label, api_key=api_key)
