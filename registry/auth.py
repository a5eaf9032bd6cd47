from __future__ import annotations

import hmac
import logging
import secrets
import time

import bcrypt
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from lattice.signing import request_signature
from registry.config import get_session, settings
from registry.models import Identity

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "lat_"
_LOOKUP_CHARS = 16


def new_api_key() -> tuple[str, str, str]:
    """Return ``(api_key, lookup_prefix, bcrypt_hash)`` for a fresh key."""
    api_key = f"{API_KEY_PREFIX}{secrets.token_hex(24)}"
    api_key_hash = bcrypt.hashpw(
        api_key.encode("utf-8"),
        bcrypt.gensalt(rounds=settings.api_key_salt_rounds),
    ).decode("utf-8")
    return api_key, api_key[:_LOOKUP_CHARS], api_key_hash


def _check_api_key(api_key: str, api_key_hash: str) -> bool:
    try:
        return bcrypt.checkpw(api_key.encode("utf-8"), api_key_hash.encode("utf-8"))
    except ValueError:
        return False


def _signature_is_fresh(timestamp: str) -> bool:
    try:
        signed_at = int(timestamp)
    except (ValueError, TypeError):
        return False
    return abs(int(time.time()) - signed_at) <= settings.signature_max_age_seconds


def _verify_signature(request: Request, api_key: str, body: bytes, signature: str, timestamp: str) -> bool:
    """Check an X-Lattice-Signature against the request it arrived with."""
    if not _signature_is_fresh(timestamp):
        return False
    expected = request_signature(api_key, timestamp, request.method, request.url.path, body)
    return hmac.compare_digest(expected, signature)


async def authenticate_identity(
    request: Request,
    authorization: str | None = Header(default=None),
    x_lattice_signature: str | None = Header(default=None),
    x_lattice_timestamp: str | None = Header(default=None),
    session: Session = Depends(get_session),
) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Missing or invalid Authorization header. Use: Bearer lat_<your_api_key>",
        )
    api_key = authorization.split(" ", 1)[1].strip()
    if not api_key.startswith(API_KEY_PREFIX) or len(api_key) <= _LOOKUP_CHARS:
        raise HTTPException(status_code=401, detail="Invalid API key format")

    has_signature = x_lattice_signature is not None and x_lattice_timestamp is not None
    if settings.require_signatures and not has_signature:
        raise HTTPException(
            status_code=401,
            detail="Request signature required. Provide X-Lattice-Signature and X-Lattice-Timestamp headers.",
        )

    if has_signature:
        body = await request.body()
        if not _verify_signature(
            request,
            api_key,
            body,
            x_lattice_signature,  # type: ignore[arg-type]
            x_lattice_timestamp,  # type: ignore[arg-type]
        ):
            raise HTTPException(status_code=401, detail="Invalid request signature")

    with session.begin():
        candidates = session.execute(
            select(Identity).where(
                Identity.api_key_prefix == api_key[:_LOOKUP_CHARS],
                Identity.status == "active",
            )
        ).scalars().all()

        for ident in candidates:
            if _check_api_key(api_key, ident.api_key_hash):
                return {
                    "id": ident.id,
                    "label": ident.label,
                    "status": ident.status,
                }

    logger.warning("Rejected API key with prefix %s", api_key[:_LOOKUP_CHARS])
    raise HTTPException(status_code=401, detail="Invalid API key")
