from __future__ import annotations

import hashlib
import hmac


def signing_message(timestamp: str, method: str, path: str, body: bytes | None = None) -> bytes:
    """``timestamp || METHOD || path`` as UTF-8, followed by the raw body."""
    return f"{timestamp}{method.upper()}{path}".encode("utf-8") + (body or b"")


def request_signature(
    api_key: str,
    timestamp: str,
    method: str,
    path: str,
    body: bytes | None = None,
) -> str:
    """Hex HMAC-SHA256 of :func:`signing_message`, keyed with the API key."""
    message = signing_message(timestamp, method, path, body)
    return hmac.new(api_key.encode("utf-8"), message, hashlib.sha256).hexdigest()
