"""Python SDK for the LATTICE trust anchor registry.

This package is intentionally small:
- Registry HTTP client helpers (register, create anchor, publish root, verify).
- Request signing for registries that require it.
"""

from __future__ import annotations

__all__ = [
    "LatticeClient",
    "edge_payload",
    "sign_request",
]

from lattice_sdk.client import LatticeClient, edge_payload, sign_request
