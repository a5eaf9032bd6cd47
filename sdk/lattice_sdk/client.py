from __future__ import annotations

import json
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

import httpx

from lattice.edges import TrustDimension, TrustEdge
from lattice.signing import request_signature
from lattice.store import TrustEdgeStore


def _join(base_url: str, path: str) -> str:
    return base_url.rstrip("/") + "/" + path.lstrip("/")


def _hex(value: bytes | str) -> str:
    return value if isinstance(value, str) else bytes(value).hex()


def sign_request(api_key: str, method: str, path: str, body: bytes | None = None) -> dict[str, str]:
    """Produce X-Lattice-Signature and X-Lattice-Timestamp headers for request signing."""
    timestamp = str(int(time.time()))
    sig = request_signature(api_key, timestamp, method, path, body)
    return {"X-Lattice-Signature": sig, "X-Lattice-Timestamp": timestamp}


def edge_payload(edge: TrustEdge) -> dict[str, Any]:
    return {
        "trustee": edge.trustee.hex(),
        "dimension": int(edge.dimension),
        "weight": edge.weight,
        "created_at": edge.created_at,
    }


@dataclass
class LatticeClient:
    """Synchronous client for the trust anchor registry REST API."""

    base_url: str
    api_key: str | None = None
    identity: str | None = None
    timeout_s: float = 10.0
    default_headers: dict[str, str] = field(default_factory=dict)
    sign_requests: bool = False
    transport: httpx.BaseTransport | None = None

    def _headers(self, *, method: str = "GET", path: str = "/", body: bytes | None = None) -> dict[str, str]:
        h: dict[str, str] = {**self.default_headers}
        if self.api_key:
            h["Authorization"] = f"Bearer {self.api_key}"
        h["X-Request-Id"] = f"req_{uuid.uuid4().hex[:12]}"
        if self.sign_requests and self.api_key:
            h.update(sign_request(self.api_key, method, path, body))
        return h

    def _http(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout_s, transport=self.transport)

    def _send(self, method: str, url: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        body = json.dumps(payload).encode("utf-8") if payload is not None else None
        headers = self._headers(method=method, path=urlparse(url).path, body=body)
        if body is not None:
            headers["Content-Type"] = "application/json"
        with self._http() as c:
            r = c.request(method, url, content=body, headers=headers)
            r.raise_for_status()
            return r.json()

    def _owner(self, owner: bytes | str | None) -> str:
        if owner is not None:
            return _hex(owner)
        if self.identity is None:
            raise ValueError("owner is required when the client has no identity")
        return self.identity

    # --- Identities ---

    def register_identity(self, *, label: str = "") -> dict[str, Any]:
        """Register a new identity and adopt its handle and API key."""
        url = _join(self.base_url, "/v1/identities/register")
        resp = self._send("POST", url, {"label": label})
        self.identity = resp["identity"]
        self.api_key = resp["api_key"]
        return resp

    # --- Anchors ---

    def create_anchor(self) -> dict[str, Any]:
        return self._send("POST", _join(self.base_url, "/v1/anchors"))

    def get_anchor(self, owner: bytes | str | None = None) -> dict[str, Any]:
        return self._send("GET", _join(self.base_url, f"/v1/anchors/{self._owner(owner)}"))

    def has_anchor(self, owner: bytes | str | None = None) -> bool:
        try:
            self.get_anchor(owner)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                return False
            raise
        return True

    def get_account(self, owner: bytes | str | None = None) -> dict[str, Any]:
        return self._send("GET", _join(self.base_url, f"/v1/anchors/{self._owner(owner)}/account"))

    def update_root(
        self,
        merkle_root: bytes | str,
        edge_count: int,
        *,
        owner: bytes | str | None = None,
    ) -> dict[str, Any]:
        url = _join(self.base_url, f"/v1/anchors/{self._owner(owner)}/root")
        return self._send("PUT", url, {"merkle_root": _hex(merkle_root), "edge_count": edge_count})

    def publish(self, store: TrustEdgeStore) -> dict[str, Any]:
        """Commit the store's current root and edge count to the caller's anchor."""
        return self.update_root(store.root, store.edge_count)

    def add_edge_and_publish(
        self,
        store: TrustEdgeStore,
        trustee: bytes | str,
        dimension: int | str | TrustDimension,
        weight: int,
        *,
        created_at: int | None = None,
    ) -> dict[str, Any]:
        """Add (or replace) an edge in *store*, then publish the new root."""
        store.add_edge(
            TrustEdge(
                trustee=trustee,
                dimension=dimension,
                weight=weight,
                created_at=int(time.time()) if created_at is None else created_at,
            )
        )
        return self.publish(store)

    def remove_edge_and_publish(
        self,
        store: TrustEdgeStore,
        trustee: bytes | str,
        dimension: int | str | TrustDimension,
    ) -> tuple[bool, dict[str, Any]]:
        """Drop an edge from *store* and publish; returns ``(removed, anchor)``."""
        removed = store.remove_edge(trustee, dimension)
        return removed, self.publish(store)

    def verify_edge(
        self,
        owner: bytes | str,
        edge: TrustEdge,
        proof: Sequence[bytes | str],
        leaf_index: int,
    ) -> dict[str, Any]:
        url = _join(self.base_url, f"/v1/anchors/{self._owner(owner)}/verify")
        payload = {
            "edge": edge_payload(edge),
            "proof": [_hex(p) for p in proof],
            "leaf_index": leaf_index,
        }
        return self._send("POST", url, payload)

    def verify_from_store(self, owner: bytes | str, store: TrustEdgeStore, edge: TrustEdge) -> dict[str, Any]:
        """Look up the edge's proof in *store* and ask the registry to verify it."""
        found = store.proof_for(edge.trustee, edge.dimension)
        if found is None:
            raise KeyError(f"no edge for trustee {edge.trustee.hex()} in dimension {edge.dimension.label}")
        proof, index = found
        return self.verify_edge(owner, edge, proof, index)

    # --- Stats ---

    def stats(self) -> dict[str, Any]:
        return self._send("GET", _join(self.base_url, "/v1/stats"))
