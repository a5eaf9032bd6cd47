from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator, Sequence

from lattice.anchor import (
    DEFAULT_NAMESPACE,
    TrustAnchor,
    check_edge_inclusion,
    create_anchor,
    update_root,
    verify_edge_inclusion,
)
from lattice.edges import TrustEdge, parse_identity
from lattice.errors import AlreadyExists, AnchorNotFound

logger = logging.getLogger(__name__)


def _unix_now() -> int:
    return int(time.time())


class InMemoryAnchorBook:
    """Process-local substrate holding at most one anchor per owner.

    Writers serialize on a lock (compare-and-insert for creation,
    read-modify-write for root updates). Records are immutable and replaced
    with a single dict assignment, so readers never lock and never observe a
    half-updated record.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], int] = _unix_now,
        namespace: bytes = DEFAULT_NAMESPACE,
    ) -> None:
        self._clock = clock
        self._namespace = namespace
        self._anchors: dict[bytes, TrustAnchor] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._anchors)

    def __contains__(self, owner: object) -> bool:
        try:
            return parse_identity(owner) in self._anchors  # type: ignore[arg-type]
        except ValueError:
            return False

    def __iter__(self) -> Iterator[TrustAnchor]:
        return iter(list(self._anchors.values()))

    def get(self, owner: bytes | str) -> TrustAnchor:
        anchor = self._anchors.get(parse_identity(owner))
        if anchor is None:
            raise AnchorNotFound()
        return anchor

    def create(self, owner: bytes | str) -> TrustAnchor:
        owner = parse_identity(owner)
        with self._lock:
            if owner in self._anchors:
                raise AlreadyExists()
            anchor = create_anchor(owner, self._clock(), namespace=self._namespace)
            self._anchors[owner] = anchor
        logger.info("LATTICE: Trust anchor initialized for %s", owner.hex())
        return anchor

    def update_root(
        self,
        caller: bytes | str,
        owner: bytes | str,
        new_root: bytes | str,
        new_count: int,
    ) -> TrustAnchor:
        owner = parse_identity(owner)
        with self._lock:
            current = self._anchors.get(owner)
            if current is None:
                raise AnchorNotFound()
            updated = update_root(current, caller, new_root, new_count, self._clock())
            self._anchors[owner] = updated
        return updated

    def check_edge(
        self,
        owner: bytes | str,
        edge: TrustEdge,
        proof: Sequence[bytes],
        leaf_index: int,
    ) -> bool:
        return check_edge_inclusion(self.get(owner), edge, proof, leaf_index)

    def verify_edge(
        self,
        owner: bytes | str,
        edge: TrustEdge,
        proof: Sequence[bytes],
        leaf_index: int,
    ) -> None:
        verify_edge_inclusion(self.get(owner), edge, proof, leaf_index)
