from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, SmallInteger, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from lattice.anchor import TrustAnchor


class Base(DeclarativeBase):
    pass


class Identity(Base):
    __tablename__ = "identities"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    api_key_prefix: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    api_key_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class TrustAnchorRow(Base):
    """Persisted trust anchor. Timestamps are unix seconds, as in the account layout."""

    __tablename__ = "trust_anchors"

    owner: Mapped[str] = mapped_column(String(64), primary_key=True)
    address: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    merkle_root: Mapped[str] = mapped_column(String(64), nullable=False)
    edge_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_updated: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    bump: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    def to_anchor(self) -> TrustAnchor:
        return TrustAnchor(
            owner=self.owner,
            merkle_root=self.merkle_root,
            edge_count=self.edge_count,
            last_updated=self.last_updated,
            created_at=self.created_at,
            bump=self.bump,
        )

    def apply(self, anchor: TrustAnchor) -> None:
        self.merkle_root = anchor.merkle_root.hex()
        self.edge_count = anchor.edge_count
        self.last_updated = anchor.last_updated

    @classmethod
    def from_anchor(cls, anchor: TrustAnchor, address: bytes) -> TrustAnchorRow:
        return cls(
            owner=anchor.owner.hex(),
            address=address.hex(),
            merkle_root=anchor.merkle_root.hex(),
            edge_count=anchor.edge_count,
            last_updated=anchor.last_updated,
            created_at=anchor.created_at,
            bump=anchor.bump,
        )
