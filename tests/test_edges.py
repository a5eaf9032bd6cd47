from __future__ import annotations

import pytest
from pydantic import ValidationError

from lattice.edges import EDGE_SIZE, TrustDimension, TrustEdge
from lattice.merkle import hash_leaf

TRUSTEE = bytes(range(32))


def _edge(**overrides) -> TrustEdge:
    defaults = dict(
        trustee=TRUSTEE,
        dimension=TrustDimension.DEVELOPER,
        weight=7500,
        created_at=1_700_000_000,
    )
    defaults.update(overrides)
    return TrustEdge(**defaults)


class TestTrustDimension:
    def test_numeric_tags_are_fixed(self):
        assert [int(d) for d in TrustDimension] == [0, 1, 2, 3, 4]
        assert TrustDimension.TRADING == 0
        assert TrustDimension.CREATOR == 4

    def test_parse_labels(self):
        assert TrustDimension.parse("trading") is TrustDimension.TRADING
        assert TrustDimension.parse("Civic") is TrustDimension.CIVIC
        assert TrustDimension.parse(" infra ") is TrustDimension.INFRA

    def test_parse_numbers(self):
        assert TrustDimension.parse(2) is TrustDimension.DEVELOPER
        assert TrustDimension.parse("4") is TrustDimension.CREATOR

    @pytest.mark.parametrize("value", [5, -1, "governance", "", True])
    def test_parse_unknown(self, value):
        with pytest.raises(ValueError):
            TrustDimension.parse(value)

    def test_label(self):
        assert TrustDimension.DEVELOPER.label == "developer"


class TestCanonicalEncoding:
    def test_size(self):
        assert EDGE_SIZE == 43
        assert len(_edge().canonical_bytes()) == 43

    def test_field_layout(self):
        data = _edge(weight=0x1234, created_at=-2).canonical_bytes()
        assert data[:32] == TRUSTEE
        assert data[32] == 2
        assert data[33:35] == b"\x34\x12"
        assert data[35:] == b"\xfe\xff\xff\xff\xff\xff\xff\xff"

    def test_leaf_is_hash_of_encoding(self):
        edge = _edge()
        assert edge.leaf() == hash_leaf(edge.canonical_bytes())

    @pytest.mark.parametrize("dimension", list(TrustDimension))
    @pytest.mark.parametrize("weight", [0, 1, 5000, 10_000])
    def test_round_trip(self, dimension, weight):
        edge = _edge(dimension=dimension, weight=weight, created_at=-(2**63))
        assert TrustEdge.from_bytes(edge.canonical_bytes()) == edge

    def test_any_field_change_changes_leaf(self):
        base = _edge()
        variants = [
            _edge(trustee=bytes(32)),
            _edge(dimension=TrustDimension.CIVIC),
            _edge(weight=7501),
            _edge(created_at=1_700_000_001),
        ]
        for variant in variants:
            assert variant.leaf() != base.leaf()

    def test_from_bytes_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            TrustEdge.from_bytes(b"\x00" * 42)

    def test_from_bytes_rejects_unknown_dimension(self):
        data = bytearray(_edge().canonical_bytes())
        data[32] = 9
        with pytest.raises(ValueError):
            TrustEdge.from_bytes(bytes(data))


class TestTrustEdgeValidation:
    def test_accepts_hex_trustee(self):
        assert _edge(trustee=TRUSTEE.hex()).trustee == TRUSTEE

    def test_accepts_dimension_label(self):
        assert _edge(dimension="creator").dimension is TrustDimension.CREATOR

    def test_rejects_short_trustee(self):
        with pytest.raises(ValidationError):
            _edge(trustee=b"\x01" * 31)

    def test_rejects_weight_outside_u16(self):
        with pytest.raises(ValidationError):
            _edge(weight=0x10000)

    def test_allows_weight_above_basis_points(self):
        # Range is enforced at verification time, not construction.
        edge = _edge(weight=10_001)
        assert not edge.has_valid_weight

    def test_frozen(self):
        edge = _edge()
        with pytest.raises(ValidationError):
            edge.weight = 1

    def test_json_dump_uses_hex(self):
        dumped = _edge().model_dump(mode="json")
        assert dumped["trustee"] == TRUSTEE.hex()
        assert dumped["dimension"] == 2
