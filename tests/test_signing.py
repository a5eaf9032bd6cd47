from __future__ import annotations

import hashlib
import hmac

from lattice.signing import request_signature, signing_message


def test_message_layout():
    assert signing_message("1700000000", "put", "/v1/anchors/ab/root", b"{}") == b"1700000000PUT/v1/anchors/ab/root{}"


def test_empty_body():
    assert signing_message("1", "POST", "/v1/anchors") == b"1POST/v1/anchors"
    assert signing_message("1", "POST", "/v1/anchors", b"") == b"1POST/v1/anchors"


def test_signature_is_hmac_sha256_of_message():
    expected = hmac.new(b"lat_key", b"5GET/v1/stats", hashlib.sha256).hexdigest()
    assert request_signature("lat_key", "5", "get", "/v1/stats") == expected


def test_signature_binds_every_part():
    base = request_signature("lat_key", "5", "PUT", "/v1/anchors/ab/root", b"{}")
    assert request_signature("lat_other", "5", "PUT", "/v1/anchors/ab/root", b"{}") != base
    assert request_signature("lat_key", "6", "PUT", "/v1/anchors/ab/root", b"{}") != base
    assert request_signature("lat_key", "5", "POST", "/v1/anchors/ab/root", b"{}") != base
    assert request_signature("lat_key", "5", "PUT", "/v1/anchors/cd/root", b"{}") != base
    assert request_signature("lat_key", "5", "PUT", "/v1/anchors/ab/root", b"[]") != base
