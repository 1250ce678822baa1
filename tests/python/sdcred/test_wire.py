"""Tests for the combined SD-JWT wire format."""

import json
import sys

import pytest

from sdcred.codec import b64url_encode
from sdcred.exceptions import MalformedTokenError
from sdcred.wire import (
    extract_token,
    parse_jwt_parts,
    serialize,
    split_disclosures,
)


def b64url_json(value) -> str:
    return b64url_encode(json.dumps(value))


HEADER = b64url_json({"alg": "RS256", "typ": "JWT"})
PAYLOAD = b64url_json({"credentialSubject": {"_sd": []}})
TOKEN = f"{HEADER}.{PAYLOAD}.c2ln"


class TestSerialize:
    def test_joins_with_tilde(self):
        assert serialize(TOKEN, ["d1", "d2"]) == f"{TOKEN}~d1~d2"

    def test_no_disclosures(self):
        assert serialize(TOKEN, []) == TOKEN


class TestExtractToken:
    def test_returns_first_segment(self):
        assert extract_token(f"{TOKEN}~d1~d2") == TOKEN

    def test_strips_whitespace_and_newlines(self):
        wrapped = f"{TOKEN[:10]}\n{TOKEN[10:30]}\r\n  {TOKEN[30:]}~d1"
        assert extract_token(wrapped) == TOKEN

    def test_normalizes_stray_characters(self):
        # A quoted token copied from a log line
        assert extract_token(f'"{TOKEN}"') == TOKEN

    @pytest.mark.parametrize("bad", ["abc.def", "a.b.c.d", "", "no-dots-at-all"])
    def test_wrong_segment_count_raises(self, bad):
        with pytest.raises(MalformedTokenError, match="expected 3 parts"):
            extract_token(bad)


class TestSplitDisclosures:
    def test_segments_after_token(self):
        assert split_disclosures(f"{TOKEN}~d1~d2") == ["d1", "d2"]

    def test_none(self):
        assert split_disclosures(TOKEN) == []

    def test_trailing_separator_is_ignored(self):
        assert split_disclosures(f"{TOKEN}~d1~") == ["d1"]

    def test_whitespace_removed(self):
        assert split_disclosures(f"{TOKEN}~d\n1") == ["d1"]


class TestParseJwtParts:
    def test_valid_token(self):
        parsed = parse_jwt_parts(TOKEN)
        assert not parsed.manual_mode
        assert parsed.header == {"alg": "RS256", "typ": "JWT"}
        assert parsed.payload == {"credentialSubject": {"_sd": []}}
        assert parsed.segments == (HEADER, PAYLOAD, "c2ln")
        assert parsed.compact == TOKEN

    def test_wrong_part_count_is_manual_mode(self):
        parsed = parse_jwt_parts(f"{HEADER}.{PAYLOAD}")
        assert parsed.manual_mode
        assert "error" in parsed.header
        assert "error" in parsed.payload

    def test_bad_header_keeps_payload(self):
        parsed = parse_jwt_parts(f"!!!!.{PAYLOAD}.c2ln")
        assert parsed.manual_mode
        assert parsed.header == {"error": "Could not parse header"}
        assert parsed.payload == {"credentialSubject": {"_sd": []}}
        assert "header" in parsed.error

    def test_non_json_payload(self):
        parsed = parse_jwt_parts(f"{HEADER}.bm90IGpzb24.c2ln")
        assert parsed.manual_mode
        assert parsed.header["alg"] == "RS256"
        assert parsed.payload == {"error": "Could not parse payload"}

    def test_payload_must_be_object(self):
        parsed = parse_jwt_parts(f"{HEADER}.{b64url_json([1, 2])}.c2ln")
        assert parsed.manual_mode

    def test_empty_payload_segment(self):
        parsed = parse_jwt_parts(f"{HEADER}..c2ln")
        assert parsed.manual_mode
        assert "missing payload" in parsed.error

    def test_deeply_nested_payload_is_manual_mode(self):
        parsed = parse_jwt_parts(f"{HEADER}.{b64url_encode('[' * 100000)}.c2ln")
        assert parsed.manual_mode
        assert parsed.payload == {"error": "Could not parse payload"}
        assert "payload" in parsed.error

    @pytest.mark.skipif(
        not hasattr(sys, "get_int_max_str_digits"),
        reason="interpreter has no integer string conversion limit",
    )
    def test_oversized_integer_in_header_is_manual_mode(self):
        header = b64url_encode('{"alg":"RS256","x":' + "9" * 5000 + "}")
        parsed = parse_jwt_parts(f"{header}.{PAYLOAD}.c2ln")
        assert parsed.manual_mode
        assert parsed.header == {"error": "Could not parse header"}
        assert parsed.payload == {"credentialSubject": {"_sd": []}}
