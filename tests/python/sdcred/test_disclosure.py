"""Tests for disclosure generation and digest commitments."""

import base64
import hashlib
import json
import sys

import pytest

from sdcred.codec import b64url_decode, b64url_encode
from sdcred.digest import digest_bytes, digest_disclosure
from sdcred.disclosure import (
    Disclosure,
    decode_disclosure,
    generate_disclosures,
    generate_salt,
)
from sdcred.exceptions import DecodingError


class TestDigest:
    def test_known_vector(self):
        serialized = b'["salt","name","Alice"]'
        expected = (
            base64.urlsafe_b64encode(hashlib.sha256(serialized).digest())
            .rstrip(b"=")
            .decode()
        )
        assert digest_bytes(serialized) == expected
        assert digest_disclosure(["salt", "name", "Alice"]) == expected

    def test_deterministic(self):
        d = Disclosure("c2FsdA", "name", "Alice")
        assert d.digest() == Disclosure("c2FsdA", "name", "Alice").digest()

    @pytest.mark.parametrize(
        "other",
        [
            Disclosure("b3RoZXI", "name", "Alice"),
            Disclosure("c2FsdA", "nickname", "Alice"),
            Disclosure("c2FsdA", "name", "Bob"),
        ],
    )
    def test_any_field_change_changes_digest(self, other):
        assert Disclosure("c2FsdA", "name", "Alice").digest() != other.digest()


class TestDisclosure:
    def test_encoded_form_is_canonical_array(self):
        d = Disclosure("c2FsdA", "score", {"value": 94.75, "unit": "%"})
        assert b64url_decode(d.encode()) == b'["c2FsdA","score",{"value":94.75,"unit":"%"}]'

    def test_decode_reproduces_hashed_bytes(self):
        d = Disclosure("c2FsdA", "name", "Zoë")
        decoded = decode_disclosure(d.encode())
        assert decoded.ok
        assert decoded.disclosure == d
        assert decoded.serialized == d.serialize()
        assert decoded.digest() == d.digest()

    def test_from_list_rejects_wrong_arity(self):
        with pytest.raises(DecodingError, match="expected \\[salt, name, value\\]"):
            Disclosure.from_list(["salt", "name"])

    def test_from_list_rejects_non_string_name(self):
        with pytest.raises(DecodingError):
            Disclosure.from_list(["salt", 7, "value"])


class TestGenerateDisclosures:
    def test_id_is_never_disclosed(self):
        batch = generate_disclosures({"id": "did:example:x", "a": 1, "b": 2})
        assert [d.claim_name for d in batch.disclosures] == ["a", "b"]
        assert len(batch.digests) == 2
        assert len(batch.encoded) == 2

    def test_order_follows_input(self):
        claims = {"z": 1, "m": 2, "a": 3}
        batch = generate_disclosures(claims)
        assert [d.claim_name for d in batch.disclosures] == ["z", "m", "a"]
        names = [json.loads(b64url_decode(e))[1] for e in batch.encoded]
        assert names == ["z", "m", "a"]

    def test_every_digest_matches_its_disclosure(self):
        batch = generate_disclosures({"name": "Alice", "age": 30, "tags": ["x"]})
        for disclosure, encoded in zip(batch.disclosures, batch.encoded):
            assert disclosure.digest() in batch.digests
            assert decode_disclosure(encoded).digest() == disclosure.digest()

    def test_mutated_value_is_not_committed(self):
        batch = generate_disclosures({"name": "Alice"})
        original = batch.disclosures[0]
        mutated = Disclosure(original.salt, original.claim_name, "Mallory")
        assert mutated.digest() not in batch.digests

    def test_salts_are_unique(self):
        claims = {f"claim{i}": "same value" for i in range(50)}
        batch = generate_disclosures(claims)
        salts = [d.salt for d in batch.disclosures]
        assert len(set(salts)) == len(salts)
        assert len(set(batch.digests)) == len(batch.digests)

    def test_salt_has_at_least_eight_random_bytes(self):
        assert len(b64url_decode(generate_salt())) >= 8

    def test_generate_salt_avoids_used(self):
        used = {generate_salt() for _ in range(5)}
        assert generate_salt(used) not in used

    def test_same_claims_produce_different_digests(self):
        first = generate_disclosures({"name": "Alice"})
        second = generate_disclosures({"name": "Alice"})
        assert first.digests != second.digests

    def test_empty_claims(self):
        batch = generate_disclosures({})
        assert batch.digests == []
        assert batch.disclosures == []
        assert batch.encoded == []

    def test_only_id_yields_nothing(self):
        assert generate_disclosures({"id": "did:example:x"}).disclosures == []


class TestDecodeDisclosure:
    def test_invalid_base64_is_reported_not_raised(self):
        decoded = decode_disclosure("!!!!")
        assert not decoded.ok
        assert decoded.raw == "!!!!"
        assert "base64url" in decoded.error

    def test_invalid_json_is_reported(self):
        decoded = decode_disclosure(b64url_encode(b"not json"))
        assert not decoded.ok
        assert "Invalid disclosure JSON" in decoded.error

    def test_non_triple_is_reported(self):
        decoded = decode_disclosure(b64url_encode(b'{"salt":"x"}'))
        assert not decoded.ok
        assert "expected [salt, name, value]" in decoded.error

    def test_digest_of_undecoded_disclosure_raises(self):
        with pytest.raises(DecodingError):
            decode_disclosure("!!!!").digest()

    def test_deeply_nested_json_is_reported(self):
        decoded = decode_disclosure(b64url_encode("[" * 100000))
        assert not decoded.ok
        assert "Invalid disclosure JSON" in decoded.error

    @pytest.mark.skipif(
        not hasattr(sys, "get_int_max_str_digits"),
        reason="interpreter has no integer string conversion limit",
    )
    def test_oversized_integer_is_reported(self):
        decoded = decode_disclosure(b64url_encode('["c2FsdA","n",' + "9" * 5000 + "]"))
        assert not decoded.ok
        assert "Invalid disclosure JSON" in decoded.error
