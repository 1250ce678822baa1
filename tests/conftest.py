"""Shared fixtures for sdcred tests."""

import base64
import json
from pathlib import Path

import pytest

from sdcred.keys import generate_rsa_keypair, private_key_to_pem, public_key_to_pem

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Fixed reference time: 2025-06-01T00:00:00Z
NOW = 1748736000


def b64url_json(value) -> str:
    """Base64url-encode a JSON value the way a third-party issuer might."""
    return base64.urlsafe_b64encode(json.dumps(value).encode()).rstrip(b"=").decode()


# ---------------------------------------------------------------------------
# RSA fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def rsa_keypair():
    """RSA key pair shared by the whole session (generation is slow)."""
    return generate_rsa_keypair()


@pytest.fixture(scope="session")
def private_key_pem(rsa_keypair):
    return private_key_to_pem(rsa_keypair[0])


@pytest.fixture(scope="session")
def public_key_pem(rsa_keypair):
    return public_key_to_pem(rsa_keypair[1])


@pytest.fixture(scope="session")
def other_public_key_pem():
    """Public key of an unrelated issuer."""
    _, public_key = generate_rsa_keypair()
    return public_key_to_pem(public_key)


# ---------------------------------------------------------------------------
# Sample credentials
# ---------------------------------------------------------------------------


@pytest.fixture()
def now():
    return NOW


@pytest.fixture()
def sample_template():
    """Credential template with six claims under subjectMetaData."""
    with open(FIXTURES_DIR / "sample-template.json") as f:
        return json.load(f)


@pytest.fixture()
def stub_signer():
    """Signer that skips cryptography: header.payload.fixed-signature."""

    def sign(header, payload, private_key_pem):
        return f"{b64url_json(header)}.{b64url_json(payload)}.c3R1Yi1zaWduYXR1cmU"

    return sign


@pytest.fixture()
def issued(sample_template, private_key_pem):
    """A credential issued at NOW from the sample template with a real key."""
    from sdcred.sd_jwt import issue_sd_jwt_vc

    return issue_sd_jwt_vc(sample_template, private_key_pem, now=NOW)
