"""SHA-256 digests for disclosure commitments."""

import hashlib

from sdcred.codec import b64url_encode, canonical_json


def digest_bytes(serialized: bytes) -> str:
    """base64url(SHA-256(serialized))."""
    return b64url_encode(hashlib.sha256(serialized).digest())


def digest_disclosure(triple: list) -> str:
    """Digest of a ``[salt, claim_name, claim_value]`` array."""
    return digest_bytes(canonical_json(triple))
