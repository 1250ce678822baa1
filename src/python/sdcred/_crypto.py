"""Shared helpers for importing PEM keys into joserfc.

Internal module, used by signer and verifier.
"""

import re

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from cryptography.hazmat.primitives.serialization import (
    load_pem_private_key,
    load_pem_public_key,
)
from joserfc.jwk import RSAKey
from sdcred.exceptions import KeyImportError
from sdcred.keys import rsa_keypair_to_jwk, rsa_public_key_to_jwk

_PEM_BODY = re.compile(
    r"-----BEGIN PUBLIC KEY-----\s*([\s\S]*?)\s*-----END PUBLIC KEY-----"
)


def normalize_public_key_pem(pem: str) -> str:
    """Normalize line endings and wrap bare base64 SPKI in PEM armor.

    Raises:
        KeyImportError: If the key is empty or armored as something other
            than a public key.
    """
    if not pem or not pem.strip():
        raise KeyImportError("Public key is required for signature verification")

    formatted = pem.replace("\r\n", "\n").strip()
    if "-----BEGIN PUBLIC KEY-----" not in formatted:
        if "-----BEGIN" in formatted:
            raise KeyImportError(
                "Unsupported key format. Please provide a PEM formatted RSA public key."
            )
        formatted = f"-----BEGIN PUBLIC KEY-----\n{formatted}\n-----END PUBLIC KEY-----"

    match = _PEM_BODY.search(formatted)
    if not match or not match.group(1):
        raise KeyImportError("Invalid PEM format")

    body = re.sub(r"\s+", "", match.group(1))
    lines = [body[i : i + 64] for i in range(0, len(body), 64)]
    return "-----BEGIN PUBLIC KEY-----\n" + "\n".join(lines) + "\n-----END PUBLIC KEY-----\n"


def import_public_key(pem: str) -> RSAKey:
    """Import an SPKI PEM RSA public key into a joserfc JWK.

    Raises:
        KeyImportError: If the key is missing, malformed, or not RSA.
    """
    normalized = normalize_public_key_pem(pem)
    try:
        public_key = load_pem_public_key(normalized.encode("ascii"))
    except (ValueError, UnsupportedAlgorithm) as e:
        raise KeyImportError(f"Failed to import key: {e}") from e

    if not isinstance(public_key, RSAPublicKey):
        raise KeyImportError(
            f"Unsupported key type: {type(public_key).__name__}, expected RSA"
        )
    return RSAKey.import_key(rsa_public_key_to_jwk(public_key))


def import_private_key(pem: str) -> RSAKey:
    """Import a PKCS#8 (or PKCS#1) PEM RSA private key into a joserfc JWK.

    Raises:
        KeyImportError: If the key is missing, malformed, or not RSA.
    """
    if not pem or not pem.strip():
        raise KeyImportError("Private key is required for signing")
    try:
        private_key = load_pem_private_key(pem.encode("ascii"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyImportError(f"Failed to import private key: {e}") from e

    if not isinstance(private_key, RSAPrivateKey):
        raise KeyImportError(
            f"Unsupported key type: {type(private_key).__name__}, expected RSA"
        )
    return RSAKey.import_key(rsa_keypair_to_jwk(private_key))
