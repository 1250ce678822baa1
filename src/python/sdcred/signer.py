"""Sign credential payloads as RS256 compact JWS."""

import json

from joserfc import jws
from sdcred._crypto import import_private_key
from sdcred.config import KEY_ID_FRAGMENT, SUPPORTED_ALGORITHM
from sdcred.exceptions import UnsupportedAlgorithmError


def build_header(issuer_id: str) -> dict[str, str]:
    """Build the JOSE protected header; the kid points at the issuer's key."""
    return {
        "alg": SUPPORTED_ALGORITHM,
        "typ": "JWT",
        "kid": f"{issuer_id}#{KEY_ID_FRAGMENT}",
    }


def sign_jwt(header: dict, payload: dict, private_key_pem: str) -> str:
    """Sign a JSON payload and return ``header.payload.signature``.

    Args:
        header: JOSE protected header; ``alg`` must be RS256.
        payload: JSON-serializable claims.
        private_key_pem: Issuer's RSA private key (PEM).

    Raises:
        UnsupportedAlgorithmError: If the header names another algorithm.
        KeyImportError: If the private key cannot be imported.
    """
    alg = header.get("alg")
    if alg != SUPPORTED_ALGORITHM:
        raise UnsupportedAlgorithmError.for_alg(alg)

    payload_bytes = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    key = import_private_key(private_key_pem)
    return jws.serialize_compact(header, payload_bytes, key, algorithms=[alg])
