"""Salted disclosures and their digest commitments.

A disclosure is the triple ``[salt, claim_name, claim_value]``. The issuer
embeds only ``digest(disclosure)`` in the signed credential; the holder
reveals the base64url-encoded disclosure to whichever verifier should learn
the claim.
"""

import json
import logging
import secrets
from dataclasses import dataclass, field
from typing import Any

from sdcred.codec import b64url_decode, b64url_encode, canonical_json
from sdcred.config import RESERVED_CLAIM, SALT_BYTES
from sdcred.digest import digest_bytes, digest_disclosure
from sdcred.exceptions import DecodingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Disclosure:
    """A single selectively disclosable claim.

    Two disclosures with the same claim but different salts are distinct and
    hash to different digests.
    """

    salt: str
    claim_name: str
    claim_value: Any

    def to_list(self) -> list:
        return [self.salt, self.claim_name, self.claim_value]

    def serialize(self) -> bytes:
        """Canonical JSON bytes; the exact input to both hashing and encoding."""
        return canonical_json(self.to_list())

    def encode(self) -> str:
        return b64url_encode(self.serialize())

    def digest(self) -> str:
        return digest_disclosure(self.to_list())

    @classmethod
    def from_list(cls, value) -> "Disclosure":
        """Build a Disclosure from a decoded JSON array.

        Raises:
            DecodingError: If the value is not a ``[str, str, any]`` array.
        """
        if not isinstance(value, list) or len(value) != 3:
            raise DecodingError(
                "Invalid disclosure format: expected [salt, name, value]"
            )
        salt, claim_name, claim_value = value
        if not isinstance(salt, str) or not isinstance(claim_name, str):
            raise DecodingError(
                "Invalid disclosure format: salt and claim name must be strings"
            )
        return cls(salt, claim_name, claim_value)


@dataclass(frozen=True)
class DecodedDisclosure:
    """A disclosure segment as received by a verifier.

    ``serialized`` holds the decoded bytes exactly as transmitted; the digest
    is recomputed from them rather than from a re-serialization. When the
    segment could not be decoded, ``disclosure`` is None and ``error`` says
    why.
    """

    raw: str
    disclosure: Disclosure | None = None
    serialized: bytes | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.disclosure is not None

    def digest(self) -> str:
        if self.serialized is None:
            raise DecodingError(self.error or "Disclosure was not decoded")
        return digest_bytes(self.serialized)


@dataclass
class DisclosureBatch:
    """Output of :func:`generate_disclosures`, in input-claim order."""

    digests: list[str] = field(default_factory=list)
    disclosures: list[Disclosure] = field(default_factory=list)
    encoded: list[str] = field(default_factory=list)


def generate_salt(used: set[str] | None = None) -> str:
    """Draw a base64url salt from the OS CSPRNG, avoiding any in ``used``."""
    while True:
        salt = b64url_encode(secrets.token_bytes(SALT_BYTES))
        if used is None or salt not in used:
            return salt


def generate_disclosures(claims: dict) -> DisclosureBatch:
    """Create a salted disclosure for every claim except the reserved ``id``.

    Args:
        claims: Flat mapping of claim name to JSON value.

    Returns:
        DisclosureBatch whose ``disclosures`` and ``encoded`` follow the
        iteration order of ``claims``. Verifiers must treat ``digests`` as a
        set.
    """
    batch = DisclosureBatch()
    used_salts: set[str] = set()

    for name, value in claims.items():
        if name == RESERVED_CLAIM:
            continue
        salt = generate_salt(used_salts)
        used_salts.add(salt)

        disclosure = Disclosure(salt, name, value)
        batch.disclosures.append(disclosure)
        batch.encoded.append(disclosure.encode())
        batch.digests.append(disclosure.digest())

    if len(set(batch.digests)) != len(batch.digests):
        # Distinct salts make this unreachable short of a SHA-256 collision
        raise RuntimeError("Duplicate disclosure digests generated")

    return batch


def decode_disclosure(segment: str) -> DecodedDisclosure:
    """Decode one ``~``-separated segment without raising."""
    try:
        serialized = b64url_decode(segment)
        disclosure = Disclosure.from_list(json.loads(serialized))
    except DecodingError as e:
        logger.warning("Could not decode disclosure: %s", e.message)
        return DecodedDisclosure(raw=segment, error=e.message)
    # ValueError covers JSONDecodeError and oversized integer literals;
    # RecursionError comes from deeply nested arrays
    except (ValueError, UnicodeDecodeError, RecursionError) as e:
        logger.warning("Could not parse disclosure JSON: %s", e)
        return DecodedDisclosure(raw=segment, error=f"Invalid disclosure JSON: {e}")
    return DecodedDisclosure(raw=segment, disclosure=disclosure, serialized=serialized)


def decode_disclosures(segments: list[str]) -> list[DecodedDisclosure]:
    return [decode_disclosure(s) for s in segments]
