"""Combined SD-JWT wire format: ``<issuer-jwt>~<disclosure>~<disclosure>...``.

Parsing never raises on bad segments. A token whose header or payload cannot
be decoded comes back in *manual mode*: whatever could be recovered plus
``{"error": ...}`` placeholders, so a caller can still show the raw parts.
"""

import json
import logging
import re
from dataclasses import dataclass

from sdcred.codec import b64url_decode
from sdcred.config import SD_JWT_SEPARATOR
from sdcred.exceptions import DecodingError, MalformedTokenError

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s")
_NON_JWT = re.compile(r"[^A-Za-z0-9_\-.]")


@dataclass(frozen=True)
class ParsedJwt:
    """Decoded issuer JWT.

    ``segments`` are the raw base64url header, payload and signature as they
    appeared on the wire; signature verification runs over them, never over
    a re-encoding.
    """

    header: dict
    payload: dict
    segments: tuple[str, ...] = ()
    manual_mode: bool = False
    error: str | None = None

    @property
    def compact(self) -> str:
        return ".".join(self.segments)


def serialize(token: str, encoded_disclosures: list[str]) -> str:
    """Join the issuer JWT and disclosures with ``~``."""
    return SD_JWT_SEPARATOR.join([token, *encoded_disclosures])


def _clean(sd_jwt: str) -> str:
    # Transports may wrap long tokens across lines
    return _WHITESPACE.sub("", sd_jwt)


def raw_token(sd_jwt: str) -> str:
    """The first ``~``-separated segment, whitespace removed, not validated."""
    return _clean(sd_jwt).split(SD_JWT_SEPARATOR)[0]


def extract_token(sd_jwt: str) -> str:
    """Return the issuer JWT part of a combined SD-JWT.

    Raises:
        MalformedTokenError: If the token does not have three segments, even
            after stripping characters outside ``[A-Za-z0-9_-.]``.
    """
    token = raw_token(sd_jwt)
    if len(token.split(".")) == 3 and not _NON_JWT.search(token):
        return token

    normalized = _NON_JWT.sub("", token)
    parts = normalized.split(".")
    if len(parts) == 3:
        logger.info("Normalized JWT by stripping invalid characters")
        return normalized

    raise MalformedTokenError.wrong_segment_count(len(parts))


def split_disclosures(sd_jwt: str) -> list[str]:
    """All ``~``-separated segments after the issuer JWT.

    A trailing ``~`` (as used by IETF SD-JWT) yields no empty disclosure.
    """
    segments = _clean(sd_jwt).split(SD_JWT_SEPARATOR)[1:]
    if segments and segments[-1] == "":
        segments.pop()
    return segments


def _decode_json_segment(segment: str, label: str) -> tuple[dict | None, str | None]:
    """Decode a JWT segment to a JSON object, returning ``(value, error)``."""
    if not segment:
        return None, f"Invalid JWT format: missing {label}"
    try:
        value = json.loads(b64url_decode(segment))
    except DecodingError as e:
        return None, f"Failed to parse JWT {label}: {e.message}"
    except (ValueError, UnicodeDecodeError, RecursionError) as e:
        return None, f"Failed to parse JWT {label}: {e}"
    if not isinstance(value, dict):
        return None, f"Failed to parse JWT {label}: not a JSON object"
    return value, None


def parse_jwt_parts(token: str) -> ParsedJwt:
    """Decode the header and payload of a compact JWT without raising."""
    parts = token.split(".")
    if len(parts) != 3:
        error = (
            "Invalid JWT format: must have header, payload, and signature parts"
        )
        logger.warning("JWT parsing failed, entering manual mode: %s", error)
        return ParsedJwt(
            header={"error": "Could not parse header"},
            payload={"error": "Could not parse payload"},
            segments=tuple(parts),
            manual_mode=True,
            error=error,
        )

    header, header_error = _decode_json_segment(parts[0], "header")
    payload, payload_error = _decode_json_segment(parts[1], "payload")
    error = header_error or payload_error
    if error:
        logger.warning("JWT parsing failed, entering manual mode: %s", error)

    if header is None:
        header = {"error": "Could not parse header"}
    if payload is None:
        payload = {"error": "Could not parse payload"}

    return ParsedJwt(
        header=header,
        payload=payload,
        segments=tuple(parts),
        manual_mode=error is not None,
        error=error,
    )
