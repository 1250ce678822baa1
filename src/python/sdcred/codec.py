"""Base64url and canonical JSON helpers.

``b64url_decode`` is tolerant: it strips characters outside the base64url
alphabet and, when the cleaned input still does not decode, salvages every
4-character group that does. Partially corrupt tokens therefore still yield
something worth displaying.
"""

import base64
import binascii
import json
import logging
import re

from sdcred.exceptions import UnrecoverableInputError

logger = logging.getLogger(__name__)

_NON_B64URL = re.compile(r"[^A-Za-z0-9\-_]")


def b64url_encode(data: bytes | str) -> str:
    """Base64url encode without padding."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    """Base64url decode with sanitization and per-group recovery.

    Raises:
        UnrecoverableInputError: If the input is empty or no group decodes.
    """
    if not value:
        raise UnrecoverableInputError.empty()

    cleaned = _NON_B64URL.sub("", value)
    if not cleaned:
        raise UnrecoverableInputError.no_valid_groups()
    standard = cleaned.replace("-", "+").replace("_", "/")
    standard += "=" * (-len(standard) % 4)

    try:
        return base64.b64decode(standard, validate=True)
    except binascii.Error as e:
        logger.debug("Base64 decoding failed (%s), trying per-group recovery", e)

    recovered = []
    for i in range(0, len(standard), 4):
        group = standard[i : i + 4]
        try:
            recovered.append(base64.b64decode(group, validate=True))
        except binascii.Error:
            logger.warning("Skipping invalid base64 group %r", group)

    if not recovered:
        raise UnrecoverableInputError.no_valid_groups()
    return b"".join(recovered)


def canonical_json(value) -> bytes:
    """Compact, insertion-ordered UTF-8 JSON.

    This exact byte string is both hashed and base64url encoded for a
    disclosure. Do not substitute another serializer: any whitespace or
    ordering change alters the digest.
    """
    return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode(
        "utf-8"
    )
