"""Verify combined SD-JWT credentials and report on every check.

Verification never raises on bad input. Each stage appends one entry to the
report, failing or not, so a caller always learns *why* a token was
rejected. The only early exit is manual mode: when the issuer JWT cannot be
decoded there is nothing meaningful left to check.

Stages, in order: JWT Format, Signature, Expiration, Issuance Date,
SD-JWT Structure, Disclosures.

CLI Usage:
    python -m sdcred.verifier --help
    python -m sdcred.verifier verify --sd-jwt token.txt --public-key public.pem
"""

import argparse
import json
import logging
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from joserfc import jws
from joserfc.errors import BadSignatureError, JoseError
from sdcred._crypto import import_public_key
from sdcred.config import SUPPORTED_ALGORITHM
from sdcred.disclosure import DecodedDisclosure, decode_disclosures
from sdcred.exceptions import (
    KeyImportError,
    MalformedTokenError,
    UnsupportedAlgorithmError,
)
from sdcred.wire import (
    ParsedJwt,
    extract_token,
    parse_jwt_parts,
    raw_token,
    split_disclosures,
)

logger = logging.getLogger(__name__)

FORMAT_CHECK = "JWT Format"
SIGNATURE_CHECK = "Signature"
EXPIRATION_CHECK = "Expiration"
ISSUANCE_CHECK = "Issuance Date"
STRUCTURE_CHECK = "SD-JWT Structure"
DISCLOSURES_CHECK = "Disclosures"


class CheckStatus(Enum):
    """Outcome of one check. SKIPPED never counts against the overall result."""

    VERIFIED = True
    FAILED = False
    SKIPPED = None


@dataclass(frozen=True)
class CheckResult:
    name: str
    status: CheckStatus
    message: str

    def to_dict(self) -> dict:
        return {"name": self.name, "status": self.status.value, "message": self.message}


@dataclass(frozen=True)
class DisclosureResult:
    """Verification outcome for a single disclosure segment."""

    claim_name: str | None
    claim_value: Any
    verified: bool
    message: str
    raw: str

    def to_dict(self) -> dict:
        return {
            "claimName": self.claim_name,
            "claimValue": self.claim_value,
            "verified": self.verified,
            "message": self.message,
        }


@dataclass(frozen=True)
class VerificationReport:
    """Itemized result of :func:`verify_sd_jwt_vc`.

    Attributes:
        checks: One entry per stage that ran, in pipeline order.
        overall: AND over all checks that are not SKIPPED.
        disclosures: Per-disclosure results, in input order.
        header: Decoded JOSE header (``{"error": ...}`` when undecodable).
        payload: Decoded payload (``{"error": ...}`` when undecodable).
        manual_mode: True when the token could not be parsed as a JWT.
    """

    checks: tuple[CheckResult, ...]
    overall: bool
    disclosures: tuple[DisclosureResult, ...] = ()
    header: dict = field(default_factory=dict)
    payload: dict = field(default_factory=dict)
    manual_mode: bool = False

    def check(self, name: str) -> CheckResult | None:
        for result in self.checks:
            if result.name == name:
                return result
        return None

    def disclosed_claims(self) -> dict:
        """Claims revealed by disclosures whose digests matched."""
        return {d.claim_name: d.claim_value for d in self.disclosures if d.verified}

    def to_dict(self) -> dict:
        return {
            "overall": self.overall,
            "manualMode": self.manual_mode,
            "checks": [c.to_dict() for c in self.checks],
            "disclosures": [d.to_dict() for d in self.disclosures],
            "header": self.header,
            "payload": self.payload,
        }


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def _format_epoch(value: float) -> str:
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return str(value)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_iso8601(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing ``Z`` and naive values mean UTC."""
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def check_format(parsed: ParsedJwt) -> CheckResult:
    if parsed.manual_mode:
        return CheckResult(
            FORMAT_CHECK,
            CheckStatus.FAILED,
            "Invalid JWT format - displaying token in fallback mode"
            + (f" ({parsed.error})" if parsed.error else ""),
        )
    return CheckResult(FORMAT_CHECK, CheckStatus.VERIFIED, "Valid JWT format")


def check_signature(
    parsed: ParsedJwt,
    public_key_pem: str | None,
    *,
    skip: bool = False,
) -> CheckResult:
    """RS256 signature over the header and payload segments as transmitted."""
    if skip:
        return CheckResult(
            SIGNATURE_CHECK, CheckStatus.SKIPPED, "Signature verification skipped"
        )

    if not public_key_pem or not public_key_pem.strip():
        return CheckResult(
            SIGNATURE_CHECK,
            CheckStatus.SKIPPED,
            "No public key provided for signature verification",
        )

    alg = parsed.header.get("alg")
    if alg != SUPPORTED_ALGORITHM:
        error = UnsupportedAlgorithmError.for_alg(alg)
        logger.info("Rejected token signed with %r", alg)
        return CheckResult(SIGNATURE_CHECK, CheckStatus.FAILED, error.message)

    try:
        key = import_public_key(public_key_pem)
    except KeyImportError as e:
        return CheckResult(
            SIGNATURE_CHECK,
            CheckStatus.FAILED,
            f"Error importing public key: {e.message}",
        )

    try:
        jws.deserialize_compact(parsed.compact, key, algorithms=[SUPPORTED_ALGORITHM])
    except BadSignatureError:
        logger.info("Signature verification failed")
        return CheckResult(
            SIGNATURE_CHECK,
            CheckStatus.FAILED,
            "Signature verification failed - invalid signature",
        )
    except (JoseError, ValueError) as e:
        logger.info("Signature verification error: %s", e)
        return CheckResult(
            SIGNATURE_CHECK, CheckStatus.FAILED, f"Signature verification error: {e}"
        )

    return CheckResult(
        SIGNATURE_CHECK, CheckStatus.VERIFIED, "Signature verified successfully"
    )


def check_expiration(payload: dict, now: float) -> CheckResult:
    exp = payload.get("exp")
    if not exp:
        return CheckResult(EXPIRATION_CHECK, CheckStatus.VERIFIED, "No expiration set")
    if not _is_number(exp):
        return CheckResult(
            EXPIRATION_CHECK, CheckStatus.FAILED, f"Invalid exp claim: {exp!r}"
        )
    if exp > now:
        return CheckResult(
            EXPIRATION_CHECK,
            CheckStatus.VERIFIED,
            f"Valid until {_format_epoch(exp)}",
        )
    return CheckResult(
        EXPIRATION_CHECK, CheckStatus.FAILED, f"Expired on {_format_epoch(exp)}"
    )


def check_issuance_date(payload: dict, now: float) -> CheckResult:
    """``issuanceDate`` (ISO-8601) takes precedence over ``iat`` (epoch)."""
    issuance_date = payload.get("issuanceDate")
    if issuance_date:
        try:
            issued = _parse_iso8601(str(issuance_date))
        except ValueError:
            return CheckResult(
                ISSUANCE_CHECK,
                CheckStatus.FAILED,
                f"Invalid issuance date: {issuance_date!r}",
            )
        if issued.timestamp() <= now:
            return CheckResult(
                ISSUANCE_CHECK, CheckStatus.VERIFIED, f"Issued on {issued.isoformat()}"
            )
        return CheckResult(
            ISSUANCE_CHECK,
            CheckStatus.FAILED,
            f"Invalid: issued in the future ({issued.isoformat()})",
        )

    iat = payload.get("iat")
    if iat:
        if not _is_number(iat):
            return CheckResult(
                ISSUANCE_CHECK, CheckStatus.FAILED, f"Invalid iat claim: {iat!r}"
            )
        if iat <= now:
            return CheckResult(
                ISSUANCE_CHECK, CheckStatus.VERIFIED, f"Issued on {_format_epoch(iat)}"
            )
        return CheckResult(
            ISSUANCE_CHECK,
            CheckStatus.FAILED,
            f"Invalid: issued in the future ({_format_epoch(iat)})",
        )

    return CheckResult(ISSUANCE_CHECK, CheckStatus.VERIFIED, "No issuance date set")


def _credential_subject(payload: dict) -> dict:
    subject = payload.get("credentialSubject")
    return subject if isinstance(subject, dict) else {}


def check_structure(payload: dict) -> CheckResult:
    if isinstance(_credential_subject(payload).get("_sd"), list):
        return CheckResult(STRUCTURE_CHECK, CheckStatus.VERIFIED, "Valid _sd array found")
    return CheckResult(
        STRUCTURE_CHECK, CheckStatus.FAILED, "Missing or invalid _sd array"
    )


def verify_disclosures(
    decoded: list[DecodedDisclosure], sd_digests: list
) -> list[DisclosureResult]:
    """Recompute each disclosure's digest and look it up in ``_sd``."""
    digests = {d for d in sd_digests if isinstance(d, str)}
    results = []

    for item in decoded:
        if not item.ok:
            results.append(
                DisclosureResult(
                    claim_name=None,
                    claim_value=None,
                    verified=False,
                    message=f"Invalid disclosure format: {item.error}",
                    raw=item.raw,
                )
            )
            continue

        verified = item.digest() in digests
        results.append(
            DisclosureResult(
                claim_name=item.disclosure.claim_name,
                claim_value=item.disclosure.claim_value,
                verified=verified,
                message="Verified - hash matches _sd array"
                if verified
                else "Not verified - hash not found in _sd array",
                raw=item.raw,
            )
        )

    return results


def check_disclosures(results: list[DisclosureResult]) -> CheckResult:
    if all(r.verified for r in results):
        return CheckResult(
            DISCLOSURES_CHECK, CheckStatus.VERIFIED, "All disclosures verified"
        )
    failed = sum(1 for r in results if not r.verified)
    return CheckResult(
        DISCLOSURES_CHECK,
        CheckStatus.FAILED,
        f"{failed} of {len(results)} disclosures failed verification",
    )


def overall_status(checks) -> bool:
    """AND over every check that produced a definitive result."""
    return all(c.status.value for c in checks if c.status is not CheckStatus.SKIPPED)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def verify_sd_jwt_vc(
    sd_jwt: str,
    public_key_pem: str | None = None,
    *,
    skip_signature: bool = False,
    now: float | None = None,
) -> VerificationReport:
    """Verify a combined SD-JWT and return an itemized report.

    Args:
        sd_jwt: ``<jwt>~<disclosure>~...``; whitespace anywhere is ignored.
        public_key_pem: Issuer's RSA public key (SPKI PEM). Without it the
            signature check is SKIPPED rather than FAILED.
        skip_signature: Mark the signature check SKIPPED even when a key is
            given, so the overall result reflects only the other checks.
        now: Reference time (epoch seconds) for temporal checks.

    Returns:
        VerificationReport. Never raises on malformed input.
    """
    now = time.time() if now is None else now

    try:
        token = extract_token(sd_jwt)
    except MalformedTokenError as e:
        logger.warning("%s", e.message)
        token = raw_token(sd_jwt)

    parsed = parse_jwt_parts(token)
    checks = [check_format(parsed)]

    if parsed.manual_mode:
        return VerificationReport(
            checks=tuple(checks),
            overall=False,
            header=parsed.header,
            payload=parsed.payload,
            manual_mode=True,
        )

    payload = parsed.payload
    checks.append(check_signature(parsed, public_key_pem, skip=skip_signature))
    checks.append(check_expiration(payload, now))
    checks.append(check_issuance_date(payload, now))

    structure = check_structure(payload)
    checks.append(structure)

    disclosure_results: list[DisclosureResult] = []
    segments = split_disclosures(sd_jwt)
    if structure.status is CheckStatus.VERIFIED and segments:
        sd_digests = _credential_subject(payload)["_sd"]
        disclosure_results = verify_disclosures(decode_disclosures(segments), sd_digests)
        checks.append(check_disclosures(disclosure_results))

    return VerificationReport(
        checks=tuple(checks),
        overall=overall_status(checks),
        disclosures=tuple(disclosure_results),
        header=parsed.header,
        payload=payload,
        manual_mode=False,
    )


def main():
    """CLI entry point for SD-JWT verification."""
    from sdcred.logging_config import configure_logging

    parser = argparse.ArgumentParser(
        prog="sdcred.verifier",
        description="sdcred Verifier CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m sdcred.verifier verify --sd-jwt token.txt --public-key keys/public.pem
  cat token.txt | python -m sdcred.verifier verify --sd-jwt - --skip-signature
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    verify_parser = subparsers.add_parser(
        "verify",
        help="Verify an SD-JWT and its disclosures",
        description="Run all checks and print the verification report as JSON.",
    )
    verify_parser.add_argument(
        "--sd-jwt", required=True, help="SD-JWT file or '-' for stdin"
    )
    verify_parser.add_argument("--public-key", help="Issuer public key (PEM file)")
    verify_parser.add_argument(
        "--skip-signature",
        action="store_true",
        help="Do not verify the signature; judge only the remaining checks",
    )

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    configure_logging()

    if args.command == "verify":
        if args.sd_jwt == "-":
            sd_jwt = sys.stdin.read()
        else:
            sd_jwt = Path(args.sd_jwt).read_text()

        public_key_pem = None
        if args.public_key:
            public_key_pem = Path(args.public_key).read_text()

        report = verify_sd_jwt_vc(
            sd_jwt, public_key_pem, skip_signature=args.skip_signature
        )
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
        if not report.overall:
            sys.exit(1)


if __name__ == "__main__":
    main()
