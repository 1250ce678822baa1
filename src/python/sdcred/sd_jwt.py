"""SD-JWT credential issuance.

Takes a W3C-style credential template whose ``credentialSubject`` holds a
``subjectMetaData`` object, replaces that object with salted digests, signs
the result, and appends the encoded disclosures.

CLI Usage:
    python -m sdcred.sd_jwt --help
    python -m sdcred.sd_jwt issue --template credential.json
"""

import argparse
import json
import logging
import sys
import time
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from sdcred.config import (
    CREDENTIAL_VALIDITY_SECONDS,
    DISCLOSURE_CONTAINER,
    KEY_DIR,
    RESERVED_CLAIM,
    SD_ALG,
)
from sdcred.disclosure import Disclosure, generate_disclosures
from sdcred.exceptions import ValidationError
from sdcred.signer import build_header, sign_jwt
from sdcred.wire import serialize

logger = logging.getLogger(__name__)

Signer = Callable[[dict, dict, str], str]


@dataclass
class IssuedCredential:
    """Everything the issuer hands back after signing."""

    sd_jwt: str
    digests: list[str]
    digest_alg: str = SD_ALG
    disclosures: list[Disclosure] = field(default_factory=list)
    encoded_disclosures: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "_sd_jwt": self.sd_jwt,
            "_sd": list(self.digests),
            "_sd_alg": self.digest_alg,
            "disclosures": [d.to_list() for d in self.disclosures],
            "encodedDisclosures": list(self.encoded_disclosures),
        }


def _issuer_id(template: dict) -> str:
    issuer = template.get("issuer")
    if isinstance(issuer, dict):
        issuer = issuer.get("id")
    if not isinstance(issuer, str) or not issuer:
        raise ValidationError("Missing issuer id (issuer or issuer.id)")
    return issuer


def _subject_claims(template: dict) -> dict:
    subject = template.get("credentialSubject")
    if not isinstance(subject, dict):
        raise ValidationError(
            f"Missing credentialSubject.{DISCLOSURE_CONTAINER} fields"
        )
    claims = subject.get(DISCLOSURE_CONTAINER)
    if not isinstance(claims, dict) or not claims:
        raise ValidationError(
            f"Missing credentialSubject.{DISCLOSURE_CONTAINER} fields"
        )
    return claims


def issue_sd_jwt_vc(
    template: dict,
    private_key_pem: str,
    *,
    signer: Signer = sign_jwt,
    validity_seconds: int = CREDENTIAL_VALIDITY_SECONDS,
    now: int | None = None,
) -> IssuedCredential:
    """Issue an SD-JWT credential from a template.

    Args:
        template: Credential template with ``issuer`` and
            ``credentialSubject.subjectMetaData``.
        private_key_pem: Issuer's RSA private key, passed through to ``signer``.
        signer: ``(header, payload, private_key_pem) -> compact JWT``.
        validity_seconds: Lifetime expressed as the ``exp`` claim.
        now: Issuance time (epoch seconds); defaults to the current time.

    Returns:
        IssuedCredential with the combined ``<jwt>~<disclosure>~...`` string.

    Raises:
        ValidationError: If the template lacks the issuer id or the claims to
            disclose. Raised before anything is signed.
    """
    claims = _subject_claims(template)
    issuer_id = _issuer_id(template)

    batch = generate_disclosures(claims)

    payload = deepcopy(template)
    subject = payload["credentialSubject"]
    del subject[DISCLOSURE_CONTAINER]
    if RESERVED_CLAIM in claims:
        subject.setdefault(RESERVED_CLAIM, claims[RESERVED_CLAIM])
    subject["_sd"] = batch.digests
    subject["_sd_alg"] = SD_ALG

    issued_at = int(time.time()) if now is None else now
    payload["iat"] = issued_at
    payload["exp"] = issued_at + validity_seconds

    token = signer(build_header(issuer_id), payload, private_key_pem)
    logger.info(
        "Issued SD-JWT for %s with %d selectively disclosable claims",
        issuer_id,
        len(batch.digests),
    )

    return IssuedCredential(
        sd_jwt=serialize(token, batch.encoded),
        digests=batch.digests,
        digest_alg=SD_ALG,
        disclosures=batch.disclosures,
        encoded_disclosures=batch.encoded,
    )


def main():
    """CLI entry point for SD-JWT issuance."""
    from sdcred.keys import KeyProvider
    from sdcred.logging_config import configure_logging

    parser = argparse.ArgumentParser(
        prog="sdcred.sd_jwt",
        description="sdcred SD-JWT CLI - Issue selectively disclosable credentials",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Issue an SD-JWT from a credential template
  python -m sdcred.sd_jwt issue --template credential.json

  # Use a specific key directory and write the response to a file
  python -m sdcred.sd_jwt issue --template credential.json --key-dir keys -o out.json
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    issue_parser = subparsers.add_parser(
        "issue",
        help="Issue an SD-JWT credential",
        description="Replace credentialSubject.subjectMetaData with digests, "
        "sign, and print the SD-JWT with its disclosures.",
    )
    issue_parser.add_argument(
        "--template", required=True, help="JSON credential template file"
    )
    issue_parser.add_argument(
        "--key-dir", default=KEY_DIR, help=f"Key directory (default: {KEY_DIR})"
    )
    issue_parser.add_argument("--output", "-o", help="Output file (default: stdout)")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    configure_logging()

    if args.command == "issue":
        template = json.loads(Path(args.template).read_text())
        key_pair = KeyProvider(args.key_dir).get_key_pair()
        try:
            issued = issue_sd_jwt_vc(template, key_pair.private_key_pem)
        except ValidationError as e:
            print(f"Issuance failed: {e}", file=sys.stderr)
            sys.exit(1)

        output = json.dumps(issued.to_dict(), indent=2, ensure_ascii=False)
        if args.output:
            Path(args.output).write_text(output)
            print(f"SD-JWT written to {args.output}", file=sys.stderr)
        else:
            print(output)


if __name__ == "__main__":
    main()
