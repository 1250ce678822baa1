"""RSA key generation, PEM/JWK export, and the file-backed issuer key source.

CLI Usage:
    python -m sdcred.keys --help
    python -m sdcred.keys generate --key-dir keys
"""

import argparse
import base64
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric.rsa import (
    RSAPrivateKey,
    RSAPublicKey,
    generate_private_key,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)
from sdcred.config import KEY_DIR, RSA_KEY_SIZE, RSA_PUBLIC_EXPONENT

logger = logging.getLogger(__name__)

PRIVATE_KEY_FILE = "private.pem"
PUBLIC_KEY_FILE = "public.pem"
_KEY_DIR_GITIGNORE = "# Ignore all files in this directory\n*\n!.gitignore\n"


# ---------------------------------------------------------------------------
# RSA keys
# ---------------------------------------------------------------------------


def generate_rsa_keypair() -> tuple[RSAPrivateKey, RSAPublicKey]:
    """Generate a fresh RSA key pair for RS256 signing."""
    private_key = generate_private_key(
        public_exponent=RSA_PUBLIC_EXPONENT, key_size=RSA_KEY_SIZE
    )
    return private_key, private_key.public_key()


def private_key_to_pem(private_key: RSAPrivateKey) -> str:
    """Export a private key as unencrypted PKCS#8 PEM."""
    return private_key.private_bytes(
        Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()
    ).decode("ascii")


def public_key_to_pem(public_key: RSAPublicKey) -> str:
    """Export a public key as SPKI PEM."""
    return public_key.public_bytes(
        Encoding.PEM, PublicFormat.SubjectPublicKeyInfo
    ).decode("ascii")


def rsa_public_key_to_jwk(public_key: RSAPublicKey) -> dict:
    """Export an RSA public key as a JWK dict (kty=RSA)."""
    numbers = public_key.public_numbers()
    return {
        "kty": "RSA",
        "n": _b64url_uint(numbers.n),
        "e": _b64url_uint(numbers.e),
    }


def rsa_keypair_to_jwk(private_key: RSAPrivateKey) -> dict:
    """Export an RSA private key as a JWK dict including CRT parameters."""
    numbers = private_key.private_numbers()
    return {
        **rsa_public_key_to_jwk(private_key.public_key()),
        "d": _b64url_uint(numbers.d),
        "p": _b64url_uint(numbers.p),
        "q": _b64url_uint(numbers.q),
        "dp": _b64url_uint(numbers.dmp1),
        "dq": _b64url_uint(numbers.dmq1),
        "qi": _b64url_uint(numbers.iqmp),
    }


# ---------------------------------------------------------------------------
# Key source
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyPair:
    """PEM-encoded issuer key pair."""

    private_key_pem: str
    public_key_pem: str


class KeyProvider:
    """File-backed issuer key pair.

    The first call to :meth:`get_key_pair` loads ``private.pem`` and
    ``public.pem`` from ``key_dir``, generating and saving them if either is
    missing. Later calls return the same pair. Construct one per process and
    pass it to whoever signs or verifies.
    """

    def __init__(self, key_dir: str | Path = KEY_DIR):
        self.key_dir = Path(key_dir)
        self._key_pair: KeyPair | None = None

    @property
    def private_key_path(self) -> Path:
        return self.key_dir / PRIVATE_KEY_FILE

    @property
    def public_key_path(self) -> Path:
        return self.key_dir / PUBLIC_KEY_FILE

    def get_key_pair(self) -> KeyPair:
        if self._key_pair is None:
            self._key_pair = self._load_or_generate()
        return self._key_pair

    def _ensure_key_dir(self):
        self.key_dir.mkdir(parents=True, exist_ok=True)
        gitignore = self.key_dir / ".gitignore"
        if not gitignore.exists():
            gitignore.write_text(_KEY_DIR_GITIGNORE)
            logger.info("Created .gitignore in key directory %s", self.key_dir)

    def _load_or_generate(self) -> KeyPair:
        self._ensure_key_dir()

        if self.private_key_path.exists() and self.public_key_path.exists():
            logger.info("Using existing keys from %s", self.key_dir)
            return KeyPair(
                private_key_pem=self.private_key_path.read_text(),
                public_key_pem=self.public_key_path.read_text(),
            )

        logger.info("Generating new RSA key pair in %s", self.key_dir)
        private_key, public_key = generate_rsa_keypair()
        key_pair = KeyPair(
            private_key_pem=private_key_to_pem(private_key),
            public_key_pem=public_key_to_pem(public_key),
        )
        self.private_key_path.write_text(key_pair.private_key_pem)
        self.private_key_path.chmod(0o600)
        self.public_key_path.write_text(key_pair.public_key_pem)
        return key_pair


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _b64url_uint(value: int) -> str:
    """Base64url encode a big-endian unsigned integer without padding."""
    raw = value.to_bytes((value.bit_length() + 7) // 8 or 1, "big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def main():
    """CLI entry point for key operations."""
    from sdcred.logging_config import configure_logging

    parser = argparse.ArgumentParser(
        prog="sdcred.keys",
        description="sdcred Key Management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m sdcred.keys generate
  python -m sdcred.keys generate --key-dir /var/lib/sdcred/keys
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    gen_parser = subparsers.add_parser(
        "generate",
        help="Create (or reuse) the issuer RSA key pair",
        description="Ensure an RSA key pair exists in the key directory and "
        "print its public key.",
    )
    gen_parser.add_argument(
        "--key-dir",
        default=KEY_DIR,
        help=f"Key directory (default: {KEY_DIR})",
    )

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    configure_logging()

    if args.command == "generate":
        key_pair = KeyProvider(args.key_dir).get_key_pair()
        print(key_pair.public_key_pem, end="")


if __name__ == "__main__":
    main()
