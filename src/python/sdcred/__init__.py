"""sdcred - Selective-disclosure JWT credentials.

This package issues and verifies SD-JWT verifiable credentials:
- Salted disclosures and SHA-256 digest commitments
- RS256 signing with a file-backed issuer key pair
- Combined ``<jwt>~<disclosure>~...`` serialization and tolerant parsing
- Itemized verification reports (format, signature, validity, disclosures)

Usage:
    from sdcred.keys import KeyProvider
    from sdcred.sd_jwt import issue_sd_jwt_vc
    from sdcred.verifier import verify_sd_jwt_vc
"""


# Lazy imports keep ``python -m sdcred.<module>`` free of import cycles
def __getattr__(name):
    if name in ("KeyPair", "KeyProvider", "generate_rsa_keypair"):
        from sdcred import keys

        return getattr(keys, name)
    elif name in ("Disclosure", "generate_disclosures"):
        from sdcred import disclosure

        return getattr(disclosure, name)
    elif name in ("IssuedCredential", "issue_sd_jwt_vc"):
        from sdcred import sd_jwt

        return getattr(sd_jwt, name)
    elif name in ("CheckStatus", "VerificationReport", "verify_sd_jwt_vc"):
        from sdcred import verifier

        return getattr(verifier, name)
    elif name in (
        "SdCredError",
        "DecodingError",
        "MalformedTokenError",
        "UnsupportedAlgorithmError",
        "KeyImportError",
        "ValidationError",
    ):
        from sdcred import exceptions

        return getattr(exceptions, name)
    raise AttributeError(f"module 'sdcred' has no attribute {name!r}")


__all__ = [
    # Keys
    "KeyPair",
    "KeyProvider",
    "generate_rsa_keypair",
    # Disclosures
    "Disclosure",
    "generate_disclosures",
    # Issuance
    "IssuedCredential",
    "issue_sd_jwt_vc",
    # Verification
    "CheckStatus",
    "VerificationReport",
    "verify_sd_jwt_vc",
    # Errors
    "SdCredError",
    "DecodingError",
    "MalformedTokenError",
    "UnsupportedAlgorithmError",
    "KeyImportError",
    "ValidationError",
]
