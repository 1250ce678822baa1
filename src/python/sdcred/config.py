"""sdcred configuration constants.

Constants are organized into:
- NORMATIVE: Fixed by the credential format, not meant to be changed
- POLICY: Issuer-side choices with sensible defaults
- OPERATIONAL: Deployment-specific settings (env vars)
"""

import os

# =============================================================================
# NORMATIVE CONSTANTS
# =============================================================================

# The only JWS algorithm this package signs or verifies
SUPPORTED_ALGORITHM: str = "RS256"

# Digest algorithm advertised in credentialSubject._sd_alg
SD_ALG: str = "sha-256"

# Separator between the issuer JWT and each encoded disclosure
SD_JWT_SEPARATOR: str = "~"

# Claim that identifies the subject and is never selectively disclosed
RESERVED_CLAIM: str = "id"

# =============================================================================
# POLICY CONSTANTS
# =============================================================================

# credentialSubject child whose entries are replaced by _sd digests
DISCLOSURE_CONTAINER: str = "subjectMetaData"

# Fragment appended to the issuer id to form the JOSE kid
KEY_ID_FRAGMENT: str = "key-1"

# Bytes of randomness per disclosure salt (never fewer than 8)
SALT_BYTES: int = max(8, int(os.getenv("SDCRED_SALT_BYTES", "16")))

# Issued credentials are valid for one year unless overridden
CREDENTIAL_VALIDITY_SECONDS: int = int(
    os.getenv("SDCRED_CREDENTIAL_VALIDITY_SECONDS", str(365 * 24 * 60 * 60))
)

# RSA parameters for freshly generated issuer keys
RSA_KEY_SIZE: int = 2048
RSA_PUBLIC_EXPONENT: int = 65537

# =============================================================================
# OPERATIONAL CONFIGURATION
# =============================================================================

# Directory holding private.pem / public.pem
KEY_DIR: str = os.getenv("SDCRED_KEY_DIR", "keys")

# Root log level for the CLI entry points
LOG_LEVEL: str = os.getenv("SDCRED_LOG_LEVEL", "INFO").upper()
