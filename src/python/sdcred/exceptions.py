"""sdcred exceptions.

Decode and parse errors are normally caught by the verification engine and
turned into report entries. Only issuance-time validation and private key
import errors reach the caller.
"""


class SdCredError(Exception):
    """Base class for all sdcred errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DecodingError(SdCredError):
    """Malformed base64url or JSON input."""


class UnrecoverableInputError(DecodingError):
    """Input was empty, or no 4-character group of it could be decoded."""

    @classmethod
    def empty(cls) -> "UnrecoverableInputError":
        return cls("Empty input to decode")

    @classmethod
    def no_valid_groups(cls) -> "UnrecoverableInputError":
        return cls("Invalid base64url format: failed to recover from malformed input")


class MalformedTokenError(SdCredError):
    """The issuer JWT does not have three dot-separated segments."""

    @classmethod
    def wrong_segment_count(cls, count: int) -> "MalformedTokenError":
        return cls(
            f"Invalid JWT format: expected 3 parts, got {count}"
        )


class UnsupportedAlgorithmError(SdCredError):
    """A JWS header names an algorithm other than RS256."""

    @classmethod
    def for_alg(cls, alg: object) -> "UnsupportedAlgorithmError":
        return cls(f"Algorithm {alg!r} is not supported. Only 'RS256' is supported.")


class KeyImportError(SdCredError):
    """A PEM key is missing, malformed, or not an RSA key."""


class ValidationError(SdCredError, ValueError):
    """Required issuance input is missing or has the wrong shape."""
