"""Error taxonomy for key management and token operations."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Stable identifier for each failure a caller may branch on."""

    KEY_GENERATION = "key_generation"
    KEY_PERSISTENCE = "key_persistence"
    KEY_NOT_FOUND = "key_not_found"
    KEY_FORMAT = "key_format"
    SIGNING = "signing"
    MALFORMED_TOKEN = "malformed_token"
    UNSUPPORTED_ALGORITHM = "unsupported_algorithm"
    INVALID_SIGNATURE = "invalid_signature"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_NOT_YET_VALID = "token_not_yet_valid"
    AUDIENCE_MISMATCH = "audience_mismatch"
    ISSUER_MISMATCH = "issuer_mismatch"


class DIDTokenError(Exception):
    """Base class for every key and token failure."""

    kind: ErrorKind


class KeyManagerError(DIDTokenError):
    """Failure while producing or persisting key material."""


class KeyGenerationError(KeyManagerError):
    kind = ErrorKind.KEY_GENERATION


class KeyPersistenceError(KeyManagerError):
    kind = ErrorKind.KEY_PERSISTENCE


class KeyNotFoundError(KeyManagerError):
    kind = ErrorKind.KEY_NOT_FOUND


class KeyFormatError(KeyManagerError):
    kind = ErrorKind.KEY_FORMAT


class SigningError(DIDTokenError):
    kind = ErrorKind.SIGNING


class VerificationError(DIDTokenError):
    """A token was rejected by one of the verification checks."""


class MalformedTokenError(VerificationError):
    kind = ErrorKind.MALFORMED_TOKEN


class UnsupportedAlgorithmError(VerificationError):
    kind = ErrorKind.UNSUPPORTED_ALGORITHM


class InvalidSignatureError(VerificationError):
    kind = ErrorKind.INVALID_SIGNATURE


class TokenExpiredError(VerificationError):
    kind = ErrorKind.TOKEN_EXPIRED


class TokenNotYetValidError(VerificationError):
    kind = ErrorKind.TOKEN_NOT_YET_VALID


class AudienceMismatchError(VerificationError):
    kind = ErrorKind.AUDIENCE_MISMATCH


class IssuerMismatchError(VerificationError):
    kind = ErrorKind.ISSUER_MISMATCH


ERROR_TYPES: dict[ErrorKind, type[DIDTokenError]] = {
    cls.kind: cls
    for cls in (
        KeyGenerationError,
        KeyPersistenceError,
        KeyNotFoundError,
        KeyFormatError,
        SigningError,
        MalformedTokenError,
        UnsupportedAlgorithmError,
        InvalidSignatureError,
        TokenExpiredError,
        TokenNotYetValidError,
        AudienceMismatchError,
        IssuerMismatchError,
    )
}
