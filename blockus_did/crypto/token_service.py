"""DID token creation and verification using RS256."""

import json
import logging
import re
import time
from collections.abc import Callable
from typing import Any

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.types import Options
from jwt.utils import base64url_decode
from pydantic import ValidationError

from blockus_did.crypto.errors import (
    AudienceMismatchError,
    InvalidSignatureError,
    IssuerMismatchError,
    MalformedTokenError,
    SigningError,
    TokenExpiredError,
    TokenNotYetValidError,
    UnsupportedAlgorithmError,
    VerificationError,
)
from blockus_did.crypto.outcome import Outcome
from blockus_did.crypto.types import ClaimSet, TokenClaims

logger = logging.getLogger(__name__)

ALGORITHM = "RS256"
AUDIENCE = "blockus"
DEFAULT_TTL = 3600
REGISTERED_CLAIMS = frozenset({"sub", "iss", "aud", "iat", "exp"})

_SEGMENT_RE = re.compile(r"[A-Za-z0-9_-]*")

# Claims are checked in a fixed order after the signature, so PyJWT only
# verifies the signature.
_SIGNATURE_ONLY: Options = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
}


def normalize_claims(
    claims: ClaimSet,
    *,
    issued_at: int,
    expires_at: int,
    issuer: str | None = None,
) -> dict[str, Any]:
    """Build the token payload from caller claims.

    Registered claim names are dropped from the extensions, the audience is
    always ``AUDIENCE`` and the claim-level issuer wins over ``issuer``.
    """
    dropped = REGISTERED_CLAIMS.intersection(claims.extensions)
    if dropped:
        logger.debug("Discarding reserved extension claims: %s", sorted(dropped))
    payload: dict[str, Any] = {
        k: v for k, v in claims.extensions.items() if k not in REGISTERED_CLAIMS
    }
    payload["sub"] = claims.subject
    effective_issuer = claims.issuer or issuer
    if effective_issuer is not None:
        payload["iss"] = effective_issuer
    payload["aud"] = AUDIENCE
    payload["iat"] = issued_at
    payload["exp"] = expires_at
    return payload


def _decode_segment(segment: str) -> bytes:
    if not _SEGMENT_RE.fullmatch(segment) or len(segment) % 4 == 1:
        raise MalformedTokenError("Token segment is not valid base64url")
    return base64url_decode(segment)


def _decode_header(segment: str) -> dict[str, Any]:
    try:
        header = json.loads(_decode_segment(segment))
    except ValueError as exc:
        raise MalformedTokenError("Token header is not valid JSON") from exc
    if not isinstance(header, dict):
        raise MalformedTokenError("Token header is not a JSON object")
    return header


def _is_timestamp(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class TokenService:
    """Signs and verifies RS256 DID tokens."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def sign(
        self,
        claims: ClaimSet,
        private_key_pem: str,
        expires_in_seconds: int = DEFAULT_TTL,
        issuer: str | None = None,
    ) -> str:
        """Create a signed RS256 DID token."""
        if (
            not isinstance(expires_in_seconds, int)
            or isinstance(expires_in_seconds, bool)
            or expires_in_seconds <= 0
        ):
            raise SigningError("expires_in_seconds must be a positive integer")
        try:
            key = serialization.load_pem_private_key(
                private_key_pem.encode(), password=None
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise SigningError("Signing key is not a valid PEM private key") from exc
        if not isinstance(key, rsa.RSAPrivateKey):
            raise SigningError("Signing key is not an RSA private key")

        issued_at = int(self._clock())
        payload = normalize_claims(
            claims,
            issued_at=issued_at,
            expires_at=issued_at + expires_in_seconds,
            issuer=issuer,
        )
        return jwt.encode(payload, key, algorithm=ALGORITHM)

    def verify(
        self,
        token: str,
        public_key_pem: str,
        expected_issuer: str | None = None,
    ) -> TokenClaims:
        """Verify and decode an RS256 DID token.

        Checks run in order and stop at the first failure: structure,
        algorithm, signature, lifetime, audience, then issuer when
        ``expected_issuer`` is given.
        """
        try:
            return self._verify(token, public_key_pem, expected_issuer)
        except VerificationError as exc:
            logger.debug("Token rejected: %s", exc.kind)
            raise

    def try_verify(
        self,
        token: str,
        public_key_pem: str,
        expected_issuer: str | None = None,
    ) -> Outcome[TokenClaims]:
        """Verify a token, reporting rejection as a value instead of raising."""
        try:
            claims = self.verify(token, public_key_pem, expected_issuer)
        except VerificationError as exc:
            return Outcome[TokenClaims].failure(exc)
        return Outcome[TokenClaims].success(claims)

    def _verify(
        self,
        token: str,
        public_key_pem: str,
        expected_issuer: str | None,
    ) -> TokenClaims:
        if not isinstance(token, str):
            raise MalformedTokenError("Token must be a string")
        segments = token.split(".")
        if len(segments) != 3:
            raise MalformedTokenError("Token must have three segments")
        header_b64, payload_b64, signature_b64 = segments
        if not header_b64 or not payload_b64:
            raise MalformedTokenError("Token header and payload must not be empty")
        header = _decode_header(header_b64)
        _decode_segment(payload_b64)
        _decode_segment(signature_b64)

        if header.get("alg") != ALGORITHM:
            raise UnsupportedAlgorithmError(f"Token algorithm must be {ALGORITHM}")

        try:
            key = serialization.load_pem_public_key(public_key_pem.encode())
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise InvalidSignatureError(
                "Verification key is not a PEM public key"
            ) from exc
        if not isinstance(key, rsa.RSAPublicKey):
            raise InvalidSignatureError("Verification key is not an RSA public key")
        try:
            payload = jwt.decode(
                token, key, algorithms=[ALGORITHM], options=_SIGNATURE_ONLY
            )
        except jwt.InvalidSignatureError as exc:
            raise InvalidSignatureError("Signature verification failed") from exc
        except jwt.PyJWTError as exc:
            raise MalformedTokenError("Token could not be decoded") from exc

        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        if not _is_timestamp(issued_at) or not _is_timestamp(expires_at):
            raise MalformedTokenError("Token iat and exp must be integers")
        now = int(self._clock())
        if now >= expires_at:
            raise TokenExpiredError("Token has expired")
        if now < issued_at:
            raise TokenNotYetValidError("Token was issued in the future")

        if payload.get("aud") != AUDIENCE:
            raise AudienceMismatchError("Token audience does not match")
        if expected_issuer and payload.get("iss") != expected_issuer:
            raise IssuerMismatchError("Token issuer does not match")

        try:
            return TokenClaims(
                subject=payload.get("sub"),
                issuer=payload.get("iss"),
                audience=payload["aud"],
                issued_at=issued_at,
                expires_at=expires_at,
                extensions={
                    k: v for k, v in payload.items() if k not in REGISTERED_CLAIMS
                },
            )
        except ValidationError as exc:
            raise MalformedTokenError("Token claims have unexpected types") from exc


_default_service = TokenService()


def sign_token(
    claims: ClaimSet,
    private_key_pem: str,
    expires_in_seconds: int = DEFAULT_TTL,
    issuer: str | None = None,
) -> str:
    """Sign with the wall-clock ``TokenService``."""
    return _default_service.sign(claims, private_key_pem, expires_in_seconds, issuer)


def verify_token(
    token: str,
    public_key_pem: str,
    expected_issuer: str | None = None,
) -> TokenClaims:
    """Verify with the wall-clock ``TokenService``."""
    return _default_service.verify(token, public_key_pem, expected_issuer)
