"""Type definitions for key material and DID token claims."""

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, model_validator

# NaN and Infinity have no JSON encoding
ExtensionValue = str | int | FiniteFloat | bool


class KeyPair(BaseModel):
    """An RSA keypair for DID token signing."""

    model_config = ConfigDict(frozen=True)

    private_key_pem: str = Field(repr=False)
    public_key_pem: str


class ClaimSet(BaseModel):
    """Caller-supplied claims for DID token creation."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    subject: str
    issuer: str | None = None
    extensions: dict[str, ExtensionValue] = Field(default_factory=dict)


class TokenClaims(ClaimSet):
    """Decoded and verified DID token claims."""

    audience: str
    issued_at: int
    expires_at: int

    @model_validator(mode="after")
    def _check_lifetime(self) -> "TokenClaims":
        if self.expires_at <= self.issued_at:
            raise ValueError("expires_at must be later than issued_at")
        return self
