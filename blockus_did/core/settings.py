"""Application settings loaded from environment variables."""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TOKEN_TTL_DEFAULT = 3600
HTTP_TIMEOUT_DEFAULT = 10.0


class BlockusSettings(BaseSettings):
    """Blockus project credentials and DID token settings."""

    model_config = SettingsConfigDict(
        env_prefix="BLOCKUS_",
        env_file=".env",
        extra="ignore",
    )

    api_url: str = Field(min_length=1)
    api_key: str = Field(min_length=1, repr=False)
    api_project: str = Field(min_length=1)
    redirect_url: str = Field(min_length=1)
    iss: str = Field(min_length=1)
    key_dir: Path = Path("keys")
    token_ttl: int = Field(default=TOKEN_TTL_DEFAULT, gt=0)
    http_timeout: float = Field(default=HTTP_TIMEOUT_DEFAULT, gt=0)

    @field_validator("api_url")
    @classmethod
    def _check_api_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("BLOCKUS_API_URL must be an http(s) URL")
        return value.rstrip("/")
