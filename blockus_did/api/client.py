"""Client for exchanging a DID token for a Blockus access token."""

import logging

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from blockus_did.core.settings import HTTP_TIMEOUT_DEFAULT, BlockusSettings

logger = logging.getLogger(__name__)

LOGIN_PATH = "/v1/players/login"


class LoginRequest(BaseModel):
    """Body of the DID player login request."""

    model_config = ConfigDict(populate_by_name=True)

    did_token: str = Field(alias="didToken", repr=False)


class LoginResponse(BaseModel):
    """Access token returned by the player login endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="accessToken", repr=False)


class BlockusApiError(Exception):
    """The Blockus API could not be reached or rejected the request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BlockusApiClient:
    """Calls the Blockus player API with project credentials."""

    def __init__(
        self,
        base_url: str,
        project_id: str,
        project_key: str,
        *,
        timeout: float = HTTP_TIMEOUT_DEFAULT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._project_id = project_id
        self._project_key = project_key
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: BlockusSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "BlockusApiClient":
        """Build a client from ``BLOCKUS_*`` settings."""
        return cls(
            settings.api_url,
            settings.api_project,
            settings.api_key,
            timeout=settings.http_timeout,
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "X-PROJECT-ID": self._project_id,
            "X-PROJECT-KEY": self._project_key,
        }

    async def login_player(self, did_token: str) -> LoginResponse:
        """POST /v1/players/login?type=did -- exchange a DID token."""
        body = LoginRequest(did_token=did_token).model_dump(by_alias=True)
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    LOGIN_PATH,
                    params={"type": "did"},
                    json=body,
                    headers=self._headers(),
                )
        except httpx.TimeoutException as exc:
            raise BlockusApiError("Blockus API timed out") from exc
        except httpx.RequestError as exc:
            raise BlockusApiError("Blockus API is unreachable") from exc

        if response.is_error:
            logger.warning("Player login failed with status %s", response.status_code)
            raise BlockusApiError(
                f"Player login failed with status {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return LoginResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise BlockusApiError(
                "Player login returned an unexpected body",
                status_code=response.status_code,
            ) from exc


def build_redirect_url(template: str, access_token: str) -> str:
    """Append the access token to the configured redirect URL prefix."""
    return f"{template}{access_token}"
