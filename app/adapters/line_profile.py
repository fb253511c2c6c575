"""
LINE profile gateway.

GET {base_url}/v2/bot/profile/{userId} with the channel access token as a
bearer token. Called only on first contact with a new external id.
"""

from __future__ import annotations

from typing import Optional

import httpx
from pydantic import ValidationError

from app.adapters.base import ProfileGateway
from app.exceptions import ExternalProfileFetchFailed
from app.infra.logging_config import get_logger
from app.schemas.line_webhook import LineProfileResponse
from app.schemas.user import UserProfile

logger = get_logger("line_profile")

PROFILE_PATH = "/v2/bot/profile/{user_id}"


class LineProfileGateway(ProfileGateway):
    """Profile lookups against the LINE Messaging API."""

    def __init__(
        self,
        base_url: str,
        access_token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._timeout = timeout
        self._transport = transport

    def _get_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self._access_token}",
        }

    async def get_profile(self, external_auth_id: str) -> UserProfile:
        url = f"{self._base_url}{PROFILE_PATH.format(user_id=external_auth_id)}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.get(url, headers=self._get_headers())
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Profile API returned HTTP %d for %s",
                e.response.status_code,
                external_auth_id,
            )
            raise ExternalProfileFetchFailed(
                external_auth_id, f"HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ExternalProfileFetchFailed(external_auth_id, str(e)) from e
        except ValueError as e:
            raise ExternalProfileFetchFailed(
                external_auth_id, f"Invalid JSON: {e}"
            ) from e

        try:
            profile = LineProfileResponse.model_validate(data)
        except ValidationError as e:
            raise ExternalProfileFetchFailed(
                external_auth_id, f"Invalid profile: {e}"
            ) from e

        return UserProfile(
            external_auth_id=external_auth_id,
            display_name=profile.display_name,
            picture_url=profile.picture_url or "",
        )
