"""
Identity-profile gateway interface.

Gateways encapsulate the platform's profile API and return the normalized
UserProfile used when a user is seen for the first time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from app.schemas.user import UserProfile


class ProfileGateway(ABC):
    """Contract for profile lookups. New platforms implement this interface."""

    @abstractmethod
    async def get_profile(self, external_auth_id: str) -> UserProfile:
        """Fetch the user's profile. Raise ExternalProfileFetchFailed on any failure."""
        ...
