"""User schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class UserProfile(BaseModel):
    """Profile returned by the identity-profile API on first contact."""

    external_auth_id: str
    display_name: str = ""
    picture_url: str = ""


class UserRead(BaseModel):
    id: UUID
    external_auth_id: str
    display_name: str
    picture_url: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
