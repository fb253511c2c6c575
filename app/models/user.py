"""
User model: canonical mapping from an external auth id to an internal user id.

The unique constraint on external_auth_id is what makes concurrent
get-or-create converge on one row.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Column, String, Text, UniqueConstraint, Uuid

from app.db import Base
from app.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    """One row per distinct external (LINE) user id."""

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("external_auth_id", name="uq_users_external_auth_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    external_auth_id = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=False, default="")
    picture_url = Column(Text, nullable=False, default="")
