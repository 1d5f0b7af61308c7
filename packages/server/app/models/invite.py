"""Invite model. Organization and team names are denormalized at creation time."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, IntIDMixin


class Invite(IntIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "invites"

    email: str = Field(nullable=False, index=True)
    org_role: str = Field(nullable=False, default="MEMBER")
    team_role: Optional[str] = None
    status: str = Field(nullable=False, default="PENDING", index=True)  # PENDING | ACCEPTED | EXPIRED
    invited_user_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    organization_id: int = Field(foreign_key="organizations.id", nullable=False)
    organization_name: Optional[str] = None
    team_id: Optional[int] = Field(default=None, foreign_key="teams.id")  # None = org-scope invite
    team_name: Optional[str] = None
    accepted_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
