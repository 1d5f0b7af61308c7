"""User mutation schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from .directory import CamelModel


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class UserCreateRequest(CamelModel):
    """Register a user in the directory."""
    email: EmailStr
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)


class InviteAcceptRequest(CamelModel):
    """Accept the pending invite addressed to this email."""
    email: EmailStr


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserResponse(CamelModel):
    id: int
    email: str
    name: Optional[str] = None
    created_at: datetime


class MessageResponse(CamelModel):
    message: str
