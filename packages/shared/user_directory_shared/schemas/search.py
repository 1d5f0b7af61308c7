"""User search request/response schemas."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from .common import InviteStatus
from .directory import CamelModel, EnrichedUser

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class SortBy(str, Enum):
    CREATED_AT = "createdAt"
    NAME = "name"
    EMAIL = "email"
    MOST_RELEVANT = "mostRelevant"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class UserSearchRequest(CamelModel):
    """Search criteria for one page of the user directory."""
    model_config = ConfigDict(frozen=True)

    q: Optional[str] = None
    sort_by: SortBy = SortBy.CREATED_AT
    order: SortOrder = SortOrder.DESC
    take: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    invite_status: Optional[InviteStatus] = None
    organization_name: Optional[str] = None
    team_name: Optional[str] = None
    next_cursor: Optional[str] = None

    @field_validator("q", "organization_name", "team_name", "next_cursor", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @model_validator(mode="after")
    def _relevance_needs_text(self) -> "UserSearchRequest":
        if self.sort_by == SortBy.MOST_RELEVANT and not self.q:
            raise ValueError("sortBy=mostRelevant requires a non-empty q")
        return self

    @property
    def ranks_by_relevance(self) -> bool:
        return self.sort_by == SortBy.MOST_RELEVANT and bool(self.q)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserSearchResponse(CamelModel):
    """One page of enriched users plus the cursor for the next page."""
    users: List[EnrichedUser] = Field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False
    total: int = 0

    @classmethod
    def empty(cls) -> "UserSearchResponse":
        return cls(users=[], next_cursor=None, has_more=False, total=0)
