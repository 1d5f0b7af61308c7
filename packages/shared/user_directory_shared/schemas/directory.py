"""
Directory schemas shared between the server and its clients.

Covers: the index-resident directory document, the relational membership /
invite records it is enriched from, and the typed org/team views attached to
each search hit.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .common import InviteStatus, Role, TeamRole


class CamelModel(BaseModel):
    """Base for wire shapes: snake_case attributes, camelCase JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Index document
# ---------------------------------------------------------------------------

class DirectoryDocument(CamelModel):
    """Denormalized projection of one user, stored in the search index under the user id."""
    id: int
    name: Optional[str] = None
    email: str
    created_at: datetime
    organization_ids: list[int] = Field(default_factory=list)
    organization_names: list[str] = Field(default_factory=list)
    team_ids: list[int] = Field(default_factory=list)
    team_names: list[str] = Field(default_factory=list)

    def to_index(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Relational records (read-only rows used for enrichment)
# ---------------------------------------------------------------------------

class MembershipRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    organization_id: int
    role: Role
    organization_name: str


class TeamMembershipRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    team_id: int
    role: TeamRole
    organization_id: int
    team_name: str


class InviteRecord(BaseModel):
    """An invite addressed to a known user. ``team_id`` is None for org-scope invites."""
    model_config = ConfigDict(frozen=True)

    invited_user_id: int
    organization_id: int
    team_id: Optional[int] = None
    status: InviteStatus
    organization_name: Optional[str] = None
    team_name: Optional[str] = None

    @property
    def is_org_scope(self) -> bool:
        return self.team_id is None


# ---------------------------------------------------------------------------
# Enriched views
# ---------------------------------------------------------------------------

class OrgMembershipView(CamelModel):
    org_id: int
    name: str
    role: Optional[Role] = None
    organization_invite_status: Optional[InviteStatus] = None


class TeamMembershipView(CamelModel):
    team_id: int
    name: str
    role: Optional[TeamRole] = None
    org_id: int
    team_invite_status: Optional[InviteStatus] = None


class EnrichedUser(DirectoryDocument):
    orgs: list[OrgMembershipView] = Field(default_factory=list)
    teams: list[TeamMembershipView] = Field(default_factory=list)
