"""
Batch reads of users, memberships and invites.

Every query opens its own session so callers can fan reads out concurrently
(an AsyncSession must not be shared between concurrent tasks).
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Callable, Optional

import structlog
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from app.core.errors import DirectoryUnavailableError
from app.models.invite import Invite
from app.models.organization import Organization, Team
from app.models.user import User
from app.models.user_org import TeamMember, UserOrganization
from user_directory_shared.schemas.common import InviteStatus, Role, TeamRole
from user_directory_shared.schemas.directory import (
    InviteRecord,
    MembershipRecord,
    TeamMembershipRecord,
)

log = structlog.get_logger()


class DirectoryStore:
    """Read side of the relational source of truth."""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except (OperationalError, OSError) as exc:
            # asyncpg reports refused or timed-out connects as bare OSError.
            log.error("directory.unavailable", error=str(exc))
            raise DirectoryUnavailableError(
                "Relational directory store is unavailable", cause=exc
            ) from exc

    async def find_user(self, user_id: int) -> Optional[User]:
        async with self._session() as session:
            return await session.get(User, user_id)

    async def list_user_ids(self) -> list[int]:
        async with self._session() as session:
            result = await session.execute(select(User.id).order_by(User.id))
            return list(result.scalars().all())

    async def find_memberships_by_user_ids(
        self, user_ids: Sequence[int]
    ) -> list[MembershipRecord]:
        """Organization memberships (with org name) for every user in the batch."""
        if not user_ids:
            return []
        async with self._session() as session:
            result = await session.execute(
                select(
                    UserOrganization.user_id,
                    UserOrganization.organization_id,
                    UserOrganization.role,
                    Organization.name,
                )
                .join(Organization, Organization.id == UserOrganization.organization_id)
                .where(col(UserOrganization.user_id).in_(list(user_ids)))
                .order_by(UserOrganization.user_id, UserOrganization.organization_id)
            )
            return [
                MembershipRecord(
                    user_id=user_id,
                    organization_id=org_id,
                    role=Role(role),
                    organization_name=org_name,
                )
                for user_id, org_id, role, org_name in result.all()
            ]

    async def find_team_memberships_by_user_ids(
        self, user_ids: Sequence[int]
    ) -> list[TeamMembershipRecord]:
        """Team memberships (with team name and owning org) for every user in the batch."""
        if not user_ids:
            return []
        async with self._session() as session:
            result = await session.execute(
                select(
                    TeamMember.user_id,
                    TeamMember.team_id,
                    TeamMember.role,
                    Team.organization_id,
                    Team.name,
                )
                .join(Team, Team.id == TeamMember.team_id)
                .where(col(TeamMember.user_id).in_(list(user_ids)))
                .order_by(TeamMember.user_id, TeamMember.team_id)
            )
            return [
                TeamMembershipRecord(
                    user_id=user_id,
                    team_id=team_id,
                    role=TeamRole(role),
                    organization_id=org_id,
                    team_name=team_name,
                )
                for user_id, team_id, role, org_id, team_name in result.all()
            ]

    async def find_invites(
        self,
        *,
        status: Optional[InviteStatus] = None,
        user_ids: Optional[Sequence[int]] = None,
    ) -> list[InviteRecord]:
        """Invites addressed to known users, most recent first.

        ``status`` narrows to one invite status; ``user_ids`` narrows to the
        given invitees (an empty sequence matches nothing).
        """
        if user_ids is not None and not user_ids:
            return []
        stmt = select(Invite).where(col(Invite.invited_user_id).is_not(None))
        if status is not None:
            stmt = stmt.where(Invite.status == status.value)
        if user_ids is not None:
            stmt = stmt.where(col(Invite.invited_user_id).in_(list(user_ids)))
        stmt = stmt.order_by(col(Invite.created_at).desc(), col(Invite.id).desc())

        async with self._session() as session:
            result = await session.execute(stmt)
            return [
                InviteRecord(
                    invited_user_id=invite.invited_user_id,
                    organization_id=invite.organization_id,
                    team_id=invite.team_id,
                    status=InviteStatus(invite.status),
                    organization_name=invite.organization_name,
                    team_name=invite.team_name,
                )
                for invite in result.scalars().all()
            ]
