"""
User directory mutations — user registration, invite acceptance, org departure.

Each mutation commits the relational change first and then refreshes the
user's directory document through the search service hooks. Authorization of
the caller is enforced by the calling layer, not here.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import HTTPException
from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from app.models.invite import Invite
from app.models.organization import Team
from app.models.user import User
from app.models.user_org import TeamMember, UserOrganization
from app.services.user_search import UserSearchService
from user_directory_shared.schemas.common import InviteStatus
from user_directory_shared.schemas.users import UserCreateRequest

log = structlog.get_logger()


def _user_info(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "created_at": user.created_at,
    }


async def create_user(
    req: UserCreateRequest,
    session: AsyncSession,
    search: UserSearchService,
) -> dict:
    """Register a user and index their (membership-less) directory document."""
    existing = await session.execute(select(User).where(User.email == req.email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="A user with this email already exists")

    user = User(email=req.email, name=req.name)
    session.add(user)
    await session.flush()
    info = _user_info(user)
    await session.commit()

    log.info("user.created", user_id=user.id)
    await search.index_user(user.id)
    return info


async def accept_invite(
    user_id: int,
    email: str,
    session: AsyncSession,
    search: UserSearchService,
) -> None:
    """Join the org (and team, for team invites) of the pending invite for ``email``."""
    user = await session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    result = await session.execute(
        select(Invite)
        .where(Invite.email == email, Invite.status == InviteStatus.PENDING.value)
        .order_by(col(Invite.created_at).desc(), col(Invite.id).desc())
    )
    invite = result.scalars().first()
    if not invite:
        raise HTTPException(status_code=404, detail="No pending invite found for this email")

    org_membership = await session.get(
        UserOrganization, {"user_id": user_id, "organization_id": invite.organization_id}
    )
    if not org_membership:
        session.add(
            UserOrganization(
                user_id=user_id,
                organization_id=invite.organization_id,
                role=invite.org_role,
            )
        )

    if invite.team_id and invite.team_role:
        team_membership = await session.get(
            TeamMember, {"user_id": user_id, "team_id": invite.team_id}
        )
        if not team_membership:
            session.add(
                TeamMember(user_id=user_id, team_id=invite.team_id, role=invite.team_role)
            )

    invite.status = InviteStatus.ACCEPTED.value
    invite.accepted_at = datetime.now(timezone.utc)
    invite.invited_user_id = user_id
    session.add(invite)
    await session.commit()

    log.info(
        "invite.accepted",
        user_id=user_id,
        invite_id=invite.id,
        org_id=invite.organization_id,
        team_id=invite.team_id,
    )
    await search.index_user(user_id)


async def remove_user_from_org(
    user_id: int,
    organization_id: int,
    session: AsyncSession,
    search: UserSearchService,
) -> bool:
    """Detach a user from an org, deleting the user once no org remains.

    Returns True when the user was deleted from the directory entirely.
    """
    membership = await session.get(
        UserOrganization, {"user_id": user_id, "organization_id": organization_id}
    )
    if not membership:
        raise HTTPException(status_code=404, detail="User is not part of this organization")

    user = await session.get(User, user_id)
    org_team_ids = select(Team.id).where(Team.organization_id == organization_id)

    await session.execute(
        delete(TeamMember).where(
            col(TeamMember.user_id) == user_id,
            col(TeamMember.team_id).in_(org_team_ids),
        ).execution_options(synchronize_session=False)
    )
    await session.execute(
        delete(Invite).where(
            col(Invite.email) == user.email,
            col(Invite.organization_id) == organization_id,
            col(Invite.status) == InviteStatus.PENDING.value,
        ).execution_options(synchronize_session=False)
    )
    await session.delete(membership)
    await session.flush()

    remaining = await session.scalar(
        select(func.count()).select_from(UserOrganization).where(
            UserOrganization.user_id == user_id
        )
    )
    deleted = not remaining
    if deleted:
        await session.execute(
            delete(TeamMember)
            .where(col(TeamMember.user_id) == user_id)
            .execution_options(synchronize_session=False)
        )
        await session.execute(
            delete(Invite)
            .where(col(Invite.invited_user_id) == user_id)
            .execution_options(synchronize_session=False)
        )
        await session.delete(user)
    await session.commit()

    log.info(
        "user.removed_from_org",
        user_id=user_id,
        org_id=organization_id,
        deleted=deleted,
    )
    if deleted:
        await search.remove_user(user_id)
    else:
        await search.index_user(user_id)
    return deleted
