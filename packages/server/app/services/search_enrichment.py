"""
Attaches relational memberships and invites to index hits.

Memberships are authoritative. An invite only adds information: its status is
attached to the membership of the same scope, and it produces a view of its
own only when the user has not joined that scope yet.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Callable, Hashable, Iterable, Sequence
from operator import attrgetter
from typing import TYPE_CHECKING, TypeVar

from user_directory_shared.schemas.directory import (
    DirectoryDocument,
    EnrichedUser,
    InviteRecord,
    MembershipRecord,
    OrgMembershipView,
    TeamMembershipRecord,
    TeamMembershipView,
)

if TYPE_CHECKING:
    from app.services.directory_store import DirectoryStore

R = TypeVar("R")


def group_by(records: Iterable[R], key: Callable[[R], Hashable]) -> dict[Hashable, list[R]]:
    """Group records into ``key -> [records]``, preserving input order."""
    grouped: dict[Hashable, list[R]] = defaultdict(list)
    for record in records:
        grouped[key(record)].append(record)
    return grouped


def _latest_per_scope(
    invites: Iterable[InviteRecord], key: Callable[[InviteRecord], int]
) -> dict[int, InviteRecord]:
    # Invites arrive most recent first, so the first one seen per scope wins.
    scoped: dict[int, InviteRecord] = {}
    for invite in invites:
        scoped.setdefault(key(invite), invite)
    return scoped


def build_org_views(
    memberships: Sequence[MembershipRecord], invites: Sequence[InviteRecord]
) -> list[OrgMembershipView]:
    org_invites = _latest_per_scope(
        (i for i in invites if i.is_org_scope), attrgetter("organization_id")
    )
    views: list[OrgMembershipView] = []
    joined: set[int] = set()

    for membership in memberships:
        invite = org_invites.get(membership.organization_id)
        views.append(
            OrgMembershipView(
                org_id=membership.organization_id,
                name=membership.organization_name,
                role=membership.role,
                organization_invite_status=invite.status if invite else None,
            )
        )
        joined.add(membership.organization_id)

    for org_id, invite in org_invites.items():
        if org_id in joined:
            continue
        views.append(
            OrgMembershipView(
                org_id=org_id,
                name=invite.organization_name or "",
                role=None,
                organization_invite_status=invite.status,
            )
        )
    return views


def build_team_views(
    team_memberships: Sequence[TeamMembershipRecord], invites: Sequence[InviteRecord]
) -> list[TeamMembershipView]:
    team_invites = _latest_per_scope(
        (i for i in invites if not i.is_org_scope), attrgetter("team_id")
    )
    views: list[TeamMembershipView] = []
    joined: set[int] = set()

    for membership in team_memberships:
        invite = team_invites.get(membership.team_id)
        views.append(
            TeamMembershipView(
                team_id=membership.team_id,
                name=membership.team_name,
                role=membership.role,
                org_id=membership.organization_id,
                team_invite_status=invite.status if invite else None,
            )
        )
        joined.add(membership.team_id)

    for team_id, invite in team_invites.items():
        if team_id in joined:
            continue
        views.append(
            TeamMembershipView(
                team_id=team_id,
                name=invite.team_name or "",
                role=None,
                org_id=invite.organization_id,
                team_invite_status=invite.status,
            )
        )
    return views


def merge_memberships(
    documents: Sequence[DirectoryDocument],
    memberships: Sequence[MembershipRecord],
    team_memberships: Sequence[TeamMembershipRecord],
    invites: Sequence[InviteRecord],
) -> list[EnrichedUser]:
    """Combine a page of documents with the batch-fetched relational rows."""
    orgs_by_user = group_by(memberships, attrgetter("user_id"))
    teams_by_user = group_by(team_memberships, attrgetter("user_id"))
    invites_by_user = group_by(invites, attrgetter("invited_user_id"))

    enriched = []
    for document in documents:
        user_invites = invites_by_user.get(document.id, [])
        enriched.append(
            EnrichedUser(
                **document.model_dump(),
                orgs=build_org_views(orgs_by_user.get(document.id, []), user_invites),
                teams=build_team_views(teams_by_user.get(document.id, []), user_invites),
            )
        )
    return enriched


async def enrich_users(
    documents: Sequence[DirectoryDocument], directory: "DirectoryStore"
) -> list[EnrichedUser]:
    """Fetch memberships, team memberships and invites for the page in parallel, then merge.

    Any fetch failure fails the whole enrichment; documents are never
    returned without their membership context.
    """
    user_ids = [document.id for document in documents]
    if not user_ids:
        return []

    memberships, team_memberships, invites = await asyncio.gather(
        directory.find_memberships_by_user_ids(user_ids),
        directory.find_team_memberships_by_user_ids(user_ids),
        directory.find_invites(user_ids=user_ids),
    )
    return merge_memberships(documents, memberships, team_memberships, invites)
