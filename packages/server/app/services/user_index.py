"""
Projects a user's relational state into its directory document.

Callers that change a user's memberships or invites commit first and then call
``index_user`` (or ``remove_user`` once the user has left the directory). The
two stores are never written atomically: until that call completes, searches
may return the previous document.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Optional

import structlog

from app.models.user import User
from app.services.directory_store import DirectoryStore
from app.services.document_store import DirectoryDocumentStore
from user_directory_shared.schemas.directory import (
    DirectoryDocument,
    MembershipRecord,
    TeamMembershipRecord,
)

log = structlog.get_logger()


def build_directory_document(
    user: User,
    memberships: Sequence[MembershipRecord],
    team_memberships: Sequence[TeamMembershipRecord],
) -> DirectoryDocument:
    return DirectoryDocument(
        id=user.id,
        name=user.name,
        email=user.email,
        created_at=user.created_at,
        organization_ids=[m.organization_id for m in memberships],
        organization_names=[m.organization_name for m in memberships],
        team_ids=[t.team_id for t in team_memberships],
        team_names=[t.team_name for t in team_memberships],
    )


async def index_user(
    user_id: int,
    directory: DirectoryStore,
    documents: DirectoryDocumentStore,
) -> Optional[DirectoryDocument]:
    """Rebuild and upsert the user's document. No-op when the user no longer exists."""
    user = await directory.find_user(user_id)
    if user is None:
        log.debug("user_index.skip_missing", user_id=user_id)
        return None

    memberships, team_memberships = await asyncio.gather(
        directory.find_memberships_by_user_ids([user_id]),
        directory.find_team_memberships_by_user_ids([user_id]),
    )
    document = build_directory_document(user, memberships, team_memberships)
    await documents.upsert(document)
    log.info(
        "user_index.indexed",
        user_id=user_id,
        orgs=len(document.organization_ids),
        teams=len(document.team_ids),
    )
    return document


async def remove_user(user_id: int, documents: DirectoryDocumentStore) -> bool:
    removed = await documents.delete(user_id)
    log.info("user_index.removed", user_id=user_id, existed=removed)
    return removed


async def reindex_all_users(
    directory: DirectoryStore, documents: DirectoryDocumentStore
) -> int:
    """Re-project every user in the relational store. Returns the number of documents written."""
    count = 0
    for user_id in await directory.list_user_ids():
        if await index_user(user_id, directory, documents) is not None:
            count += 1
    log.info("user_index.reindexed", count=count)
    return count
