"""
User search service — the entry point for directory searches and index sync hooks.

A search runs as one chain per request:

1. resolve the invite-status filter against the relational store
2. build the index query
3. decode the cursor and fetch one page from the index
4. enrich the page with memberships and invites
5. mint the next cursor when the page is full
"""

from __future__ import annotations

from typing import Optional

import structlog

from app.core.config import get_settings
from app.core.database import async_session_factory
from app.core.search_index import get_search_client
from app.services import user_index
from app.services.directory_store import DirectoryStore
from app.services.document_store import DirectoryDocumentStore
from app.services.search_cursor import decode_cursor, encode_cursor
from app.services.search_enrichment import enrich_users
from app.services.search_query import build_search_query
from user_directory_shared.schemas.directory import DirectoryDocument
from user_directory_shared.schemas.search import UserSearchRequest, UserSearchResponse

log = structlog.get_logger()


class UserSearchService:
    """Searches the directory index and keeps it in sync with the relational store."""

    def __init__(self, directory: DirectoryStore, documents: DirectoryDocumentStore):
        self.directory = directory
        self.documents = documents

    async def search_users(self, request: UserSearchRequest) -> UserSearchResponse:
        invited_user_ids: Optional[list[int]] = None
        if request.invite_status is not None:
            invites = await self.directory.find_invites(status=request.invite_status)
            invited_user_ids = sorted({invite.invited_user_id for invite in invites})
            if not invited_user_ids:
                log.info(
                    "user_search.no_invite_candidates",
                    invite_status=request.invite_status.value,
                )
                return UserSearchResponse.empty()

        search_query = build_search_query(request, invited_user_ids)
        search_after = decode_cursor(request.next_cursor, sort_length=len(search_query.sort))

        page = await self.documents.search(
            search_query, size=request.take, search_after=search_after
        )
        users = await enrich_users([hit.document for hit in page.hits], self.directory)

        # A full page may be followed by more; a short page is the last one.
        next_cursor = None
        if page.fetched == request.take and page.last_sort:
            next_cursor = encode_cursor(page.last_sort)

        log.info(
            "user_search.executed",
            sort_by=request.sort_by.value,
            order=request.order.value,
            has_query=bool(request.q),
            resumed=search_after is not None,
            returned=len(users),
            total=page.total,
        )
        return UserSearchResponse(
            users=users,
            next_cursor=next_cursor,
            has_more=next_cursor is not None,
            total=page.total,
        )

    async def index_user(self, user_id: int) -> Optional[DirectoryDocument]:
        return await user_index.index_user(user_id, self.directory, self.documents)

    async def remove_user(self, user_id: int) -> bool:
        return await user_index.remove_user(user_id, self.documents)

    async def reindex_all(self) -> int:
        return await user_index.reindex_all_users(self.directory, self.documents)


def get_user_search_service() -> UserSearchService:
    """FastAPI dependency wiring the service to the process-wide stores."""
    settings = get_settings()
    return UserSearchService(
        DirectoryStore(async_session_factory),
        DirectoryDocumentStore(get_search_client(), settings.opensearch_index),
    )
