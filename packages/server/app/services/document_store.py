"""
Directory document store: the OpenSearch index holding one document per user.

The index is a derived, eventually-consistent projection of the relational
store. It is written only by the index synchronizer (``app.services.user_index``).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Optional

import structlog
from opensearchpy import AsyncOpenSearch, exceptions
from pydantic import BaseModel, Field

from app.core.errors import SearchIndexUnavailableError
from app.core.search_index import USERS_INDEX_BODY
from app.services.search_query import SearchQuery
from user_directory_shared.schemas.directory import DirectoryDocument

log = structlog.get_logger()


class SearchHit(BaseModel):
    document: DirectoryDocument
    sort: list[Any] = Field(default_factory=list)
    score: Optional[float] = None


class SearchPage(BaseModel):
    """One page of hits. ``fetched`` and ``last_sort`` describe the raw index
    response, including hits dropped for lacking a source document."""
    hits: list[SearchHit] = Field(default_factory=list)
    total: int = 0
    fetched: int = 0
    last_sort: list[Any] = Field(default_factory=list)


def _is_unavailable(exc: exceptions.TransportError) -> bool:
    if isinstance(exc, exceptions.ConnectionError):
        return True
    status = exc.status_code
    return isinstance(status, int) and status >= 500


class DirectoryDocumentStore:
    """Upsert/delete/search of directory documents keyed by user id."""

    def __init__(self, client: AsyncOpenSearch, index_name: str = "users"):
        self.client = client
        self.index_name = index_name

    def _unavailable(self, operation: str, exc: exceptions.TransportError) -> SearchIndexUnavailableError:
        log.error(
            "directory_index.unavailable",
            operation=operation,
            index=self.index_name,
            error=str(exc),
        )
        return SearchIndexUnavailableError(
            f"Search index unavailable during {operation}", cause=exc
        )

    async def ping(self) -> bool:
        return await self.client.ping()

    async def ensure_index(self, recreate: bool = False) -> bool:
        """Create the users index if missing. Returns True when it was created."""
        try:
            exists = await self.client.indices.exists(index=self.index_name)
            if exists and recreate:
                await self.client.indices.delete(index=self.index_name)
                log.info("directory_index.deleted", index=self.index_name)
                exists = False
            if exists:
                return False
            await self.client.indices.create(index=self.index_name, body=USERS_INDEX_BODY)
        except exceptions.TransportError as exc:
            if _is_unavailable(exc):
                raise self._unavailable("ensure_index", exc) from exc
            raise
        log.info("directory_index.created", index=self.index_name)
        return True

    async def upsert(self, document: DirectoryDocument) -> None:
        try:
            await self.client.index(
                index=self.index_name,
                id=str(document.id),
                body=document.to_index(),
            )
        except exceptions.TransportError as exc:
            if _is_unavailable(exc):
                raise self._unavailable("upsert", exc) from exc
            raise

    async def delete(self, user_id: int) -> bool:
        """Delete a user's document. Returns False when it was already absent."""
        try:
            await self.client.delete(index=self.index_name, id=str(user_id))
        except exceptions.NotFoundError:
            log.debug("directory_index.delete_missing", user_id=user_id)
            return False
        except exceptions.TransportError as exc:
            if _is_unavailable(exc):
                raise self._unavailable("delete", exc) from exc
            raise
        return True

    async def search(
        self,
        search_query: SearchQuery,
        size: int,
        search_after: Optional[Sequence[Any]] = None,
    ) -> SearchPage:
        """Run one page of ``search_query``, resuming strictly after ``search_after``."""
        body = search_query.to_body(size, search_after)
        try:
            response = await self.client.search(index=self.index_name, body=body)
        except exceptions.NotFoundError as exc:
            # The index was never created (startup could not reach the cluster).
            raise self._unavailable("search", exc) from exc
        except exceptions.TransportError as exc:
            if _is_unavailable(exc):
                raise self._unavailable("search", exc) from exc
            raise

        hits_block = response.get("hits", {})
        total = hits_block.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)

        raw_hits = hits_block.get("hits", [])
        hits = [
            SearchHit(
                document=DirectoryDocument.model_validate(hit["_source"]),
                sort=hit.get("sort") or [],
                score=hit.get("_score"),
            )
            for hit in raw_hits
            if hit.get("_source")
        ]
        if len(hits) < len(raw_hits):
            log.warning(
                "directory_index.hits_without_source",
                index=self.index_name,
                dropped=len(raw_hits) - len(hits),
            )
        return SearchPage(
            hits=hits,
            total=int(total or 0),
            fetched=len(raw_hits),
            last_sort=(raw_hits[-1].get("sort") or []) if raw_hits else [],
        )
