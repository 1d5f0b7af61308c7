"""
Shared fixtures: in-memory stand-ins for both stores, plus SQLite-backed sessions.

``FakeDocumentStore`` evaluates the subset of OpenSearch query DSL produced by
``build_search_query`` (match_all, bool must/filter/should, terms, prefix,
phrase_prefix multi_match) together with multi-clause sorting and
``search_after``, so ordering and pagination can be exercised end to end.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from functools import cmp_to_key
from typing import Any, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

import app.models  # noqa: F401  (populates SQLModel.metadata)
from app.models.user import User
from app.services.directory_store import DirectoryStore
from app.services.document_store import SearchHit, SearchPage
from app.services.user_search import UserSearchService
from user_directory_shared.schemas.common import InviteStatus
from user_directory_shared.schemas.directory import (
    DirectoryDocument,
    InviteRecord,
    MembershipRecord,
    TeamMembershipRecord,
)

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fake relational store
# ---------------------------------------------------------------------------

class FakeDirectoryStore:
    """In-memory relational store. ``invites`` are kept most recent first."""

    def __init__(self):
        self.users: dict[int, User] = {}
        self.memberships: list[MembershipRecord] = []
        self.team_memberships: list[TeamMembershipRecord] = []
        self.invites: list[InviteRecord] = []
        self.calls: list[tuple] = []
        self.fail_with: Optional[Exception] = None

    def add_user(self, user_id: int, name: Optional[str], email: str, created_at=None) -> User:
        user = User(id=user_id, name=name, email=email, created_at=created_at or BASE_TIME)
        self.users[user_id] = user
        return user

    def add_membership(self, user_id, org_id, org_name, role="MEMBER"):
        self.memberships.append(
            MembershipRecord(
                user_id=user_id, organization_id=org_id, role=role, organization_name=org_name
            )
        )

    def add_team_membership(self, user_id, team_id, team_name, org_id, role="MEMBER"):
        self.team_memberships.append(
            TeamMembershipRecord(
                user_id=user_id, team_id=team_id, role=role,
                organization_id=org_id, team_name=team_name,
            )
        )

    def add_invite(self, user_id, org_id, org_name=None, status=InviteStatus.PENDING,
                   team_id=None, team_name=None):
        """Record an invite as the most recent one."""
        self.invites.insert(
            0,
            InviteRecord(
                invited_user_id=user_id, organization_id=org_id, organization_name=org_name,
                status=status, team_id=team_id, team_name=team_name,
            ),
        )

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def find_user(self, user_id):
        self.calls.append(("find_user", user_id))
        self._check()
        return self.users.get(user_id)

    async def list_user_ids(self):
        self._check()
        return sorted(self.users)

    async def find_memberships_by_user_ids(self, user_ids):
        self.calls.append(("memberships", tuple(user_ids)))
        self._check()
        wanted = set(user_ids)
        return [m for m in self.memberships if m.user_id in wanted]

    async def find_team_memberships_by_user_ids(self, user_ids):
        self.calls.append(("team_memberships", tuple(user_ids)))
        self._check()
        wanted = set(user_ids)
        return [m for m in self.team_memberships if m.user_id in wanted]

    async def find_invites(self, *, status=None, user_ids=None):
        self.calls.append(("invites", status, tuple(user_ids) if user_ids is not None else None))
        self._check()
        invites = self.invites
        if status is not None:
            invites = [i for i in invites if i.status == status]
        if user_ids is not None:
            wanted = set(user_ids)
            invites = [i for i in invites if i.invited_user_id in wanted]
        return list(invites)


# ---------------------------------------------------------------------------
# Fake document store
# ---------------------------------------------------------------------------

def _source_values(source: dict, field: str) -> list[Any]:
    value = source.get(field.removesuffix(".keyword"))
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _tokens(source: dict, field: str) -> list[str]:
    tokens: list[str] = []
    for value in _source_values(source, field):
        tokens.extend(re.findall(r"[a-z0-9]+", str(value).lower()))
    return tokens


def _phrase_prefix(text: str, tokens: list[str]) -> bool:
    words = re.findall(r"[a-z0-9]+", text.lower())
    if not words:
        return False
    *head, last = words
    for start in range(len(tokens) - len(words) + 1):
        window = tokens[start:start + len(words)]
        if window[:-1] == head and window[-1].startswith(last):
            return True
    return False


def _matches(query: dict, source: dict) -> bool:
    if "match_all" in query:
        return True
    if "bool" in query:
        clause = query["bool"]
        required = clause.get("must", []) + clause.get("filter", [])
        if not all(_matches(c, source) for c in required):
            return False
        should = clause.get("should", [])
        if should:
            needed = clause.get("minimum_should_match", 0 if required else 1)
            return sum(_matches(c, source) for c in should) >= needed
        return True
    if "terms" in query:
        field, values = next(iter(query["terms"].items()))
        return any(v in values for v in _source_values(source, field))
    if "prefix" in query:
        field, spec = next(iter(query["prefix"].items()))
        prefix = spec["value"].lower() if spec.get("case_insensitive") else spec["value"]
        return any(token.startswith(prefix) for token in _tokens(source, field))
    if "multi_match" in query:
        spec = query["multi_match"]
        assert spec["type"] == "phrase_prefix"
        return any(_phrase_prefix(spec["query"], _tokens(source, f)) for f in spec["fields"])
    raise AssertionError(f"unsupported query clause: {query}")


def _compare(left: list, right: list, sort: list[dict]) -> int:
    for a, b, clause in zip(left, right, sort):
        order = next(iter(clause.values()))["order"]
        if a == b:
            continue
        # Missing values sort last in either direction.
        if a is None:
            return 1
        if b is None:
            return -1
        result = -1 if a < b else 1
        return -result if order == "desc" else result
    return 0


class FakeDocumentStore:
    """In-memory directory index. ``scores`` maps user id to relevance score (default 1.0)."""

    def __init__(self, scores: Optional[dict[int, float]] = None):
        self.index_name = "users"
        self.docs: dict[int, dict] = {}
        self.scores = scores or {}
        self.bodies: list[dict] = []
        self.fail_with: Optional[Exception] = None
        self.available = True

    async def ping(self) -> bool:
        return self.available

    async def ensure_index(self, recreate: bool = False) -> bool:
        if recreate:
            self.docs.clear()
        return recreate

    async def upsert(self, document: DirectoryDocument) -> None:
        self.docs[document.id] = document.to_index()

    async def delete(self, user_id: int) -> bool:
        return self.docs.pop(user_id, None) is not None

    def _sort_values(self, source: dict, sort: list[dict]) -> list[Any]:
        values = []
        for clause in sort:
            field = next(iter(clause))
            if field == "_score":
                values.append(self.scores.get(source["id"], 1.0))
            else:
                found = _source_values(source, field)
                values.append(found[0] if found else None)
        return values

    async def search(self, search_query, size, search_after=None) -> SearchPage:
        if self.fail_with is not None:
            raise self.fail_with
        body = search_query.to_body(size, search_after)
        self.bodies.append(body)
        sort = body["sort"]

        matched = [src for src in self.docs.values() if _matches(body["query"], src)]
        keyed = [(self._sort_values(src, sort), src) for src in matched]
        keyed.sort(key=cmp_to_key(lambda x, y: _compare(x[0], y[0], sort)))
        if "search_after" in body:
            keyed = [k for k in keyed if _compare(k[0], body["search_after"], sort) > 0]

        page = keyed[:size]
        hits = [
            SearchHit(
                document=DirectoryDocument.model_validate(src),
                sort=values,
                score=self.scores.get(src["id"], 1.0),
            )
            for values, src in page
        ]
        return SearchPage(
            hits=hits,
            total=len(matched),
            fetched=len(page),
            last_sort=page[-1][0] if page else [],
        )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def directory():
    return FakeDirectoryStore()


@pytest.fixture
def documents():
    return FakeDocumentStore()


@pytest.fixture
def search_service(directory, documents):
    return UserSearchService(directory, documents)


@pytest.fixture
def minutes():
    """Timestamp factory: ``minutes(n)`` is BASE_TIME + n minutes."""
    return lambda n: BASE_TIME + timedelta(minutes=n)


@pytest.fixture
async def session_factory(tmp_path):
    """Session factory over a fresh SQLite file with every directory table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'directory.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def directory_store(session_factory):
    return DirectoryStore(session_factory)


@pytest.fixture
def make_documents():
    """Factory for document stores with custom relevance scores."""
    return FakeDocumentStore
