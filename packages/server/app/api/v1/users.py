"""
User directory API endpoints.

GET    /api/v1/users/search                    — Search the directory (paginated)
POST   /api/v1/users                           — Register a user
POST   /api/v1/users/{userId}/invites/accept   — Accept the pending invite for an email
DELETE /api/v1/users/{userId}/orgs/{orgId}     — Remove a user from an org
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.services import users as user_service
from app.services.user_search import UserSearchService, get_user_search_service
from user_directory_shared.schemas.common import InviteStatus
from user_directory_shared.schemas.search import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    SortBy,
    SortOrder,
    UserSearchRequest,
    UserSearchResponse,
)
from user_directory_shared.schemas.users import (
    InviteAcceptRequest,
    MessageResponse,
    UserCreateRequest,
    UserResponse,
)

router = APIRouter()


def search_params(
    q: Optional[str] = Query(default=None, max_length=200),
    sort_by: SortBy = Query(default=SortBy.CREATED_AT, alias="sortBy"),
    order: SortOrder = Query(default=SortOrder.DESC),
    take: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    invite_status: Optional[InviteStatus] = Query(default=None, alias="inviteStatus"),
    organization_name: Optional[str] = Query(default=None, alias="organizationName"),
    team_name: Optional[str] = Query(default=None, alias="teamName"),
    next_cursor: Optional[str] = Query(default=None, alias="nextCursor"),
) -> UserSearchRequest:
    """Collect camelCase query parameters into a validated search request."""
    try:
        return UserSearchRequest(
            q=q,
            sort_by=sort_by,
            order=order,
            take=take,
            invite_status=invite_status,
            organization_name=organization_name,
            team_name=team_name,
            next_cursor=next_cursor,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=exc.errors(include_url=False, include_context=False, include_input=False),
        )


@router.get("/search", response_model=UserSearchResponse, tags=["Users"])
async def search_users(
    criteria: UserSearchRequest = Depends(search_params),
    search: UserSearchService = Depends(get_user_search_service),
):
    """Search users by name/email prefix with org, team and invite-status filters."""
    return await search.search_users(criteria)


@router.post("", response_model=UserResponse, status_code=201, tags=["Users"])
async def create_user(
    body: UserCreateRequest,
    session: AsyncSession = Depends(get_session),
    search: UserSearchService = Depends(get_user_search_service),
):
    """Register a user and add them to the search index."""
    info = await user_service.create_user(body, session, search)
    return UserResponse(**info)


@router.post(
    "/{userId}/invites/accept",
    response_model=MessageResponse,
    tags=["Users"],
)
async def accept_invite(
    userId: int,
    body: InviteAcceptRequest,
    session: AsyncSession = Depends(get_session),
    search: UserSearchService = Depends(get_user_search_service),
):
    """Accept the pending invite addressed to the given email."""
    await user_service.accept_invite(userId, body.email, session, search)
    return MessageResponse(message="Invite accepted successfully")


@router.delete("/{userId}/orgs/{orgId}", status_code=204, tags=["Users"])
async def remove_user_from_org(
    userId: int,
    orgId: int,
    session: AsyncSession = Depends(get_session),
    search: UserSearchService = Depends(get_user_search_service),
):
    """Remove a user from an org; users left without any org leave the directory."""
    await user_service.remove_user_from_org(userId, orgId, session, search)
