"""
User endpoints. Both require a valid access token.

GET /api/v1/users/profile — the authenticated user, re-read from the store
GET /api/v1/users         — paginated listing (page, limit, search,
                            created_from, created_to)
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from dependencies import get_current_user, get_user_service
from schemas.dto.requests.users import ListUsersQuery
from schemas.dto.responses.users import UserResponse
from schemas.models.user import UserDoc
from services.user_service import UserService

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    current_user: UserDoc = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> UserResponse:
    user = await user_service.get_user(current_user.id)
    return UserResponse.from_doc(user)


@router.get("", response_model=list[UserResponse])
async def list_users(
    query: Annotated[ListUsersQuery, Query()],
    current_user: UserDoc = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> list[UserResponse]:
    users = await user_service.list_users(
        page=query.page,
        limit=query.limit,
        search=query.search,
        created_from=query.created_from,
        created_to=query.created_to,
    )
    return [UserResponse.from_doc(u) for u in users]
