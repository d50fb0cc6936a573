"""User directory and profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from kocmoc.schemas.user import ProfileUpdateRequest, UserResponse

from ..dependencies import ContainerDep, CurrentIdentityDep

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/", response_model=list[UserResponse])
def list_users(identity: CurrentIdentityDep, container: ContainerDep) -> list[UserResponse]:
    """List every other user, ordered by display name."""
    users = container.accounts.list_users(exclude_user_id=identity.user_id)
    return [UserResponse.model_validate(user) for user in users]


@router.get("/search/{query}", response_model=list[UserResponse])
def search_users(query: str, identity: CurrentIdentityDep, container: ContainerDep) -> list[UserResponse]:
    """Find users by display name or email."""
    users = container.accounts.search_users(query, exclude_user_id=identity.user_id)
    return [UserResponse.model_validate(user) for user in users]


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, identity: CurrentIdentityDep, container: ContainerDep) -> UserResponse:
    return UserResponse.model_validate(container.accounts.get_user(user_id))


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    payload: ProfileUpdateRequest,
    identity: CurrentIdentityDep,
    container: ContainerDep,
) -> UserResponse:
    """Update a profile; only the owner or an admin may do so."""
    profile = container.accounts.update_profile(
        identity,
        user_id,
        display_name=payload.display_name,
        avatar_url=payload.avatar_url,
    )
    return UserResponse.model_validate(profile)
