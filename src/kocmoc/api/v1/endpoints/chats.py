"""Chat endpoints: direct and group chats, membership and read state."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from kocmoc.schemas.auth import MessageResponse
from kocmoc.schemas.chat import (
    AddMemberRequest,
    ChatDetailResponse,
    ChatResponse,
    ChatSummaryResponse,
    DirectChatCreate,
    DirectChatResponse,
    GroupChatCreate,
    MemberResponse,
)

from ..dependencies import ContainerDep, CurrentIdentityDep

router = APIRouter(prefix="/chats", tags=["chats"])


@router.get("/", response_model=list[ChatSummaryResponse])
def list_chats(identity: CurrentIdentityDep, container: ContainerDep) -> list[ChatSummaryResponse]:
    """List the caller's chats, most recently active first."""
    return [
        ChatSummaryResponse.model_validate(summary)
        for summary in container.chats.list_for_user(identity.user_id)
    ]


@router.post("/", response_model=DirectChatResponse)
def open_direct_chat(
    payload: DirectChatCreate,
    response: Response,
    identity: CurrentIdentityDep,
    container: ContainerDep,
) -> DirectChatResponse:
    """Return the direct chat with another user, creating it on first use.

    Responds 201 when the chat was created and 200 when it already existed.
    """
    chat, created = container.chats.open_direct(identity.user_id, payload.user_id)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return DirectChatResponse(
        id=chat.id,
        is_group=chat.is_group,
        name=chat.name,
        created_at=chat.created_at,
        created=created,
    )


@router.post("/group", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
def create_group_chat(
    payload: GroupChatCreate,
    identity: CurrentIdentityDep,
    container: ContainerDep,
) -> ChatResponse:
    chat = container.chats.create_group(payload.name, identity.user_id, payload.member_ids)
    return ChatResponse.model_validate(chat)


@router.get("/{chat_id}", response_model=ChatDetailResponse)
def get_chat(chat_id: str, identity: CurrentIdentityDep, container: ContainerDep) -> ChatDetailResponse:
    """Return a chat with its members; only members may look."""
    detail = container.chats.get_chat(chat_id, identity.user_id)
    return ChatDetailResponse(
        id=detail.chat.id,
        is_group=detail.chat.is_group,
        name=detail.chat.name,
        created_at=detail.chat.created_at,
        members=[MemberResponse.model_validate(member) for member in detail.members],
    )


@router.delete("/{chat_id}", response_model=MessageResponse)
def delete_chat(chat_id: str, identity: CurrentIdentityDep, container: ContainerDep) -> MessageResponse:
    """Delete a chat together with its messages and memberships."""
    container.chats.delete_chat(chat_id, identity.user_id)
    return MessageResponse(message="Chat deleted")


@router.post("/{chat_id}/members", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def add_member(
    chat_id: str,
    payload: AddMemberRequest,
    identity: CurrentIdentityDep,
    container: ContainerDep,
) -> MessageResponse:
    """Add a user to a group chat (owner or admin only)."""
    container.chats.add_group_member(
        chat_id,
        identity.user_id,
        payload.user_id,
        requester_is_admin=identity.is_admin,
    )
    return MessageResponse(message="Member added")


@router.put("/{chat_id}/read", response_model=MessageResponse)
def mark_read(chat_id: str, identity: CurrentIdentityDep, container: ContainerDep) -> MessageResponse:
    container.membership.mark_read(chat_id, identity.user_id)
    return MessageResponse(message="Marked as read")
