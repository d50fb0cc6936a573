"""Message endpoints, both chat-scoped and per-message actions."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from kocmoc.schemas.auth import MessageResponse as AckResponse
from kocmoc.schemas.message import MessageCreate, MessageEdit, MessageForward, MessageResponse

from ..dependencies import ContainerDep, CurrentIdentityDep

router = APIRouter(tags=["messages"])


@router.get("/chats/{chat_id}/messages", response_model=list[MessageResponse])
def list_messages(
    chat_id: str,
    identity: CurrentIdentityDep,
    container: ContainerDep,
    limit: Annotated[int | None, Query(description="Page size")] = None,
    offset: Annotated[int, Query(description="Messages to skip from the oldest")] = 0,
) -> list[MessageResponse]:
    """Return a page of the chat history, oldest first."""
    page_size = limit if limit is not None else container.settings.message_page_default
    messages = container.messages.list(chat_id, identity.user_id, page_size, offset)
    return [MessageResponse.model_validate(message) for message in messages]


@router.post(
    "/chats/{chat_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    chat_id: str,
    payload: MessageCreate,
    identity: CurrentIdentityDep,
    container: ContainerDep,
) -> MessageResponse:
    message = container.messages.append(chat_id, identity.user_id, payload.type, payload.payload())
    return MessageResponse.model_validate(message)


@router.get("/chats/{chat_id}/messages/search", response_model=list[MessageResponse])
def search_messages(
    chat_id: str,
    identity: CurrentIdentityDep,
    container: ContainerDep,
    q: Annotated[str, Query(description="Text to look for")] = "",
) -> list[MessageResponse]:
    """Search visible messages of a chat, newest first."""
    messages = container.messages.search(chat_id, identity.user_id, q)
    return [MessageResponse.model_validate(message) for message in messages]


@router.patch("/messages/{message_id}/edit", response_model=MessageResponse)
def edit_message(
    message_id: str,
    payload: MessageEdit,
    identity: CurrentIdentityDep,
    container: ContainerDep,
) -> MessageResponse:
    """Replace the text of one of the caller's messages."""
    message = container.messages.edit(message_id, identity.user_id, payload.text)
    return MessageResponse.model_validate(message)


@router.delete("/messages/{message_id}/delete", response_model=AckResponse)
def delete_message(message_id: str, identity: CurrentIdentityDep, container: ContainerDep) -> AckResponse:
    """Soft-delete one of the caller's messages."""
    container.messages.soft_delete(message_id, identity.user_id)
    return AckResponse(message="Message deleted")


@router.post(
    "/messages/{message_id}/forward",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def forward_message(
    message_id: str,
    payload: MessageForward,
    identity: CurrentIdentityDep,
    container: ContainerDep,
) -> MessageResponse:
    """Copy a message into another chat the caller belongs to."""
    message = container.messages.forward(message_id, identity.user_id, payload.target_chat_id)
    return MessageResponse.model_validate(message)
