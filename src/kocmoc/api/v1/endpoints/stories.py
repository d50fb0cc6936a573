"""Story endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from kocmoc.schemas.auth import MessageResponse
from kocmoc.schemas.story import StoryCreate, StoryResponse

from ..dependencies import ContainerDep, CurrentIdentityDep

router = APIRouter(prefix="/stories", tags=["stories"])


@router.get("/", response_model=list[StoryResponse])
def list_stories(identity: CurrentIdentityDep, container: ContainerDep) -> list[StoryResponse]:
    """Return every unexpired story, newest first."""
    return [StoryResponse.model_validate(story) for story in container.stories.list_active()]


@router.post("/", response_model=StoryResponse, status_code=status.HTTP_201_CREATED)
def publish_story(payload: StoryCreate, identity: CurrentIdentityDep, container: ContainerDep) -> StoryResponse:
    story = container.stories.publish(identity.user_id, payload.type, payload.media_url, payload.expires_at)
    return StoryResponse.model_validate(story)


@router.post("/{story_id}/view", response_model=MessageResponse)
def view_story(story_id: str, identity: CurrentIdentityDep, container: ContainerDep) -> MessageResponse:
    """Record that the caller viewed a story."""
    container.stories.record_view(story_id, identity.user_id)
    return MessageResponse(message="View recorded")
