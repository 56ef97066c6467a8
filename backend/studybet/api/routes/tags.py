import uuid

from fastapi import APIRouter, Depends

from studybet.api.deps import get_current_user_id, get_tag_service
from studybet.schemas.tags import CreateTagRequest, TagResponse, UpdateTagColorRequest
from studybet.services.tag_service import TagService

router = APIRouter()


@router.get("", response_model=list[TagResponse])
async def list_tags(
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: TagService = Depends(get_tag_service),
) -> list[TagResponse]:
    """User's tags, most used first."""
    tags = await service.list_tags(user_id)
    return [TagResponse.from_domain(t) for t in tags]


@router.post("", response_model=TagResponse, status_code=201)
async def create_tag(
    body: CreateTagRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: TagService = Depends(get_tag_service),
) -> TagResponse:
    tag = await service.create_tag(user_id, body.name, body.color_hex)
    return TagResponse.from_domain(tag)


@router.patch("/{tag_id}", response_model=TagResponse)
async def update_tag_color(
    tag_id: uuid.UUID,
    body: UpdateTagColorRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: TagService = Depends(get_tag_service),
) -> TagResponse:
    tag = await service.update_color(user_id, tag_id, body.color_hex)
    return TagResponse.from_domain(tag)
