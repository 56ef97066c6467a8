"""Penalty ("weak human diary") endpoints.

GET  /api/penalties                       - All entries, newest first
POST /api/penalties/{penalty_id}/view     - Mark an entry as read
POST /api/penalties/{penalty_id}/publish  - Move an entry out of the private archive
"""

import uuid

from fastapi import APIRouter, Depends

from studybet.api.deps import get_current_user_id, get_study_service
from studybet.schemas.penalties import PenaltyListResponse, PenaltyResponse
from studybet.services.study_service import StudyService

router = APIRouter()


@router.get("", response_model=PenaltyListResponse)
async def list_penalties(
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> PenaltyListResponse:
    penalties = await service.list_penalties(user_id)
    return PenaltyListResponse(
        items=[PenaltyResponse.from_domain(p) for p in penalties],
        unviewed=sum(1 for p in penalties if not p.is_viewed),
    )


@router.post("/{penalty_id}/view", response_model=PenaltyResponse)
async def view_penalty(
    penalty_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> PenaltyResponse:
    penalty = await service.view_penalty(user_id, penalty_id)
    return PenaltyResponse.from_domain(penalty)


@router.post("/{penalty_id}/publish", response_model=PenaltyResponse)
async def publish_penalty(
    penalty_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> PenaltyResponse:
    penalty = await service.publish_penalty(user_id, penalty_id)
    return PenaltyResponse.from_domain(penalty)
