import uuid

from fastapi import APIRouter, Depends

from studybet.api.deps import get_current_user_id, get_study_service
from studybet.schemas.users import UserResponse
from studybet.services.study_service import StudyService

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> UserResponse:
    """Level, experience and streak counters. Provisions the user on first call."""
    user = await service.get_user(user_id)
    return UserResponse.from_domain(user)
