"""Study day endpoints.

GET  /api/study-days?start=&end=            - Days in range (default: last 30 days)
GET  /api/study-days/{date}                 - One day
GET  /api/study-days/{date}/sessions        - Sessions started that day
POST /api/study-days/{date}/finalize        - Streak, highlight and AI suggestion
"""

import uuid
from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException

from studybet.api.deps import get_current_user_id, get_study_service
from studybet.schemas.sessions import SessionResponse
from studybet.schemas.study_days import DayFinalizationResponse, StudyDayListResponse, StudyDayResponse
from studybet.services.study_service import StudyService

router = APIRouter()

DEFAULT_RANGE_DAYS = 30


@router.get("", response_model=StudyDayListResponse)
async def list_study_days(
    start: date | None = None,
    end: date | None = None,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> StudyDayListResponse:
    end = end or service.study_date(service.clock.now())
    start = start or end - timedelta(days=DEFAULT_RANGE_DAYS - 1)
    if start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")

    days = await service.list_study_days(user_id, start, end)
    return StudyDayListResponse(items=[StudyDayResponse.from_domain(d) for d in days], total=len(days))


@router.get("/{study_date}", response_model=StudyDayResponse)
async def get_study_day(
    study_date: date,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> StudyDayResponse:
    day = await service.get_study_day(user_id, study_date)
    return StudyDayResponse.from_domain(day)


@router.get("/{study_date}/sessions", response_model=list[SessionResponse])
async def list_day_sessions(
    study_date: date,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> list[SessionResponse]:
    sessions = await service.list_day_sessions(user_id, study_date)
    now = service.clock.now()
    return [SessionResponse.from_domain(s, now) for s in sessions]


@router.post("/{study_date}/finalize", response_model=DayFinalizationResponse)
async def finalize_study_day(
    study_date: date,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> DayFinalizationResponse:
    result = await service.finalize_day(user_id, study_date)
    return DayFinalizationResponse(
        study_day=StudyDayResponse.from_domain(result.study_day),
        streak_continued=result.streak.continued,
        current_streak=result.streak.current_streak,
        closed_session_id=result.closed_session.session.id if result.closed_session else None,
    )
