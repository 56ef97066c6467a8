"""Session lifecycle endpoints.

POST /api/sessions                      - Start a session (409 if one is already open)
GET  /api/sessions/current              - Open session + today's study day
GET  /api/sessions/{session_id}         - One session with its bet and interruptions
POST /api/sessions/{session_id}/pause   - ACTIVE -> PAUSED
POST /api/sessions/{session_id}/resume  - PAUSED -> ACTIVE
POST /api/sessions/{session_id}/complete
POST /api/sessions/{session_id}/abandon

Sessions of other users answer 404.
"""

import uuid
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends

from studybet.api.deps import get_current_user_id, get_study_service
from studybet.schemas.sessions import (
    CurrentStatusResponse,
    PauseSessionRequest,
    SessionOutcomeResponse,
    SessionResponse,
    SessionResultResponse,
    StartSessionRequest,
)
from studybet.schemas.study_days import StudyDayResponse
from studybet.services.study_service import SessionOutcome, StudyService

router = APIRouter()


def _outcome_response(outcome: SessionOutcome, now: datetime) -> SessionOutcomeResponse:
    return SessionOutcomeResponse(
        session=SessionResponse.from_domain(outcome.session, now),
        result=SessionResultResponse.from_domain(outcome.result),
        star_type=outcome.study_day.star_type,
        level=outcome.user.level,
        levels_gained=outcome.levels_gained,
        penalty_id=outcome.penalty.id if outcome.penalty else None,
    )


@router.post("", response_model=SessionResponse, status_code=201)
async def start_session(
    body: StartSessionRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> SessionResponse:
    session = await service.start_session(
        user_id,
        body.pledge,
        timedelta(seconds=body.target_duration_seconds),
        tag_ids=body.tag_ids,
    )
    return SessionResponse.from_domain(session, service.clock.now())


@router.get("/current", response_model=CurrentStatusResponse)
async def get_current_session(
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> CurrentStatusResponse:
    status = await service.get_current_status(user_id)
    return CurrentStatusResponse(
        session=SessionResponse.from_domain(status.session, status.now) if status.session else None,
        study_day=StudyDayResponse.from_domain(status.study_day) if status.study_day else None,
    )


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> SessionResponse:
    session = await service.get_session(user_id, session_id)
    return SessionResponse.from_domain(session, service.clock.now())


@router.post("/{session_id}/pause", response_model=SessionResponse)
async def pause_session(
    session_id: uuid.UUID,
    body: PauseSessionRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> SessionResponse:
    session = await service.pause_session(user_id, session_id, body.reason)
    return SessionResponse.from_domain(session, service.clock.now())


@router.post("/{session_id}/resume", response_model=SessionResponse)
async def resume_session(
    session_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> SessionResponse:
    session = await service.resume_session(user_id, session_id)
    return SessionResponse.from_domain(session, service.clock.now())


@router.post("/{session_id}/complete", response_model=SessionOutcomeResponse)
async def complete_session(
    session_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> SessionOutcomeResponse:
    outcome = await service.complete_session(user_id, session_id)
    return _outcome_response(outcome, service.clock.now())


@router.post("/{session_id}/abandon", response_model=SessionOutcomeResponse)
async def abandon_session(
    session_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StudyService = Depends(get_study_service),
) -> SessionOutcomeResponse:
    outcome = await service.abandon_session(user_id, session_id)
    return _outcome_response(outcome, service.clock.now())
