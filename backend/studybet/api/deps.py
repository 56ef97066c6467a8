"""FastAPI dependencies shared by the route modules."""

import uuid

from fastapi import Header, HTTPException, Request

from studybet.core.logging import bind_user
from studybet.services.study_service import StudyService
from studybet.services.tag_service import TagService


async def get_current_user_id(
    request: Request,
    x_user_id: str | None = Header(default=None),
) -> uuid.UUID:
    """Identity asserted by the upstream auth layer in X-User-Id.

    Usage::

        @router.get("/protected")
        async def protected(user_id: uuid.UUID = Depends(get_current_user_id)):
            ...
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header") from None

    # Error handlers read it from request.state; every other log line gets it via contextvars
    request.state.user_id = str(user_id)
    bind_user(user_id)
    return user_id


def get_study_service(request: Request) -> StudyService:
    return request.app.state.study_service


def get_tag_service(request: Request) -> TagService:
    return request.app.state.tag_service
