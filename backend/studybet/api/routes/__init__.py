from fastapi import APIRouter

from studybet.api.routes import health, penalties, sessions, study_days, tags, users

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
api_router.include_router(study_days.router, prefix="/study-days", tags=["study-days"])
api_router.include_router(tags.router, prefix="/tags", tags=["tags"])
api_router.include_router(penalties.router, prefix="/penalties", tags=["penalties"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
