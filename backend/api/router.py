from __future__ import annotations

from fastapi import APIRouter, Depends

from api.deps import get_current_principal
from api.routes import change_requests, conflicts, course_rules, notifications, schedules, school_settings


api_router = APIRouter()

# Every route needs an identity; role checks live on the individual routes.
_authenticated = [Depends(get_current_principal)]
api_router.include_router(schedules.router, prefix="/schedules", tags=["schedules"], dependencies=_authenticated)
api_router.include_router(
    change_requests.router,
    prefix="/schedule-change-requests",
    tags=["schedule-change-requests"],
    dependencies=_authenticated,
)
api_router.include_router(conflicts.router, prefix="/conflicts", tags=["conflicts"], dependencies=_authenticated)
api_router.include_router(course_rules.router, prefix="/course-rules", tags=["course-rules"], dependencies=_authenticated)
api_router.include_router(school_settings.router, prefix="/settings", tags=["settings"], dependencies=_authenticated)
api_router.include_router(
    notifications.router, prefix="/notifications", tags=["notifications"], dependencies=_authenticated
)
