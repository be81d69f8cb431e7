"""Main API router for v1."""
from fastapi import APIRouter

from geoattend.api.v1.endpoints import auth, trainings, enrollments, checkins, attendance, sse

api_router = APIRouter(prefix="/api/v1")

# Include all endpoint routers
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(trainings.router, prefix="/trainings", tags=["Trainings"])
api_router.include_router(enrollments.router, tags=["Enrollments"])
api_router.include_router(checkins.router, prefix="/checkins", tags=["Check-ins"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["Attendance"])
api_router.include_router(sse.router, tags=["SSE"])
