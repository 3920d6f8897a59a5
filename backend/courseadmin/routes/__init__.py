"""API router combining the per-entity routers under `/api`."""

from fastapi import APIRouter

from . import admin, auth, chapter, college, course, department, lesson, level, university

api_router = APIRouter()

# Authentication and device recovery
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])

# Admin: users, teachers, students, recovery requests
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])

# Academic hierarchy
api_router.include_router(university.router, prefix="/university", tags=["University"])
api_router.include_router(college.router, prefix="/college", tags=["College"])
api_router.include_router(department.router, prefix="/department", tags=["Department"])
api_router.include_router(level.router, prefix="/level", tags=["Level"])

# Course content
api_router.include_router(course.router, prefix="/course", tags=["Course"])
api_router.include_router(chapter.router, prefix="/chapter", tags=["Chapter"])
api_router.include_router(lesson.router, prefix="/lesson", tags=["Lesson"])
