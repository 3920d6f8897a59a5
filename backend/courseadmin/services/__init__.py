"""Business logic services used by HTTP controllers.

Services coordinate repositories and own the transaction: they validate,
apply domain rules, commit, and raise the exceptions from
`courseadmin.exceptions` (or builtin `ValueError` / `PermissionError`) that
`main` maps to HTTP responses.
"""

from .accounts import AdminService, AuthService
from .courses import ChapterService, CourseService, LessonService
from .hierarchy import CollegeService, DepartmentService, LevelService, UniversityService

__all__ = [
    "AdminService",
    "AuthService",
    "ChapterService",
    "CollegeService",
    "CourseService",
    "DepartmentService",
    "LessonService",
    "LevelService",
    "UniversityService",
]
