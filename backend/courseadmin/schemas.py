"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
route handlers and tests. `*In` models validate request bodies; `*Out`
models are built from ORM rows (`from_attributes`) and shape responses.
"""

import re
from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator

from .models import CourseStatus, CourseTerm, RecoveryStatus, UserRole

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "Must contain uppercase letter"),
    (re.compile(r"[a-z]"), "Must contain lowercase letter"),
    (re.compile(r"[0-9]"), "Must contain number"),
)


def check_password_policy(value: str) -> str:
    """Raise ValueError unless `value` satisfies the password policy."""
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    for pattern, message in _PASSWORD_RULES:
        if not pattern.search(value):
            raise ValueError(message)
    return value


class _Orm(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---- auth -------------------------------------------------------------------

class SignupIn(BaseModel):
    email: EmailStr
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=2)]
    password: str

    password_policy = field_validator("password")(check_password_policy)


class LoginIn(BaseModel):
    """Credentials plus the student's device identifier."""
    email: EmailStr
    password: str = Field(min_length=1)
    device_id: Optional[str] = None


class ForgotPasswordIn(BaseModel):
    email: EmailStr


class ResetPasswordIn(BaseModel):
    token: NonEmptyStr
    new_password: str

    password_policy = field_validator("new_password")(check_password_policy)


class RecoveryRequestIn(BaseModel):
    email: EmailStr
    message: Annotated[str, StringConstraints(strip_whitespace=True, min_length=10)]
    device_id: NonEmptyStr


# ---- admin ------------------------------------------------------------------

class CreateUserIn(BaseModel):
    """An admin-created account; admins are bootstrapped from the CLI only."""
    email: EmailStr
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=2)]
    password: str
    role: Literal["TEACHER", "USER"]

    password_policy = field_validator("password")(check_password_policy)


class UpdateUserIn(BaseModel):
    name: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=2)]] = None
    email: Optional[EmailStr] = None
    role: Optional[Literal["TEACHER", "USER"]] = None


class ChangePasswordIn(BaseModel):
    password: str

    password_policy = field_validator("password")(check_password_policy)


class BanIn(BaseModel):
    reason: NonEmptyStr


class AdminNoteIn(BaseModel):
    admin_note: Optional[str] = None


class StudentLevelIn(BaseModel):
    level_id: Optional[str]


class BulkStudentLevelIn(BaseModel):
    user_ids: List[str] = Field(min_length=1)
    level_id: Optional[str]


# ---- hierarchy --------------------------------------------------------------

class UniversityIn(BaseModel):
    name: NonEmptyStr
    is_active: bool = True


class UniversityPatch(BaseModel):
    name: Optional[NonEmptyStr] = None
    is_active: Optional[bool] = None


class CollegeIn(BaseModel):
    name: NonEmptyStr
    university_id: NonEmptyStr


class CollegePatch(BaseModel):
    name: Optional[NonEmptyStr] = None
    university_id: Optional[NonEmptyStr] = None


class DepartmentIn(BaseModel):
    name: NonEmptyStr
    college_id: NonEmptyStr


class DepartmentPatch(BaseModel):
    name: Optional[NonEmptyStr] = None
    college_id: Optional[NonEmptyStr] = None


class LevelIn(BaseModel):
    name: NonEmptyStr
    order: int = Field(ge=0)
    department_id: NonEmptyStr


class LevelPatch(BaseModel):
    name: Optional[NonEmptyStr] = None
    order: Optional[int] = Field(default=None, ge=0)
    department_id: Optional[NonEmptyStr] = None


# ---- courses, chapters, lessons ---------------------------------------------

class CourseIn(BaseModel):
    """Scalar course fields; media slots travel separately as `MediaInput`."""
    title: NonEmptyStr
    description: NonEmptyStr
    small_description: NonEmptyStr
    price: int = Field(ge=0)
    duration: int = Field(ge=1)
    term: CourseTerm
    status: CourseStatus
    cash_numbers: List[NonEmptyStr] = Field(default_factory=list)
    instapay_username: Optional[str] = None
    level_id: NonEmptyStr
    teacher_id: Optional[str] = None


class CoursePatch(BaseModel):
    title: Optional[NonEmptyStr] = None
    description: Optional[NonEmptyStr] = None
    small_description: Optional[NonEmptyStr] = None
    price: Optional[int] = Field(default=None, ge=0)
    duration: Optional[int] = Field(default=None, ge=1)
    term: Optional[CourseTerm] = None
    status: Optional[CourseStatus] = None
    cash_numbers: Optional[List[NonEmptyStr]] = None
    instapay_username: Optional[str] = None
    level_id: Optional[NonEmptyStr] = None
    teacher_id: Optional[str] = None


class ChapterIn(BaseModel):
    title: NonEmptyStr
    course_id: NonEmptyStr


class ChapterPatch(BaseModel):
    title: NonEmptyStr


class ChapterReorderIn(BaseModel):
    """The complete chapter id list of a course in its new order."""
    course_id: NonEmptyStr
    chapter_ids: List[str] = Field(min_length=1)


class LessonIn(BaseModel):
    title: NonEmptyStr
    chapter_id: NonEmptyStr
    description: Optional[str] = None
    is_free: bool = False


class LessonPatch(BaseModel):
    title: Optional[NonEmptyStr] = None
    description: Optional[str] = None
    is_free: Optional[bool] = None


class LessonReorderIn(BaseModel):
    chapter_id: NonEmptyStr
    lesson_ids: List[str] = Field(min_length=1)


# ---- responses --------------------------------------------------------------

class UserOut(_Orm):
    id: str
    email: str
    name: str
    role: UserRole
    image: Optional[str] = None
    phone_number: Optional[str] = None
    email_verified: bool
    is_banned: bool
    ban_reason: Optional[str] = None
    device_id: Optional[str] = None
    level_id: Optional[str] = None
    created_at: datetime


class UserSummary(_Orm):
    id: str
    name: str
    email: str
    image: Optional[str] = None


class UniversitySummary(_Orm):
    id: str
    name: str


class UniversityOut(_Orm):
    id: str
    name: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CollegeChain(_Orm):
    id: str
    name: str
    university: Optional[UniversitySummary] = None


class CollegeOut(_Orm):
    id: str
    name: str
    university_id: str
    university: Optional[UniversitySummary] = None
    created_at: datetime


class DepartmentChain(_Orm):
    id: str
    name: str
    college: Optional[CollegeChain] = None


class DepartmentOut(_Orm):
    id: str
    name: str
    college_id: str
    college: Optional[CollegeChain] = None
    created_at: datetime


class LevelSummary(_Orm):
    id: str
    name: str


class LevelChain(_Orm):
    id: str
    name: str
    department: Optional[DepartmentChain] = None


class LevelOut(_Orm):
    id: str
    name: str
    order: int
    department_id: str
    department: Optional[DepartmentChain] = None
    created_at: datetime


class LessonOut(_Orm):
    id: str
    title: str
    description: Optional[str] = None
    video: Optional[str] = None
    pdf_link: Optional[str] = None
    thumbnail: Optional[str] = None
    is_free: bool
    position: int
    chapter_id: str


class ChapterSummary(_Orm):
    id: str
    title: str
    position: int


class ChapterOut(_Orm):
    id: str
    title: str
    position: int
    course_id: str
    lessons: List[LessonOut] = []


class CourseSummary(_Orm):
    id: str
    title: str
    teacher_id: str


class ChapterDetail(ChapterOut):
    course: Optional[CourseSummary] = None


class ChapterRef(_Orm):
    id: str
    title: str
    course_id: str
    course: Optional[CourseSummary] = None


class LessonDetail(LessonOut):
    chapter: Optional[ChapterRef] = None


class _CourseFields(_Orm):
    id: str
    title: str
    description: str
    small_description: str
    image_url: str
    pdf_link: Optional[str] = None
    price: int
    duration: int
    term: CourseTerm
    status: CourseStatus
    cash_numbers: List[str] = []
    instapay_username: Optional[str] = None
    teacher_id: str
    level_id: str
    created_at: datetime
    updated_at: datetime


class CourseListItem(_CourseFields):
    teacher: Optional[UserSummary] = None
    level: Optional[LevelSummary] = None
    chapter_count: int = 0


class CourseDetail(_CourseFields):
    teacher: Optional[UserSummary] = None
    level: Optional[LevelChain] = None
    chapters: List[ChapterSummary] = []


class CourseBrief(_Orm):
    id: str
    title: str
    status: CourseStatus
    price: int
    term: CourseTerm
    level: Optional[LevelSummary] = None


class UserDetail(UserOut):
    courses_created: List[CourseBrief] = []


class TeacherRow(_Orm):
    id: str
    email: str
    name: str
    image: Optional[str] = None
    phone_number: Optional[str] = None
    is_banned: bool
    created_at: datetime


class DepartmentName(_Orm):
    name: str


class StudentLevel(_Orm):
    id: str
    name: str
    department: Optional[DepartmentName] = None


class StudentRow(TeacherRow):
    level: Optional[StudentLevel] = None


class StudentDetail(UserOut):
    level: Optional[LevelChain] = None


class RecoveryUser(_Orm):
    id: str
    email: str
    name: str
    device_id: Optional[str] = None


class RecoveryRequestOut(_Orm):
    id: str
    status: RecoveryStatus
    message: str
    new_device_id: Optional[str] = None
    admin_note: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    user: Optional[RecoveryUser] = None


class RecoveryStatusOut(_Orm):
    id: str
    status: RecoveryStatus
    admin_note: Optional[str] = None
    created_at: datetime
    updated_at: datetime
