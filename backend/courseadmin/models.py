"""SQLModel data models.

This module defines the application's database tables using SQLModel.
The academic hierarchy is University → College → Department → Level →
Course → Chapter → Lesson; each parent owns its children through a
cascading relationship so deleting a node removes its whole subtree.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship


def _uuid() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    USER = "USER"


class RecoveryStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class CourseTerm(str, Enum):
    REGULAR = "REGULAR"
    SUMMER = "SUMMER"


class CourseStatus(str, Enum):
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


_OWNED = {"cascade": "all, delete-orphan"}


class User(SQLModel, table=True):
    """An account: admin, teacher or student (`USER`).

    Fields:
    - `password_hash`: hashed password string (never store plaintext)
    - `is_banned` / `ban_reason`: a banned user cannot authenticate
    - `device_id`: the single client device a student may log in from
    - `level_id`: the academic level a student is enrolled in
    """
    id: str = Field(default_factory=_uuid, primary_key=True)
    email: str = Field(index=True, nullable=False, unique=True)
    name: str
    password_hash: str
    role: UserRole = Field(default=UserRole.USER, index=True)
    image: Optional[str] = None
    phone_number: Optional[str] = None
    email_verified: bool = False
    is_banned: bool = Field(default=False, index=True)
    ban_reason: Optional[str] = None
    device_id: Optional[str] = None
    level_id: Optional[str] = Field(default=None, foreign_key="level.id", ondelete="SET NULL", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})

    level: Optional["Level"] = Relationship(back_populates="students")
    courses_created: List["Course"] = Relationship(back_populates="teacher")
    recovery_requests: List["RecoveryRequest"] = Relationship(back_populates="user", sa_relationship_kwargs=_OWNED)


class RecoveryRequest(SQLModel, table=True):
    """A banned student's request to be unbanned and moved to a new device."""
    __tablename__ = "recovery_request"

    id: str = Field(default_factory=_uuid, primary_key=True)
    user_id: str = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    message: str
    new_device_id: Optional[str] = None
    status: RecoveryStatus = Field(default=RecoveryStatus.PENDING, index=True)
    admin_note: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})

    user: Optional[User] = Relationship(back_populates="recovery_requests")


class University(SQLModel, table=True):
    id: str = Field(default_factory=_uuid, primary_key=True)
    name: str = Field(index=True)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})

    colleges: List["College"] = Relationship(back_populates="university", sa_relationship_kwargs=_OWNED)


class College(SQLModel, table=True):
    id: str = Field(default_factory=_uuid, primary_key=True)
    name: str = Field(index=True)
    university_id: str = Field(foreign_key="university.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})

    university: Optional[University] = Relationship(back_populates="colleges")
    departments: List["Department"] = Relationship(back_populates="college", sa_relationship_kwargs=_OWNED)


class Department(SQLModel, table=True):
    id: str = Field(default_factory=_uuid, primary_key=True)
    name: str = Field(index=True)
    college_id: str = Field(foreign_key="college.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})

    college: Optional[College] = Relationship(back_populates="departments")
    levels: List["Level"] = Relationship(back_populates="department", sa_relationship_kwargs=_OWNED)


class Level(SQLModel, table=True):
    """An academic year/stage inside a department; `order` sorts levels."""
    id: str = Field(default_factory=_uuid, primary_key=True)
    name: str
    order: int = 0
    department_id: str = Field(foreign_key="department.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})

    department: Optional[Department] = Relationship(back_populates="levels")
    courses: List["Course"] = Relationship(back_populates="level", sa_relationship_kwargs=_OWNED)
    students: List[User] = Relationship(back_populates="level")


class Course(SQLModel, table=True):
    """A course taught by one teacher for one level, with payment metadata.

    `image_url` and `pdf_link` hold public URLs of hosted media (or external
    links); `cash_numbers` lists mobile-wallet numbers accepting payment.
    """
    id: str = Field(default_factory=_uuid, primary_key=True)
    title: str = Field(index=True)
    description: str
    small_description: str
    image_url: str
    pdf_link: Optional[str] = None
    price: int = 0
    duration: int = 1
    term: CourseTerm = CourseTerm.REGULAR
    status: CourseStatus = CourseStatus.PUBLISHED
    cash_numbers: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    instapay_username: Optional[str] = None
    teacher_id: str = Field(foreign_key="user.id", index=True)
    level_id: str = Field(foreign_key="level.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})

    teacher: Optional[User] = Relationship(back_populates="courses_created")
    level: Optional[Level] = Relationship(back_populates="courses")
    chapters: List["Chapter"] = Relationship(
        back_populates="course",
        sa_relationship_kwargs={**_OWNED, "order_by": "Chapter.position"},
    )


class Chapter(SQLModel, table=True):
    """A chapter of a course; `position` is its 1-based rank in the course."""
    __table_args__ = (UniqueConstraint("course_id", "position", name="uq_chapter_course_position"),)

    id: str = Field(default_factory=_uuid, primary_key=True)
    title: str
    position: int
    course_id: str = Field(foreign_key="course.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})

    course: Optional[Course] = Relationship(back_populates="chapters")
    lessons: List["Lesson"] = Relationship(
        back_populates="chapter",
        sa_relationship_kwargs={**_OWNED, "order_by": "Lesson.position"},
    )


class Lesson(SQLModel, table=True):
    """A lesson of a chapter; `position` is its 1-based rank in the chapter."""
    __table_args__ = (UniqueConstraint("chapter_id", "position", name="uq_lesson_chapter_position"),)

    id: str = Field(default_factory=_uuid, primary_key=True)
    title: str
    description: Optional[str] = None
    video: Optional[str] = None
    pdf_link: Optional[str] = None
    thumbnail: Optional[str] = None
    is_free: bool = False
    position: int
    chapter_id: str = Field(foreign_key="chapter.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})

    chapter: Optional[Chapter] = Relationship(back_populates="lessons")
