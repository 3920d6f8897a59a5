"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
recovery requests, hierarchy nodes, courses, chapters, lessons).
Repositories return SQLModel objects and only `flush`; the calling service
owns the transaction and decides when to commit.
"""

from typing import Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import func
from sqlmodel import Session, SQLModel, col, select

from . import models

M = TypeVar("M", bound=SQLModel)


def paginate(session: Session, stmt, page: int, limit: int) -> Tuple[list, int]:
    """Run `stmt` for one page and return `(items, total)`."""
    total = session.exec(select(func.count()).select_from(stmt.order_by(None).subquery())).one()
    items = session.exec(stmt.offset((page - 1) * limit).limit(limit)).all()
    return list(items), int(total)


class _Repository(Generic[M]):
    """Shared get/add/delete for single-table aggregates."""
    model: Type[M]

    def __init__(self, session: Session):
        self.session = session

    def get(self, record_id: str) -> Optional[M]:
        """Get a record by primary key."""
        return self.session.get(self.model, record_id)

    def add(self, record: M) -> M:
        """Stage a new or modified record and flush it so defaults are populated."""
        self.session.add(record)
        self.session.flush()
        return record

    def delete(self, record: M) -> None:
        self.session.delete(record)
        self.session.flush()


class UserRepository(_Repository[models.User]):
    """Queries for `User` accounts of every role."""
    model = models.User

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by (case-insensitive) email or `None` if not found."""
        stmt = select(models.User).where(func.lower(models.User.email) == email.lower())
        return self.session.exec(stmt).first()

    def list_all(self, role: Optional[models.UserRole] = None) -> List[models.User]:
        stmt = select(models.User).order_by(col(models.User.created_at).desc())
        if role is not None:
            stmt = stmt.where(models.User.role == role)
        return list(self.session.exec(stmt).all())

    def search_page(
        self,
        role: models.UserRole,
        page: int,
        limit: int,
        is_banned: Optional[bool] = None,
        search: Optional[str] = None,
        level_ids=None,
    ) -> Tuple[List[models.User], int]:
        """Return one page of users with `role`, newest first.

        `level_ids` may be a single id, or a subquery selecting level ids
        (used to filter students by department, college or university).
        """
        stmt = select(models.User).where(models.User.role == role)
        if is_banned is not None:
            stmt = stmt.where(models.User.is_banned == is_banned)
        if search:
            stmt = stmt.where(
                col(models.User.name).icontains(search, autoescape=True)
                | col(models.User.email).icontains(search, autoescape=True)
            )
        if isinstance(level_ids, str):
            stmt = stmt.where(models.User.level_id == level_ids)
        elif level_ids is not None:
            stmt = stmt.where(col(models.User.level_id).in_(level_ids))
        stmt = stmt.order_by(col(models.User.created_at).desc())
        return paginate(self.session, stmt, page, limit)

    def students_by_ids(self, user_ids: Sequence[str]) -> List[models.User]:
        stmt = select(models.User).where(
            col(models.User.id).in_(list(user_ids)),
            models.User.role == models.UserRole.USER,
        )
        return list(self.session.exec(stmt).all())

    def count_courses(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(models.Course).where(models.Course.teacher_id == user_id)
        return int(self.session.exec(stmt).one())


class RecoveryRepository(_Repository[models.RecoveryRequest]):
    """Persistence for device recovery requests."""
    model = models.RecoveryRequest

    def pending_for_user(self, user_id: str) -> Optional[models.RecoveryRequest]:
        stmt = select(models.RecoveryRequest).where(
            models.RecoveryRequest.user_id == user_id,
            models.RecoveryRequest.status == models.RecoveryStatus.PENDING,
        )
        return self.session.exec(stmt).first()

    def latest_for_user(self, user_id: str) -> Optional[models.RecoveryRequest]:
        stmt = (
            select(models.RecoveryRequest)
            .where(models.RecoveryRequest.user_id == user_id)
            .order_by(col(models.RecoveryRequest.created_at).desc())
        )
        return self.session.exec(stmt).first()

    def list_pending(self) -> List[models.RecoveryRequest]:
        stmt = (
            select(models.RecoveryRequest)
            .where(models.RecoveryRequest.status == models.RecoveryStatus.PENDING)
            .order_by(col(models.RecoveryRequest.created_at).desc())
        )
        return list(self.session.exec(stmt).all())


class UniversityRepository(_Repository[models.University]):
    model = models.University

    def search_page(self, page: int, limit: int, search: Optional[str] = None):
        stmt = select(models.University)
        if search:
            stmt = stmt.where(col(models.University.name).icontains(search, autoescape=True))
        return paginate(self.session, stmt.order_by(models.University.name), page, limit)


class CollegeRepository(_Repository[models.College]):
    model = models.College

    def search_page(self, page: int, limit: int, search: Optional[str] = None, university_id: Optional[str] = None):
        stmt = select(models.College)
        if search:
            stmt = stmt.where(col(models.College.name).icontains(search, autoescape=True))
        if university_id:
            stmt = stmt.where(models.College.university_id == university_id)
        return paginate(self.session, stmt.order_by(models.College.name), page, limit)


class DepartmentRepository(_Repository[models.Department]):
    model = models.Department

    def list_for_college(self, college_id: str) -> List[models.Department]:
        stmt = select(models.Department).where(models.Department.college_id == college_id).order_by(models.Department.name)
        return list(self.session.exec(stmt).all())


class LevelRepository(_Repository[models.Level]):
    model = models.Level

    def list_for_department(self, department_id: str) -> List[models.Level]:
        stmt = select(models.Level).where(models.Level.department_id == department_id).order_by(models.Level.order, models.Level.name)
        return list(self.session.exec(stmt).all())

    @staticmethod
    def ids_in_department(department_id: str):
        return select(models.Level.id).where(models.Level.department_id == department_id)

    @staticmethod
    def ids_in_college(college_id: str):
        return (
            select(models.Level.id)
            .join(models.Department, models.Level.department_id == models.Department.id)
            .where(models.Department.college_id == college_id)
        )

    @staticmethod
    def ids_in_university(university_id: str):
        return (
            select(models.Level.id)
            .join(models.Department, models.Level.department_id == models.Department.id)
            .join(models.College, models.Department.college_id == models.College.id)
            .where(models.College.university_id == university_id)
        )


class CourseRepository(_Repository[models.Course]):
    """Course queries including listing filters and chapter counts."""
    model = models.Course

    def search_page(
        self,
        page: int,
        limit: int,
        search: Optional[str] = None,
        level_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
    ) -> Tuple[List[models.Course], int]:
        """Return one page of courses, newest first.

        `search` matches title or description case-insensitively.
        """
        stmt = select(models.Course)
        if search:
            stmt = stmt.where(
                col(models.Course.title).icontains(search, autoescape=True)
                | col(models.Course.description).icontains(search, autoescape=True)
            )
        if level_id:
            stmt = stmt.where(models.Course.level_id == level_id)
        if teacher_id:
            stmt = stmt.where(models.Course.teacher_id == teacher_id)
        stmt = stmt.order_by(col(models.Course.created_at).desc(), models.Course.id)
        return paginate(self.session, stmt, page, limit)

    def chapter_counts(self, course_ids: Sequence[str]) -> dict:
        """Map course id to its number of chapters (missing ids have none)."""
        if not course_ids:
            return {}
        stmt = (
            select(models.Chapter.course_id, func.count())
            .where(col(models.Chapter.course_id).in_(list(course_ids)))
            .group_by(models.Chapter.course_id)
        )
        return {course_id: int(n) for course_id, n in self.session.exec(stmt).all()}


class ChapterRepository(_Repository[models.Chapter]):
    model = models.Chapter

    def list_for_course(self, course_id: str) -> List[models.Chapter]:
        stmt = select(models.Chapter).where(models.Chapter.course_id == course_id).order_by(models.Chapter.position)
        return list(self.session.exec(stmt).all())

    def max_position(self, course_id: str) -> int:
        stmt = select(func.max(models.Chapter.position)).where(models.Chapter.course_id == course_id)
        return self.session.exec(stmt).one() or 0

    def existing_ids(self, chapter_ids: Sequence[str]) -> set:
        stmt = select(models.Chapter.id).where(col(models.Chapter.id).in_(list(chapter_ids)))
        return set(self.session.exec(stmt).all())


class LessonRepository(_Repository[models.Lesson]):
    model = models.Lesson

    def list_for_chapter(self, chapter_id: str) -> List[models.Lesson]:
        stmt = select(models.Lesson).where(models.Lesson.chapter_id == chapter_id).order_by(models.Lesson.position)
        return list(self.session.exec(stmt).all())

    def max_position(self, chapter_id: str) -> int:
        stmt = select(func.max(models.Lesson.position)).where(models.Lesson.chapter_id == chapter_id)
        return self.session.exec(stmt).one() or 0

    def existing_ids(self, lesson_ids: Sequence[str]) -> set:
        stmt = select(models.Lesson.id).where(col(models.Lesson.id).in_(list(lesson_ids)))
        return set(self.session.exec(stmt).all())
