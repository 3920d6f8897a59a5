"""Helpers shared by the service classes."""

from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from .. import models
from ..exceptions import ConflictError


@contextmanager
def conflict_on_integrity(session: Session, message: str) -> Iterator[None]:
    """Roll back and raise `ConflictError(message)` when a unique constraint trips."""
    try:
        yield
    except IntegrityError as exc:
        session.rollback()
        raise ConflictError(message) from exc


def ensure_can_edit(actor: models.User, course: models.Course) -> None:
    """Admins edit any course; teachers only the ones they own."""
    if actor.role == models.UserRole.ADMIN:
        return
    if actor.role == models.UserRole.TEACHER and course.teacher_id == actor.id:
        return
    raise PermissionError("You can only modify your own courses")


def lesson_media(lesson: models.Lesson) -> List[Optional[str]]:
    return [lesson.video, lesson.pdf_link, lesson.thumbnail]


def chapter_media(chapter: models.Chapter) -> List[Optional[str]]:
    urls: List[Optional[str]] = []
    for lesson in chapter.lessons:
        urls.extend(lesson_media(lesson))
    return urls


def course_media(course: models.Course) -> List[Optional[str]]:
    urls: List[Optional[str]] = [course.image_url, course.pdf_link]
    for chapter in course.chapters:
        urls.extend(chapter_media(chapter))
    return urls


def courses_media(courses: Iterable[models.Course]) -> List[Optional[str]]:
    urls: List[Optional[str]] = []
    for course in courses:
        urls.extend(course_media(course))
    return urls
