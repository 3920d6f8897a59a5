"""Course, chapter and lesson services.

Chapters and lessons are position-ordered within their parent. Appends
take `max(position) + 1` and reorders rewrite the whole sibling list in one
transaction via `utils.ordering.renumber`, so positions stay 1..n.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from sqlmodel import Session

from .. import models, repositories, schemas
from ..exceptions import NotFoundError
from ..utils.media import Cleared, MediaInput, MediaPlan
from ..utils.ordering import diff_order, renumber
from .common import chapter_media, conflict_on_integrity, course_media, ensure_can_edit, lesson_media

logger = logging.getLogger("courseadmin.courses")

ORDER_CONFLICT = "Order changed concurrently; reload and retry"


class CourseService:
    def __init__(self, session: Session, storage=None):
        self.session = session
        self.storage = storage
        self.courses = repositories.CourseRepository(session)
        self.users = repositories.UserRepository(session)
        self.levels = repositories.LevelRepository(session)

    def get(self, course_id: str) -> models.Course:
        course = self.courses.get(course_id)
        if not course:
            raise NotFoundError("Course not found")
        return course

    def list(
        self,
        page: int,
        limit: int,
        search: Optional[str] = None,
        level_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
    ) -> Tuple[List[schemas.CourseListItem], int]:
        """Return one page of course list items (with chapter counts) and the total."""
        courses, total = self.courses.search_page(page, limit, search=search, level_id=level_id, teacher_id=teacher_id)
        counts = self.courses.chapter_counts([c.id for c in courses])
        items = []
        for course in courses:
            item = schemas.CourseListItem.model_validate(course)
            item.chapter_count = counts.get(course.id, 0)
            items.append(item)
        return items, total

    def _teacher(self, teacher_id: str) -> models.User:
        teacher = self.users.get(teacher_id)
        if not teacher or teacher.role != models.UserRole.TEACHER:
            raise NotFoundError("Teacher not found")
        return teacher

    def _check_level(self, level_id: str) -> None:
        if not self.levels.get(level_id):
            raise NotFoundError("Level not found")

    def create(
        self,
        actor: models.User,
        data: schemas.CourseIn,
        image: Optional[MediaInput],
        pdf: Optional[MediaInput] = None,
    ) -> models.Course:
        """Create a course owned by the acting teacher, or by `teacher_id` when an admin creates it."""
        if image is None or isinstance(image, Cleared):
            raise ValueError("image: course image is required")
        if actor.role == models.UserRole.ADMIN:
            if not data.teacher_id:
                raise ValueError("teacher_id: required when an admin creates a course")
            teacher_id = self._teacher(data.teacher_id).id
        else:
            teacher_id = actor.id
        self._check_level(data.level_id)

        fields = data.model_dump(exclude={"teacher_id"})
        with MediaPlan(self.storage, "courses") as plan:
            media = plan.stage({"image_url": ("image", image), "pdf_link": ("pdf", pdf)})
            course = self.courses.add(models.Course(**fields, **media, teacher_id=teacher_id))
            self.session.commit()
        self.session.refresh(course)
        logger.info("course created id=%s teacher_id=%s", course.id, teacher_id)
        return course

    def update(
        self,
        actor: models.User,
        course_id: str,
        data: schemas.CoursePatch,
        image: Optional[MediaInput] = None,
        pdf: Optional[MediaInput] = None,
    ) -> models.Course:
        course = self.get(course_id)
        ensure_can_edit(actor, course)
        if isinstance(image, Cleared):
            raise ValueError("image: course image cannot be removed")
        changes = data.model_dump(exclude_unset=True)
        # only nullable columns accept an explicit null
        changes = {k: v for k, v in changes.items() if v is not None or k == "instapay_username"}
        if "teacher_id" in changes:
            if actor.role != models.UserRole.ADMIN:
                if changes["teacher_id"] != course.teacher_id:
                    raise PermissionError("Teachers cannot reassign courses")
            else:
                self._teacher(changes["teacher_id"])
        if "level_id" in changes:
            self._check_level(changes["level_id"])

        with MediaPlan(self.storage, "courses") as plan:
            changes.update(plan.stage({"image_url": ("image", image), "pdf_link": ("pdf", pdf)}, current=course))
            for key, value in changes.items():
                setattr(course, key, value)
            self.courses.add(course)
            self.session.commit()
        self.session.refresh(course)
        return course

    def delete(self, course_id: str) -> None:
        course = self.get(course_id)
        with MediaPlan(self.storage) as plan:
            plan.retire(*course_media(course))
            self.courses.delete(course)
            self.session.commit()
        logger.info("course deleted id=%s media=%d", course_id, len(plan.obsolete))


class ChapterService:
    def __init__(self, session: Session, storage=None):
        self.session = session
        self.storage = storage
        self.chapters = repositories.ChapterRepository(session)
        self.courses = repositories.CourseRepository(session)

    def _course(self, course_id: str) -> models.Course:
        course = self.courses.get(course_id)
        if not course:
            raise NotFoundError("Course not found")
        return course

    def get(self, chapter_id: str) -> models.Chapter:
        chapter = self.chapters.get(chapter_id)
        if not chapter:
            raise NotFoundError("Chapter not found")
        return chapter

    def list(self, course_id: str) -> List[models.Chapter]:
        self._course(course_id)
        return self.chapters.list_for_course(course_id)

    def create(self, actor: models.User, data: schemas.ChapterIn) -> models.Chapter:
        """Append a chapter at the end of its course."""
        course = self._course(data.course_id)
        ensure_can_edit(actor, course)
        with conflict_on_integrity(self.session, ORDER_CONFLICT):
            position = self.chapters.max_position(course.id) + 1
            chapter = self.chapters.add(models.Chapter(title=data.title, course_id=course.id, position=position))
            self.session.commit()
        self.session.refresh(chapter)
        return chapter

    def update(self, actor: models.User, chapter_id: str, data: schemas.ChapterPatch) -> models.Chapter:
        chapter = self.get(chapter_id)
        ensure_can_edit(actor, chapter.course)
        chapter.title = data.title
        self.chapters.add(chapter)
        self.session.commit()
        self.session.refresh(chapter)
        return chapter

    def delete(self, actor: models.User, chapter_id: str) -> None:
        """Delete a chapter with its lessons and close the gap it leaves."""
        chapter = self.get(chapter_id)
        course = chapter.course
        ensure_can_edit(actor, course)
        with MediaPlan(self.storage) as plan:
            plan.retire(*chapter_media(chapter))
            with conflict_on_integrity(self.session, ORDER_CONFLICT):
                self.chapters.delete(chapter)
                renumber(self.session, self.chapters.list_for_course(course.id))
                self.session.commit()
        logger.info("chapter deleted id=%s course_id=%s", chapter_id, course.id)

    def reorder(self, actor: models.User, course_id: str, chapter_ids: Sequence[str]) -> List[models.Chapter]:
        """Set the chapter order of a course.

        `chapter_ids` must list every chapter of the course exactly once.
        """
        course = self._course(course_id)
        ensure_can_edit(actor, course)
        current = self.chapters.list_for_course(course.id)
        missing, extra = diff_order((c.id for c in current), chapter_ids)
        if extra:
            foreign = self.chapters.existing_ids(sorted(extra))
            if foreign:
                raise NotFoundError(f"Chapters not found in this course: {', '.join(sorted(foreign))}")
        if missing or extra:
            raise ValueError("chapter_ids must list every chapter of the course exactly once")
        by_id = {c.id: c for c in current}
        ordered = [by_id[i] for i in chapter_ids]
        with conflict_on_integrity(self.session, ORDER_CONFLICT):
            renumber(self.session, ordered)
            self.session.commit()
        logger.info("chapters reordered course_id=%s count=%d", course.id, len(ordered))
        return self.chapters.list_for_course(course.id)


class LessonService:
    MEDIA_SLOTS = (("video", "video", "video"), ("pdf_link", "pdf", "pdf"), ("thumbnail", "image", "thumbnail"))

    def __init__(self, session: Session, storage=None):
        self.session = session
        self.storage = storage
        self.lessons = repositories.LessonRepository(session)
        self.chapters = repositories.ChapterRepository(session)

    def _chapter(self, chapter_id: str) -> models.Chapter:
        chapter = self.chapters.get(chapter_id)
        if not chapter:
            raise NotFoundError("Chapter not found")
        return chapter

    def get(self, lesson_id: str) -> models.Lesson:
        lesson = self.lessons.get(lesson_id)
        if not lesson:
            raise NotFoundError("Lesson not found")
        return lesson

    def list(self, chapter_id: str) -> List[models.Lesson]:
        self._chapter(chapter_id)
        return self.lessons.list_for_chapter(chapter_id)

    def _slots(self, media: dict) -> dict:
        """Map lesson columns to `(kind, input)` from a dict keyed by form field name."""
        return {column: (kind, media.get(field)) for column, kind, field in self.MEDIA_SLOTS}

    def create(self, actor: models.User, data: schemas.LessonIn, media: Optional[dict] = None) -> models.Lesson:
        """Append a lesson to its chapter, uploading any attached media first.

        `media` maps the field names `video`, `pdf` and `thumbnail` to inputs.
        """
        chapter = self._chapter(data.chapter_id)
        ensure_can_edit(actor, chapter.course)
        with MediaPlan(self.storage, "lessons") as plan:
            values = plan.stage(self._slots(media or {}))
            with conflict_on_integrity(self.session, ORDER_CONFLICT):
                position = self.lessons.max_position(chapter.id) + 1
                lesson = self.lessons.add(models.Lesson(**data.model_dump(), **values, position=position))
                self.session.commit()
        self.session.refresh(lesson)
        return lesson

    def update(
        self, actor: models.User, lesson_id: str, data: schemas.LessonPatch, media: Optional[dict] = None
    ) -> models.Lesson:
        lesson = self.get(lesson_id)
        ensure_can_edit(actor, lesson.chapter.course)
        changes = data.model_dump(exclude_unset=True)
        changes = {k: v for k, v in changes.items() if v is not None or k == "description"}
        with MediaPlan(self.storage, "lessons") as plan:
            changes.update(plan.stage(self._slots(media or {}), current=lesson))
            for key, value in changes.items():
                setattr(lesson, key, value)
            self.lessons.add(lesson)
            self.session.commit()
        self.session.refresh(lesson)
        return lesson

    def delete(self, actor: models.User, lesson_id: str) -> None:
        lesson = self.get(lesson_id)
        chapter = lesson.chapter
        ensure_can_edit(actor, chapter.course)
        with MediaPlan(self.storage) as plan:
            plan.retire(*lesson_media(lesson))
            with conflict_on_integrity(self.session, ORDER_CONFLICT):
                self.lessons.delete(lesson)
                renumber(self.session, self.lessons.list_for_chapter(chapter.id))
                self.session.commit()
        logger.info("lesson deleted id=%s chapter_id=%s", lesson_id, chapter.id)

    def reorder(self, actor: models.User, chapter_id: str, lesson_ids: Sequence[str]) -> List[models.Lesson]:
        chapter = self._chapter(chapter_id)
        ensure_can_edit(actor, chapter.course)
        current = self.lessons.list_for_chapter(chapter.id)
        missing, extra = diff_order((lesson.id for lesson in current), lesson_ids)
        if extra:
            foreign = self.lessons.existing_ids(sorted(extra))
            if foreign:
                raise NotFoundError(f"Lessons not found in this chapter: {', '.join(sorted(foreign))}")
        if missing or extra:
            raise ValueError("lesson_ids must list every lesson of the chapter exactly once")
        by_id = {lesson.id: lesson for lesson in current}
        ordered = [by_id[i] for i in lesson_ids]
        with conflict_on_integrity(self.session, ORDER_CONFLICT):
            renumber(self.session, ordered)
            self.session.commit()
        logger.info("lessons reordered chapter_id=%s count=%d", chapter.id, len(ordered))
        return self.lessons.list_for_chapter(chapter.id)
