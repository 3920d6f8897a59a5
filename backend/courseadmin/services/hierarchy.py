"""Academic hierarchy services: universities, colleges, departments and levels.

Deleting a node removes its whole subtree through the ORM cascade. Media
of the courses and lessons that disappear with it is deleted from the host
after the commit succeeds.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Type

from pydantic import BaseModel
from sqlmodel import Session

from .. import models, repositories
from ..exceptions import NotFoundError
from ..utils.media import MediaPlan
from .common import courses_media

logger = logging.getLogger("courseadmin.hierarchy")


class _NodeService(ABC):
    """get / create / update / delete shared by every hierarchy level."""
    repository: Type[repositories._Repository]
    label: str
    parent_field: Optional[str] = None
    parent_model: Optional[type] = None

    def __init__(self, session: Session, storage=None):
        self.session = session
        self.storage = storage
        self.repo = self.repository(session)

    def get(self, node_id: str):
        node = self.repo.get(node_id)
        if not node:
            raise NotFoundError(f"{self.label} not found")
        return node

    def _check_parent(self, parent_id: Optional[str]) -> None:
        if self.parent_model is None or parent_id is None:
            return
        if not self.session.get(self.parent_model, parent_id):
            raise NotFoundError(f"{self.parent_model.__name__} not found")

    def create(self, data: BaseModel):
        values = data.model_dump()
        if self.parent_field:
            self._check_parent(values[self.parent_field])
        node = self.repo.add(self.repo.model(**values))
        self.session.commit()
        self.session.refresh(node)
        logger.info("%s created id=%s", self.label.lower(), node.id)
        return node

    def update(self, node_id: str, data: BaseModel):
        node = self.get(node_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if self.parent_field and self.parent_field in changes:
            self._check_parent(changes[self.parent_field])
        for key, value in changes.items():
            setattr(node, key, value)
        self.repo.add(node)
        self.session.commit()
        self.session.refresh(node)
        return node

    @abstractmethod
    def _courses(self, node) -> List[models.Course]:
        """Courses under `node`, whose media goes with it."""

    def delete(self, node_id: str) -> None:
        node = self.get(node_id)
        with MediaPlan(self.storage) as plan:
            plan.retire(*courses_media(self._courses(node)))
            self.repo.delete(node)
            self.session.commit()
        logger.info("%s deleted id=%s media=%d", self.label.lower(), node_id, len(plan.obsolete))


class UniversityService(_NodeService):
    repository = repositories.UniversityRepository
    label = "University"

    def list(self, page: int, limit: int, search: Optional[str] = None):
        return self.repo.search_page(page, limit, search=search)

    def _courses(self, node: models.University) -> List[models.Course]:
        return [c for college in node.colleges for dept in college.departments for lvl in dept.levels for c in lvl.courses]


class CollegeService(_NodeService):
    repository = repositories.CollegeRepository
    label = "College"
    parent_field = "university_id"
    parent_model = models.University

    def list(self, page: int, limit: int, search: Optional[str] = None, university_id: Optional[str] = None):
        return self.repo.search_page(page, limit, search=search, university_id=university_id)

    def _courses(self, node: models.College) -> List[models.Course]:
        return [c for dept in node.departments for lvl in dept.levels for c in lvl.courses]


class DepartmentService(_NodeService):
    repository = repositories.DepartmentRepository
    label = "Department"
    parent_field = "college_id"
    parent_model = models.College

    def list(self, college_id: str) -> List[models.Department]:
        self._check_parent(college_id)
        return self.repo.list_for_college(college_id)

    def _courses(self, node: models.Department) -> List[models.Course]:
        return [c for lvl in node.levels for c in lvl.courses]


class LevelService(_NodeService):
    repository = repositories.LevelRepository
    label = "Level"
    parent_field = "department_id"
    parent_model = models.Department

    def list(self, department_id: str) -> List[models.Level]:
        self._check_parent(department_id)
        return self.repo.list_for_department(department_id)

    def _courses(self, node: models.Level) -> List[models.Course]:
        return list(node.courses)
