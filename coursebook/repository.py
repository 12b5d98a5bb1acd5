"""
Project and course repositories.

Both map documents to model objects and validate input before any write.
Writes are single requests; on StoreError nothing local has changed and the
caller may simply retry.

Storage layout:

    projects/{projectId}
    projects/{projectId}/courses/{courseId}
"""

from __future__ import annotations

import logging
import time
from typing import Any, Iterable, Optional

from coursebook.errors import ValidationError
from coursebook.model import (
    CUSTOM_RESOURCE_UNIT,
    DEFAULT_COURSE_ICON,
    Course,
    ManagedResource,
    Project,
)
from coursebook.slugs import PROJECTS, SlugResolver
from coursebook.store import DocumentStore, join_path, utcnow
from coursebook.validation import (
    MSG_SLUG_TAKEN,
    validate_course,
    validate_new_project,
    validate_project_update,
)


logger = logging.getLogger(__name__)

COURSES = "courses"


def new_custom_resource(label: str = "", unit: str = CUSTOM_RESOURCE_UNIT) -> ManagedResource:
    """
    A fresh non-primary resource; ids follow the resource_<epoch-millis> scheme.
    """
    return ManagedResource(id=f"resource_{int(time.time() * 1000)}", label=label, unit=unit, is_primary=False)


def add_custom_resource(resources: list[ManagedResource]) -> list[ManagedResource]:
    """
    Return `resources` with a new, empty custom resource row appended.
    The input list is left untouched.
    """
    return list(resources) + [new_custom_resource()]


class ProjectRepository:
    def __init__(self, store: DocumentStore, owner_id: str = "super-admin-user-id"):
        self.store = store
        self.owner_id = owner_id
        self.slugs = SlugResolver(store)

    def list_all(self) -> list[Project]:
        """All projects, newest first."""
        docs = self.store.list(PROJECTS, order_by="createdAt", descending=True)
        return [Project.from_document(d.id, d.fields) for d in docs]

    def get(self, project_id: str) -> Optional[Project]:
        doc = self.store.get(join_path(PROJECTS, project_id))
        if doc is None:
            return None
        return Project.from_document(doc.id, doc.fields)

    def create(self, name: str, slug: str, icon: str) -> Project:
        clean = validate_new_project(name, slug, icon)
        if self.slugs.is_taken(clean["projectSlug"]):
            raise ValidationError({"projectSlug": MSG_SLUG_TAKEN})

        fields: dict[str, Any] = {
            **clean,
            "ownerId": self.owner_id,
            "managedResources": [ManagedResource.primary_default().to_dict()],
            "createdAt": utcnow(),
        }
        project_id = self.store.create(PROJECTS, fields)
        logger.info("Created project %s (%s)", project_id, clean["projectSlug"])
        return Project.from_document(project_id, fields)

    def update(
        self,
        project_id: str,
        name: Optional[str] = None,
        slug: Optional[str] = None,
        icon: Optional[str] = None,
        managed_resources: Optional[Iterable[ManagedResource]] = None,
    ) -> Project:
        """
        Overwrite the given fields; omitted ones keep their stored value.

        A resource list without exactly one primary resource is rejected.
        """
        clean = validate_project_update(name=name, slug=slug, icon=icon, resources=managed_resources)
        if "projectSlug" in clean and self.slugs.is_taken(clean["projectSlug"], exclude_id=project_id):
            raise ValidationError({"projectSlug": MSG_SLUG_TAKEN})

        fields = dict(clean)
        if "managedResources" in fields:
            fields["managedResources"] = [r.to_dict() for r in fields["managedResources"]]

        path = join_path(PROJECTS, project_id)
        if fields:
            self.store.update(path, fields)
        doc = self.store.get(path)
        if doc is None:
            # deleted by someone else in between; last writer wins
            return Project.from_document(project_id, fields)
        return Project.from_document(doc.id, doc.fields)


class CourseRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    @staticmethod
    def _collection(project_id: str) -> str:
        return join_path(PROJECTS, project_id, COURSES)

    def list_by_project(self, project_id: str) -> list[Course]:
        """
        Courses ordered by title, ordinal (code point) comparison:
        "Apple" < "Zebra" < "banana".
        """
        docs = self.store.list(self._collection(project_id), order_by="title")
        return [Course.from_document(d.id, d.fields) for d in docs]

    def get(self, project_id: str, course_id: str) -> Optional[Course]:
        doc = self.store.get(join_path(PROJECTS, project_id, COURSES, course_id))
        if doc is None:
            return None
        return Course.from_document(doc.id, doc.fields)

    def create(
        self, project_id: str, title: str, description: Optional[str] = None, icon: str = DEFAULT_COURSE_ICON
    ) -> Course:
        clean = validate_course(title, description, icon)
        now = utcnow()
        fields = {**clean, "createdAt": now, "updatedAt": now}
        course_id = self.store.create(self._collection(project_id), fields)
        logger.info("Created course %s in project %s", course_id, project_id)
        return Course.from_document(course_id, fields)

    def update(
        self,
        project_id: str,
        course_id: str,
        title: str,
        description: Optional[str] = None,
        icon: str = DEFAULT_COURSE_ICON,
    ) -> Course:
        clean = validate_course(title, description, icon)
        fields = {**clean, "updatedAt": utcnow()}
        path = join_path(PROJECTS, project_id, COURSES, course_id)
        self.store.update(path, fields)
        doc = self.store.get(path)
        if doc is None:
            return Course.from_document(course_id, fields)
        return Course.from_document(doc.id, doc.fields)

    def delete(self, project_id: str, course_id: str) -> None:
        """
        Delete the course document only. Its schedules stay in the store.
        """
        self.store.delete(join_path(PROJECTS, project_id, COURSES, course_id))
        logger.info("Deleted course %s from project %s (schedules not removed)", course_id, project_id)
