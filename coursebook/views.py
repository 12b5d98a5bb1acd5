"""
View orchestration (no HTTP, no templates).

Each function or class here gathers what one page needs from the
repositories. Pages never patch local copies after a write: the web layer
redirects and the next request loads fresh data.

- load_dashboard():    all projects for the admin dashboard
- ProjectAdminView:    one project, its courses, lazily loaded schedules
- load_public_page():  slug -> project -> courses -> schedules, or None
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from coursebook.model import (
    PRIMARY_RESOURCE_ID,
    PRIMARY_RESOURCE_UNIT,
    Course,
    ManagedResource,
    Project,
    Schedule,
    format_capacity,
)
from coursebook.repository import CourseRepository, ProjectRepository
from coursebook.schedules import ScheduleCache, ScheduleReader
from coursebook.slugs import resolve_project_slug
from coursebook.store import DocumentStore


logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: DocumentStore
    projects: ProjectRepository
    courses: CourseRepository
    schedules: ScheduleReader

    @classmethod
    def from_store(cls, store: DocumentStore, owner_id: str = "super-admin-user-id") -> "Services":
        return cls(
            store=store,
            projects=ProjectRepository(store, owner_id=owner_id),
            courses=CourseRepository(store),
            schedules=ScheduleReader(store),
        )


# ---------------------------------------------------------------------------
# Capacity display
# ---------------------------------------------------------------------------


@dataclass
class CapacityLine:
    resource_id: str
    label: str
    text: str


def capacity_lines(project: Optional[Project], schedule: Schedule) -> list[CapacityLine]:
    """
    Display lines for a schedule's capacities: the primary resource first
    (always shown), then every custom resource that has a capacity entry.
    """
    primary = project.primary_resource if project else None
    unit = primary.unit if primary else PRIMARY_RESOURCE_UNIT
    lines = [
        CapacityLine(
            resource_id=PRIMARY_RESOURCE_ID,
            label="定員",
            text=format_capacity(schedule.capacity(PRIMARY_RESOURCE_ID), unit),
        )
    ]
    if project is None:
        return lines
    for r in project.custom_resources:
        value = schedule.capacity(r.id)
        if value is None:
            continue
        lines.append(CapacityLine(resource_id=r.id, label=r.label, text=format_capacity(value, r.unit)))
    return lines


# ---------------------------------------------------------------------------
# Admin dashboard
# ---------------------------------------------------------------------------


def load_dashboard(services: Services) -> list[Project]:
    return services.projects.list_all()


# ---------------------------------------------------------------------------
# Project admin view
# ---------------------------------------------------------------------------


class ProjectAdminView:
    """
    State of one admin page for a project.

    load() fetches the project and its courses; schedules are fetched per
    course only when a row is expanded, and at most once per view.
    """

    def __init__(self, services: Services, project_id: str):
        self.services = services
        self.project_id = project_id
        self.project: Optional[Project] = None
        self.courses: list[Course] = []
        self.schedule_cache = ScheduleCache(services.schedules, project_id)

    def load(self) -> bool:
        self.project = self.services.projects.get(self.project_id)
        if self.project is None:
            logger.info("Project %s not found", self.project_id)
            return False
        self.courses = self.services.courses.list_by_project(self.project_id)
        return True

    def course(self, course_id: Optional[str]) -> Optional[Course]:
        for c in self.courses:
            if c.id == course_id:
                return c
        return None

    def schedules_for(self, course_id: str) -> list[Schedule]:
        return self.schedule_cache.get(course_id)

    def capacity_lines(self, schedule: Schedule) -> list[CapacityLine]:
        return capacity_lines(self.project, schedule)


def parse_resource_rows(
    ids: Iterable[str],
    labels: Iterable[str],
    units: Iterable[str],
    primary_ids: Iterable[str] = (),
    removed_ids: Iterable[str] = (),
) -> list[ManagedResource]:
    """
    Rebuild a resource list from the parallel form columns of the settings
    editor. Rows whose id is in `removed_ids` are dropped; primary rows cannot
    be removed this way.
    """
    primary = set(primary_ids)
    removed = set(removed_ids) - primary
    out: list[ManagedResource] = []
    for rid, label, unit in zip(ids, labels, units):
        if rid in removed:
            continue
        out.append(ManagedResource(id=rid, label=label, unit=unit, is_primary=rid in primary))
    return out


# ---------------------------------------------------------------------------
# Public project page
# ---------------------------------------------------------------------------


@dataclass
class CourseWithSchedules:
    course: Course
    schedules: list[Schedule] = field(default_factory=list)


@dataclass
class PublicPage:
    project: Project
    courses: list[CourseWithSchedules]

    def capacity_lines(self, schedule: Schedule) -> list[CapacityLine]:
        return capacity_lines(self.project, schedule)


def load_public_page(services: Services, slug: str) -> Optional[PublicPage]:
    """
    Resolve `slug` and load everything the public page shows.

    Returns None when no project has this slug.
    """
    logger.debug("Public page requested for slug %r", slug)
    doc = resolve_project_slug(services.store, slug)
    if doc is None:
        return None

    project = Project.from_document(doc.id, doc.fields)
    courses = services.courses.list_by_project(project.id)
    items = [CourseWithSchedules(c, services.schedules.list_by_course(project.id, c.id)) for c in courses]
    logger.info("Public page for %r: %d course(s)", slug, len(items))
    return PublicPage(project=project, courses=items)
