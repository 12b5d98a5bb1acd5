"""
Read-only access to course schedules.

Schedules live at projects/{projectId}/courses/{courseId}/schedules/{id}
and are created outside this application.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from coursebook.model import Schedule
from coursebook.repository import COURSES
from coursebook.slugs import PROJECTS
from coursebook.store import DocumentStore, join_path


logger = logging.getLogger(__name__)

SCHEDULES = "schedules"


class ScheduleReader:
    def __init__(self, store: DocumentStore):
        self.store = store

    def list_by_course(self, project_id: str, course_id: str) -> list[Schedule]:
        """Schedules of one course, earliest first."""
        path = join_path(PROJECTS, project_id, COURSES, course_id, SCHEDULES)
        docs = self.store.list(path, order_by="dateTime")
        return [Schedule.from_document(d.id, d.fields) for d in docs]


class ScheduleCache:
    """
    Loads a course's schedules the first time they are asked for and keeps
    them for the lifetime of the cache (one admin view). No invalidation.
    """

    def __init__(self, reader: ScheduleReader, project_id: str):
        self.reader = reader
        self.project_id = project_id
        self._loaded: dict[str, list[Schedule]] = {}

    def get(self, course_id: str) -> list[Schedule]:
        if course_id not in self._loaded:
            logger.debug("Loading schedules for course %s", course_id)
            self._loaded[course_id] = self.reader.list_by_course(self.project_id, course_id)
        return self._loaded[course_id]

    def is_loaded(self, course_id: str) -> bool:
        return course_id in self._loaded


def to_local(dt: Optional[datetime], tz_name: str) -> Optional[datetime]:
    if dt is None:
        return None
    return dt.astimezone(ZoneInfo(tz_name))


def format_date(dt: Optional[datetime], tz_name: str = "Asia/Tokyo") -> str:
    local = to_local(dt, tz_name)
    return local.strftime("%Y/%m/%d") if local else "-"


def format_time(dt: Optional[datetime], tz_name: str = "Asia/Tokyo") -> str:
    local = to_local(dt, tz_name)
    return local.strftime("%H:%M") if local else "-"


def format_datetime(dt: Optional[datetime], tz_name: str = "Asia/Tokyo") -> str:
    local = to_local(dt, tz_name)
    return local.strftime("%Y/%m/%d %H:%M") if local else "-"
