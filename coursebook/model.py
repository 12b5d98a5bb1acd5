"""
Central data model definitions used across the project.

This module defines the canonical structure of Project, Course and Schedule
objects so that:
- the repositories, views and templates share the same field names
- the mapping between stored documents (camelCase keys) and Python objects
  lives in exactly one place
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PRIMARY_RESOURCE_ID = "primary"
PRIMARY_RESOURCE_LABEL = "参加枠"
PRIMARY_RESOURCE_UNIT = "名"
CUSTOM_RESOURCE_UNIT = "人"

UNLIMITED = -1
UNLIMITED_LABEL = "無制限"

DEFAULT_PROJECT_ICON = "folder"
DEFAULT_COURSE_ICON = "book-open"


# ---------------------------------------------------------------------------
# Icons
# ---------------------------------------------------------------------------


class Icon(Enum):
    """
    Known icon identifiers.

    Projects and courses store the identifier as free text; anything that is
    not listed here is displayed as IMAGE.
    """

    FOLDER = "folder"
    BRIEFCASE = "briefcase"
    BOOK_OPEN = "book-open"
    LAPTOP = "laptop"
    SCHOOL = "school"
    CALENDAR = "calendar"
    USERS = "users"
    IMAGE = "image"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "Icon":
        try:
            return cls((name or "").strip())
        except ValueError:
            return cls.IMAGE

    @property
    def symbol(self) -> str:
        return ICON_SYMBOLS[self]


ICON_SYMBOLS: dict[Icon, str] = {
    Icon.FOLDER: "📁",
    Icon.BRIEFCASE: "💼",
    Icon.BOOK_OPEN: "📖",
    Icon.LAPTOP: "💻",
    Icon.SCHOOL: "🏫",
    Icon.CALENDAR: "📅",
    Icon.USERS: "👥",
    Icon.IMAGE: "🖼️",
}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass
class ManagedResource:
    """
    A countable capacity dimension of a project (e.g. seats).

    Embedded in Project.managed_resources; it has no identity outside it.
    """

    id: str
    label: str
    unit: str
    is_primary: bool = False

    @classmethod
    def primary_default(cls) -> "ManagedResource":
        return cls(
            id=PRIMARY_RESOURCE_ID,
            label=PRIMARY_RESOURCE_LABEL,
            unit=PRIMARY_RESOURCE_UNIT,
            is_primary=True,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ManagedResource":
        return cls(
            id=str(data.get("id", "")),
            label=str(data.get("label", "")),
            unit=str(data.get("unit", "")),
            is_primary=bool(data.get("isPrimary", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "label": self.label, "unit": self.unit, "isPrimary": self.is_primary}


@dataclass
class Project:
    """
    Represents one project document stored at projects/{id}.
    """

    id: str
    project_name: str
    project_slug: str
    icon: str
    managed_resources: list[ManagedResource] = field(default_factory=list)
    owner_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "Project":
        raw_resources = data.get("managedResources") or []
        resources = [ManagedResource.from_dict(r) for r in raw_resources if isinstance(r, dict)]
        return cls(
            id=doc_id,
            project_name=str(data.get("projectName", "")),
            project_slug=str(data.get("projectSlug", "")),
            icon=str(data.get("icon") or DEFAULT_PROJECT_ICON),
            managed_resources=resources,
            owner_id=data.get("ownerId"),
            created_at=data.get("createdAt"),
        )

    @property
    def primary_resource(self) -> Optional[ManagedResource]:
        for r in self.managed_resources:
            if r.is_primary:
                return r
        return None

    @property
    def custom_resources(self) -> list[ManagedResource]:
        return [r for r in self.managed_resources if not r.is_primary]

    @property
    def icon_kind(self) -> Icon:
        return Icon.from_name(self.icon)

    @property
    def public_path(self) -> str:
        return f"/projects/{self.project_slug}"


@dataclass
class Course:
    """
    Represents one course document stored at projects/{projectId}/courses/{id}.
    """

    id: str
    title: str
    description: str = ""
    icon: str = DEFAULT_COURSE_ICON
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "Course":
        return cls(
            id=doc_id,
            title=str(data.get("title", "")),
            description=str(data.get("description") or ""),
            icon=str(data.get("icon") or DEFAULT_COURSE_ICON),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    @property
    def icon_kind(self) -> Icon:
        return Icon.from_name(self.icon)


@dataclass
class Schedule:
    """
    One dated session of a course with a capacity per managed resource id.

    A capacity of -1 means "unlimited".
    """

    id: str
    date_time: Optional[datetime]
    capacities: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "Schedule":
        caps: dict[str, int] = {}
        raw = data.get("capacities") or {}
        if isinstance(raw, dict):
            for key, value in raw.items():
                try:
                    caps[str(key)] = int(value)
                except (TypeError, ValueError):
                    continue
        dt = data.get("dateTime")
        return cls(id=doc_id, date_time=dt if isinstance(dt, datetime) else None, capacities=caps)

    def capacity(self, resource_id: str = PRIMARY_RESOURCE_ID) -> Optional[int]:
        return self.capacities.get(resource_id)

    def is_unlimited(self, resource_id: str = PRIMARY_RESOURCE_ID) -> bool:
        return self.capacities.get(resource_id) == UNLIMITED


def format_capacity(value: Optional[int], unit: str = PRIMARY_RESOURCE_UNIT) -> str:
    """
    Render a capacity for display: -1 -> '無制限', 20 -> '20名', None -> '-'.
    """
    if value is None:
        return "-"
    if value == UNLIMITED:
        return UNLIMITED_LABEL
    return f"{value}{unit}"
