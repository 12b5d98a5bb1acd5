"""
Form validation.

Each validate_* function takes raw form values, returns the cleaned values
and raises ValidationError with one message per offending field. Nothing
here touches the store.

Rules:
- project name: at least 2 characters
- project slug: at least 2 characters, lowercase letters, digits and '-'
- project icon: at least 2 characters on create, non-empty on edit
- course title: at least 2 characters; icon non-empty; description optional
- managed resources: label and unit non-empty, exactly one primary
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from coursebook.errors import ValidationError
from coursebook.model import ManagedResource


SLUG_RE = re.compile(r"^[a-z0-9-]+$")

MSG_PROJECT_NAME = "プロジェクト名は2文字以上で入力してください。"
MSG_SLUG_LENGTH = "プロジェクトIDは2文字以上で入力してください。"
MSG_SLUG_PATTERN = "プロジェクトIDは小文字の英数字とハイフンのみ使用できます。"
MSG_SLUG_TAKEN = "このプロジェクトIDは既に使用されています。"
MSG_PROJECT_ICON_CREATE = "アイコンIDを2文字以上で入力してください。"
MSG_ICON_REQUIRED = "アイコンIDを入力してください。"
MSG_COURSE_TITLE = "講座名は2文字以上で入力してください。"
MSG_REQUIRED = "必須です"
MSG_PRIMARY_COUNT = "メインリソースはちょうど1つ必要です。"


# inputs are trimmed before any length or pattern check
def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def check_slug(slug: str, errors: dict[str, str]) -> None:
    if len(slug) < 2:
        errors["projectSlug"] = MSG_SLUG_LENGTH
    elif not SLUG_RE.match(slug):
        errors["projectSlug"] = MSG_SLUG_PATTERN


def validate_new_project(name: Any, slug: Any, icon: Any) -> dict[str, str]:
    """
    Validate the dashboard "new project" form.
    """
    clean = {"projectName": _text(name), "projectSlug": _text(slug), "icon": _text(icon)}
    errors: dict[str, str] = {}

    if len(clean["projectName"]) < 2:
        errors["projectName"] = MSG_PROJECT_NAME
    check_slug(clean["projectSlug"], errors)
    if len(clean["icon"]) < 2:
        errors["icon"] = MSG_PROJECT_ICON_CREATE

    if errors:
        raise ValidationError(errors)
    return clean


def validate_resources(resources: Iterable[ManagedResource]) -> list[ManagedResource]:
    """
    Validate a managed resource list from the settings form.

    Field errors are keyed "managedResources.<index>.label" / ".unit";
    a wrong number of primary resources is reported on "managedResources".
    """
    out: list[ManagedResource] = []
    errors: dict[str, str] = {}

    for i, r in enumerate(resources):
        label = _text(r.label)
        unit = _text(r.unit)
        if not label:
            errors[f"managedResources.{i}.label"] = MSG_REQUIRED
        if not unit:
            errors[f"managedResources.{i}.unit"] = MSG_REQUIRED
        out.append(ManagedResource(id=_text(r.id), label=label, unit=unit, is_primary=bool(r.is_primary)))

    if sum(1 for r in out if r.is_primary) != 1:
        errors["managedResources"] = MSG_PRIMARY_COUNT

    if errors:
        raise ValidationError(errors)
    return out


def validate_project_update(
    name: Any = None,
    slug: Any = None,
    icon: Any = None,
    resources: Optional[Iterable[ManagedResource]] = None,
) -> dict[str, Any]:
    """
    Validate the project settings form. Only the given fields are checked
    and returned (partial update).
    """
    clean: dict[str, Any] = {}
    errors: dict[str, str] = {}

    if name is not None:
        clean["projectName"] = _text(name)
        if len(clean["projectName"]) < 2:
            errors["projectName"] = MSG_PROJECT_NAME
    if slug is not None:
        clean["projectSlug"] = _text(slug)
        check_slug(clean["projectSlug"], errors)
    if icon is not None:
        clean["icon"] = _text(icon)
        if not clean["icon"]:
            errors["icon"] = MSG_ICON_REQUIRED
    if resources is not None:
        try:
            clean["managedResources"] = validate_resources(resources)
        except ValidationError as exc:
            errors.update(exc.errors)

    if errors:
        raise ValidationError(errors)
    return clean


def validate_course(title: Any, description: Any = None, icon: Any = None) -> dict[str, str]:
    clean = {"title": _text(title), "description": _text(description), "icon": _text(icon)}
    errors: dict[str, str] = {}

    if len(clean["title"]) < 2:
        errors["title"] = MSG_COURSE_TITLE
    if not clean["icon"]:
        errors["icon"] = MSG_ICON_REQUIRED

    if errors:
        raise ValidationError(errors)
    return clean
