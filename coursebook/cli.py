"""
CLI (Command Line Interface).

This module provides the web server entry point plus quick terminal
commands for administrators and for testing, e.g.:

    coursebook serve --port 8000
    coursebook projects
    coursebook create-project "研修" kenshu-2025 --icon folder
    coursebook courses <project_id>
    coursebook add-course <project_id> "Python入門" --description "..."
    coursebook delete-course <project_id> <course_id>
    coursebook schedules <project_id> <course_id>
    coursebook resolve <slug>

Global options:
    --config FILE        JSON config file (see coursebook.config)
    --local [DATA_FILE]  use the local JSON store instead of Firestore

Note:
- The web UI lives in coursebook/web.py
- This CLI prints plain text (no rich formatting); logging goes through rich
"""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from coursebook.config import Settings, load_settings
from coursebook.errors import ConfigError, StoreError, ValidationError
from coursebook.log import configure_logging
from coursebook.model import DEFAULT_COURSE_ICON, DEFAULT_PROJECT_ICON
from coursebook.schedules import format_datetime
from coursebook.store import build_store
from coursebook.views import Services, capacity_lines


logger = logging.getLogger(__name__)


def _print_validation(exc: ValidationError) -> None:
    for name, message in exc.errors.items():
        print(f"{name}: {message}")


def _cmd_projects(args: argparse.Namespace, services: Services) -> int:
    """
    List all projects, newest first.
    """
    projects = services.projects.list_all()
    if not projects:
        print("No projects.")
        return 0

    for p in projects:
        primary = p.primary_resource
        res = f"{primary.label}/{primary.unit}" if primary else "(no primary resource)"
        print(f"{p.id} | {p.project_name} | /projects/{p.project_slug} | {p.icon} | {res}")
    return 0


def _cmd_create_project(args: argparse.Namespace, services: Services) -> int:
    try:
        project = services.projects.create(args.name, args.slug, args.icon)
    except ValidationError as exc:
        _print_validation(exc)
        return 1

    print(f"Created: {project.id} ({project.project_slug})")
    return 0


def _cmd_courses(args: argparse.Namespace, services: Services) -> int:
    """
    List the courses of one project, ordered by title.
    """
    project = services.projects.get(args.project_id)
    if project is None:
        print(f"Project not found: {args.project_id}")
        return 1

    courses = services.courses.list_by_project(project.id)
    if not courses:
        print("No courses.")
        return 0

    for c in courses:
        desc = c.description.splitlines()[0] if c.description else ""
        print(f"{c.id} | {c.title} | {c.icon} | {desc}")
    return 0


def _cmd_add_course(args: argparse.Namespace, services: Services) -> int:
    if services.projects.get(args.project_id) is None:
        print(f"Project not found: {args.project_id}")
        return 1

    try:
        course = services.courses.create(args.project_id, args.title, args.description, args.icon)
    except ValidationError as exc:
        _print_validation(exc)
        return 1

    print(f"Created: {course.id} ({course.title})")
    return 0


def _cmd_delete_course(args: argparse.Namespace, services: Services) -> int:
    """
    Delete a course. Its schedules are not removed.
    """
    course = services.courses.get(args.project_id, args.course_id)
    if course is None:
        print(f"Course not found: {args.course_id}")
        return 1

    services.courses.delete(args.project_id, args.course_id)
    print(f"Deleted: {course.id} ({course.title})")
    return 0


def _cmd_schedules(args: argparse.Namespace, services: Services, settings: Settings) -> int:
    project = services.projects.get(args.project_id)
    schedules = services.schedules.list_by_course(args.project_id, args.course_id)
    if not schedules:
        print("No schedules.")
        return 0

    for s in schedules:
        caps = ", ".join(f"{line.label}: {line.text}" for line in capacity_lines(project, s))
        print(f"{format_datetime(s.date_time, settings.timezone)} | {caps}")
    return 0


def _cmd_resolve(args: argparse.Namespace, services: Services) -> int:
    doc = services.projects.slugs.resolve(args.slug)
    if doc is None:
        print(f"Not found: {args.slug}")
        return 1

    print(f"{args.slug} -> {doc.id}")
    return 0


def _cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    from coursebook.web import create_app

    app = create_app(settings)
    logger.info("Serving coursebook (%s backend) on http://%s:%d", settings.backend, args.host, args.port)
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="coursebook", description="coursebook admin CLI")
    parser.add_argument("--config", type=str, default=None, help="JSON config file")
    parser.add_argument(
        "--local",
        nargs="?",
        const="",
        default=None,
        metavar="DATA_FILE",
        help="Use the local store (optionally persisted to DATA_FILE) instead of Firestore",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (default: INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Run the web application")
    p_serve.add_argument("--host", type=str, default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--debug", action="store_true", help="Flask debug mode")

    sub.add_parser("projects", help="List projects")

    p_create = sub.add_parser("create-project", help="Create a project")
    p_create.add_argument("name", type=str, help="Project name")
    p_create.add_argument("slug", type=str, help="Public id (e.g. kenshu-2025)")
    p_create.add_argument("--icon", type=str, default=DEFAULT_PROJECT_ICON, help="Icon id (e.g. folder)")

    p_courses = sub.add_parser("courses", help="List courses of a project")
    p_courses.add_argument("project_id", type=str)

    p_add = sub.add_parser("add-course", help="Add a course to a project")
    p_add.add_argument("project_id", type=str)
    p_add.add_argument("title", type=str)
    p_add.add_argument("--description", type=str, default="")
    p_add.add_argument("--icon", type=str, default=DEFAULT_COURSE_ICON)

    p_del = sub.add_parser("delete-course", help="Delete a course (schedules are kept)")
    p_del.add_argument("project_id", type=str)
    p_del.add_argument("course_id", type=str)

    p_sched = sub.add_parser("schedules", help="List schedules of a course")
    p_sched.add_argument("project_id", type=str)
    p_sched.add_argument("course_id", type=str)

    p_resolve = sub.add_parser("resolve", help="Resolve a public slug to a project id")
    p_resolve.add_argument("slug", type=str)

    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Optional[str]] = {"log_level": args.log_level}
    if args.local is not None:
        overrides["backend"] = "local"
        overrides["data_file"] = args.local or None
    return load_settings(args.config, **overrides)


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = _settings_from_args(args)
    except ConfigError as exc:
        print(f"Configuration error: {exc}")
        raise SystemExit(2)

    configure_logging(settings.log_level)

    if args.command == "serve":
        raise SystemExit(_cmd_serve(args, settings))

    try:
        store = build_store(settings)
    except StoreError as exc:
        logger.error("Cannot open store: %s", exc)
        raise SystemExit(1)

    services = Services.from_store(store, owner_id=settings.owner_id)
    try:
        if args.command == "projects":
            raise SystemExit(_cmd_projects(args, services))
        if args.command == "create-project":
            raise SystemExit(_cmd_create_project(args, services))
        if args.command == "courses":
            raise SystemExit(_cmd_courses(args, services))
        if args.command == "add-course":
            raise SystemExit(_cmd_add_course(args, services))
        if args.command == "delete-course":
            raise SystemExit(_cmd_delete_course(args, services))
        if args.command == "schedules":
            raise SystemExit(_cmd_schedules(args, services, settings))
        if args.command == "resolve":
            raise SystemExit(_cmd_resolve(args, services))
    except StoreError as exc:
        logger.error("Store request failed: %s", exc)
        raise SystemExit(1)
    finally:
        services.store.close()

    raise SystemExit(2)
