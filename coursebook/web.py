"""
Flask web application.

Routes:

    GET  /                                         admin dashboard (?new=1 opens the create form)
    POST /projects                                 create a project
    GET  /admin/projects/<id>                      project admin view
         ?settings=1        settings editor open
         ?course=new|<cid>  course editor open
         ?delete=<cid>      delete confirmation open
         ?expand=<cid>      schedules shown for that course (repeatable)
    POST /admin/projects/<id>/settings             update project settings
    POST /admin/projects/<id>/courses              create a course
    POST /admin/projects/<id>/courses/<cid>        update a course
    POST /admin/projects/<id>/courses/<cid>/delete delete a course
    GET  /projects/<slug>                          public project page
    GET  /health

Error handling:
- ValidationError -> form re-rendered open with inline messages (400)
- StoreError      -> logged, alert shown, form re-rendered open (502)
- unknown project -> not-found page (404)

After every successful write the browser is redirected, so the next page
is built from freshly fetched data.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional
from urllib.parse import urlencode

from flask import Flask, abort, current_app, flash, jsonify, redirect, render_template, request, url_for
from werkzeug.datastructures import MultiDict

from coursebook.config import DEFAULT_SECRET_KEY, Settings
from coursebook.errors import StoreError, ValidationError
from coursebook.model import (
    DEFAULT_COURSE_ICON,
    DEFAULT_PROJECT_ICON,
    Icon,
    ManagedResource,
    format_capacity,
)
from coursebook.repository import add_custom_resource
from coursebook.schedules import format_date, format_datetime, format_time
from coursebook.store import DocumentStore, build_store
from coursebook.views import (
    ProjectAdminView,
    Services,
    load_dashboard,
    load_public_page,
    parse_resource_rows,
)


logger = logging.getLogger(__name__)

MSG_LOAD_FAILURE = "データの取得に失敗しました。"
MSG_PROJECT_NOT_FOUND = "プロジェクトが見つかりません。"
MSG_PUBLIC_NOT_FOUND = "プロジェクトが見つかりませんでした。"


def create_app(settings: Optional[Settings] = None, store: Optional[DocumentStore] = None) -> Flask:
    """
    Build the Flask app. The store is created once here (or injected by the
    caller) and shared by every request.
    """
    settings = settings or Settings(backend="local")
    store = store or build_store(settings)
    if settings.secret_key == DEFAULT_SECRET_KEY and settings.backend != "local":
        logger.warning("Using the built-in development secret key; set COURSEBOOK_SECRET_KEY")

    app = Flask(__name__)
    app.secret_key = settings.secret_key
    app.config["COURSEBOOK_SETTINGS"] = settings
    app.extensions["coursebook"] = Services.from_store(store, owner_id=settings.owner_id)

    _register_filters(app, settings)
    _register_routes(app)
    return app


def services() -> Services:
    return current_app.extensions["coursebook"]


# ---------------------------------------------------------------------------
# Template helpers
# ---------------------------------------------------------------------------


def _register_filters(app: Flask, settings: Settings) -> None:
    tz = settings.timezone

    app.add_template_filter(lambda dt: format_date(dt, tz), "date")
    app.add_template_filter(lambda dt: format_time(dt, tz), "time")
    app.add_template_filter(lambda dt: format_datetime(dt, tz), "datetime")
    app.add_template_filter(format_capacity, "capacity")
    app.add_template_filter(lambda name: Icon.from_name(name).symbol, "icon")


def _admin_url(project_id: str, **params: Any) -> str:
    base = url_for("project_admin", project_id=project_id)
    query = [(k, v) for k, values in params.items() for v in (values if isinstance(values, list) else [values])]
    return f"{base}?{urlencode(query)}" if query else base


# ---------------------------------------------------------------------------
# Admin rendering
# ---------------------------------------------------------------------------


def _render_dashboard(status: int = 200, **form_state: Any):
    projects = load_dashboard(services())
    return (
        render_template(
            "dashboard.html",
            projects=projects,
            form_open=form_state.get("form_open", False),
            values=form_state.get("values") or {"icon": DEFAULT_PROJECT_ICON},
            errors=form_state.get("errors") or {},
            alert=form_state.get("alert"),
        ),
        status,
    )


def _load_admin_view(project_id: str) -> ProjectAdminView:
    view = ProjectAdminView(services(), project_id)
    if not view.load():
        abort(404, description=MSG_PROJECT_NOT_FOUND)
    return view


def _render_admin(view: ProjectAdminView, status: int = 200, **state: Any):
    if view.project is None:
        abort(404, description=MSG_PROJECT_NOT_FOUND)
    args = request.args
    expanded = args.getlist("expand")

    course_mode = state.get("course_mode", args.get("course"))
    editing = view.course(course_mode) if course_mode not in (None, "new") else None
    if course_mode not in (None, "new") and editing is None:
        course_mode = None

    course_values = state.get("course_values")
    if course_values is None:
        course_values = {
            "title": editing.title if editing else "",
            "description": editing.description if editing else "",
            "icon": editing.icon if editing else DEFAULT_COURSE_ICON,
        }

    settings_open = state.get("settings_open", args.get("settings") == "1")
    settings_values = state.get("settings_values") or {
        "projectName": view.project.project_name,
        "projectSlug": view.project.project_slug,
        "icon": view.project.icon,
    }
    resources = state.get("resources") or view.project.managed_resources

    return (
        render_template(
            "project_admin.html",
            view=view,
            project=view.project,
            courses=view.courses,
            expanded=expanded,
            course_mode=course_mode,
            editing=editing,
            course_values=course_values,
            course_errors=state.get("course_errors") or {},
            settings_open=settings_open,
            settings_values=settings_values,
            settings_errors=state.get("settings_errors") or {},
            resources=resources,
            confirm_delete=view.course(args.get("delete")),
            alert=state.get("alert"),
            admin_url=_admin_url,
        ),
        status,
    )


def _resources_from_form(form: MultiDict) -> list[ManagedResource]:
    return parse_resource_rows(
        ids=form.getlist("resource_id"),
        labels=form.getlist("resource_label"),
        units=form.getlist("resource_unit"),
        primary_ids=form.getlist("resource_primary"),
        removed_ids=form.getlist("resource_remove"),
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def _register_routes(app: Flask) -> None:
    @app.route("/")
    def dashboard():
        return _render_dashboard(form_open=request.args.get("new") == "1")

    @app.route("/projects", methods=["POST"])
    def create_project():
        values = {
            "projectName": request.form.get("projectName", ""),
            "projectSlug": request.form.get("projectSlug", ""),
            "icon": request.form.get("icon", ""),
        }
        try:
            project = services().projects.create(values["projectName"], values["projectSlug"], values["icon"])
        except ValidationError as exc:
            return _render_dashboard(400, form_open=True, values=values, errors=exc.errors)
        except StoreError:
            logger.exception("プロジェクトの作成に失敗しました")
            return _render_dashboard(
                502, form_open=True, values=values, alert="プロジェクトの作成に失敗しました。"
            )
        flash(f"プロジェクト「{project.project_name}」を作成しました。", "success")
        return redirect(url_for("dashboard"))

    @app.route("/admin/projects/<project_id>")
    def project_admin(project_id: str):
        return _render_admin(_load_admin_view(project_id))

    @app.route("/admin/projects/<project_id>/settings", methods=["POST"])
    def update_project(project_id: str):
        view = _load_admin_view(project_id)
        form = request.form
        values = {k: form.get(k, "") for k in ("projectName", "projectSlug", "icon")}
        resources = _resources_from_form(form)

        if form.get("action") == "add_resource":
            resources = add_custom_resource(resources)
            return _render_admin(view, settings_open=True, settings_values=values, resources=resources)

        try:
            services().projects.update(
                project_id,
                name=values["projectName"],
                slug=values["projectSlug"],
                icon=values["icon"],
                managed_resources=resources,
            )
        except ValidationError as exc:
            return _render_admin(
                view, 400, settings_open=True, settings_values=values, resources=resources, settings_errors=exc.errors
            )
        except StoreError:
            logger.exception("プロジェクトの更新に失敗しました")
            return _render_admin(
                view,
                502,
                settings_open=True,
                settings_values=values,
                resources=resources,
                alert="プロジェクトの更新に失敗しました。",
            )
        flash("プロジェクト設定を保存しました。", "success")
        return redirect(_admin_url(project_id))

    def _save_course(project_id: str, course_id: Optional[str]):
        view = _load_admin_view(project_id)
        if course_id is not None and view.course(course_id) is None:
            abort(404, description="講座が見つかりません。")

        values = {k: request.form.get(k, "") for k in ("title", "description", "icon")}
        repo = services().courses
        mode = course_id or "new"
        try:
            if course_id is None:
                repo.create(project_id, values["title"], values["description"], values["icon"])
            else:
                repo.update(project_id, course_id, values["title"], values["description"], values["icon"])
        except ValidationError as exc:
            return _render_admin(view, 400, course_mode=mode, course_values=values, course_errors=exc.errors)
        except StoreError:
            logger.exception("講座の保存に失敗しました")
            return _render_admin(view, 502, course_mode=mode, course_values=values, alert="エラーが発生しました。")
        flash("講座を保存しました。", "success")
        return redirect(_admin_url(project_id))

    @app.route("/admin/projects/<project_id>/courses", methods=["POST"])
    def create_course(project_id: str):
        return _save_course(project_id, None)

    @app.route("/admin/projects/<project_id>/courses/<course_id>", methods=["POST"])
    def update_course(project_id: str, course_id: str):
        return _save_course(project_id, course_id)

    @app.route("/admin/projects/<project_id>/courses/<course_id>/delete", methods=["POST"])
    def delete_course(project_id: str, course_id: str):
        view = _load_admin_view(project_id)
        course = view.course(course_id)
        try:
            services().courses.delete(project_id, course_id)
        except StoreError:
            logger.exception("講座の削除に失敗しました")
            return _render_admin(view, 502, alert="エラーが発生しました。")
        flash(f"講座「{course.title if course else course_id}」を削除しました。", "success")
        return redirect(_admin_url(project_id))

    @app.route("/projects/<slug>")
    def public_project(slug: str):
        page = load_public_page(services(), slug)
        if page is None:
            return render_template("not_found.html", message=MSG_PUBLIC_NOT_FOUND), 404
        return render_template("public_project.html", page=page, project=page.project)

    @app.route("/health")
    def health():
        return jsonify({"status": "healthy", "timestamp": time.time()})

    @app.errorhandler(404)
    def not_found(exc):
        message = getattr(exc, "description", None) or MSG_PROJECT_NOT_FOUND
        return render_template("not_found.html", message=message), 404

    @app.errorhandler(StoreError)
    def store_failure(exc: StoreError):
        logger.exception("Store request failed: %s", exc)
        return render_template("error.html", message=MSG_LOAD_FAILURE), 502
