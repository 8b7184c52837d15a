"""CRUD helpers for projects and the tasks inside them."""

from __future__ import annotations

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..core.constants import PROJECT_STATUSES, TASK_PRIORITIES, TASK_STATUSES, normalize_choice
from ..core.errors import RuleViolation
from ..db.session import unit_of_work
from ..models.material import Material
from ..models.project import Project, Task
from ..models.user import User
from ._common import Page, apply_fields, clean_text, get_or_404, paginate, require_text

_PROJECT_FIELDS = ("description", "start_date", "end_date", "budget", "owner_user_id")
_TASK_FIELDS = ("description", "assigned_user_id", "start_date", "end_date", "milestone")


def _check_dates(start: str | None, end: str | None) -> None:
    if start and end and end < start:
        raise RuleViolation("end_date cannot be before start_date")


def _choice(value: str | None, choices: tuple[str, ...], default: str, field: str) -> str:
    try:
        return normalize_choice(value, choices, default)
    except ValueError as exc:
        raise RuleViolation(f"{field} {exc}") from exc


def list_projects(db: Session, *, status: str | None = None, search: str | None = None, page: int = 1, limit: int = 20) -> Page:
    stmt = select(Project).order_by(desc(Project.created_at), desc(Project.id))
    if status:
        stmt = stmt.where(Project.status == status.upper())
    if search:
        stmt = stmt.where(Project.name.ilike(f"%{search.strip()}%"))
    return paginate(db, stmt, page=page, limit=limit)


def get_project(db: Session, project_id: int) -> Project:
    return get_or_404(db, Project, project_id, "Project")


def create_project(db: Session, payload: dict) -> Project:
    name = require_text(payload, "name")
    _check_dates(payload.get("start_date"), payload.get("end_date"))
    if payload.get("owner_user_id") is not None:
        get_or_404(db, User, payload["owner_user_id"], "Owner")
    project = Project(name=name, status=_choice(payload.get("status"), PROJECT_STATUSES, "PLANNED", "status"))
    apply_fields(project, payload, _PROJECT_FIELDS)
    project.description = clean_text(project.description)
    with unit_of_work(db):
        db.add(project)
    db.refresh(project)
    return project


def update_project(db: Session, project: Project, payload: dict) -> Project:
    if "name" in payload:
        project.name = require_text(payload, "name")
    if "status" in payload:
        project.status = _choice(payload.get("status"), PROJECT_STATUSES, project.status, "status")
    if payload.get("owner_user_id") is not None:
        get_or_404(db, User, payload["owner_user_id"], "Owner")
    apply_fields(project, payload, _PROJECT_FIELDS)
    _check_dates(project.start_date, project.end_date)
    with unit_of_work(db):
        db.add(project)
    db.refresh(project)
    return project


def delete_project(db: Session, project: Project) -> None:
    in_use = db.execute(select(Material.id).where(Material.project_id == project.id).limit(1)).first()
    if in_use:
        raise RuleViolation("Project has materials assigned and cannot be deleted")
    with unit_of_work(db):
        db.delete(project)


def project_stats(db: Session, project: Project) -> dict[str, object]:
    counts = dict(
        db.execute(
            select(Task.status, func.count(Task.id)).where(Task.project_id == project.id).group_by(Task.status)
        ).all()
    )
    material_count, material_value = db.execute(
        select(
            func.count(Material.id),
            func.coalesce(func.sum(Material.stock_qty * func.coalesce(Material.cost_per_unit, 0)), 0),
        ).where(Material.project_id == project.id)
    ).one()
    total_tasks = sum(counts.values())
    done = counts.get("DONE", 0)
    return {
        "project_id": project.id,
        "total_tasks": total_tasks,
        "tasks_by_status": {status: counts.get(status, 0) for status in TASK_STATUSES},
        "completion_percent": round(done * 100.0 / total_tasks, 2) if total_tasks else 0.0,
        "material_count": int(material_count or 0),
        "material_value": float(material_value or 0),
        "budget": project.budget,
    }


def list_tasks(
    db: Session,
    *,
    project_id: int | None = None,
    assigned_user_id: int | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> Page:
    stmt = select(Task).order_by(desc(Task.created_at), desc(Task.id))
    if project_id is not None:
        stmt = stmt.where(Task.project_id == project_id)
    if assigned_user_id is not None:
        stmt = stmt.where(Task.assigned_user_id == assigned_user_id)
    if status:
        stmt = stmt.where(Task.status == status.upper())
    return paginate(db, stmt, page=page, limit=limit)


def get_task(db: Session, task_id: int) -> Task:
    return get_or_404(db, Task, task_id, "Task")


def create_task(db: Session, payload: dict) -> Task:
    title = require_text(payload, "title")
    get_project(db, payload.get("project_id"))
    if payload.get("assigned_user_id") is not None:
        get_or_404(db, User, payload["assigned_user_id"], "Assigned user")
    _check_dates(payload.get("start_date"), payload.get("end_date"))
    task = Task(
        project_id=payload["project_id"],
        title=title,
        status=_choice(payload.get("status"), TASK_STATUSES, "TODO", "status"),
        priority=_choice(payload.get("priority"), TASK_PRIORITIES, "MEDIUM", "priority"),
    )
    apply_fields(task, payload, _TASK_FIELDS)
    task.milestone = bool(task.milestone)
    with unit_of_work(db):
        db.add(task)
    db.refresh(task)
    return task


def update_task(db: Session, task: Task, payload: dict) -> Task:
    if "title" in payload:
        task.title = require_text(payload, "title")
    if "status" in payload:
        task.status = _choice(payload.get("status"), TASK_STATUSES, task.status, "status")
    if "priority" in payload:
        task.priority = _choice(payload.get("priority"), TASK_PRIORITIES, task.priority, "priority")
    if payload.get("assigned_user_id") is not None:
        get_or_404(db, User, payload["assigned_user_id"], "Assigned user")
    apply_fields(task, payload, _TASK_FIELDS)
    _check_dates(task.start_date, task.end_date)
    with unit_of_work(db):
        db.add(task)
    db.refresh(task)
    return task


def set_task_status(db: Session, task: Task, status: str) -> Task:
    return update_task(db, task, {"status": status})


def delete_task(db: Session, task: Task) -> None:
    with unit_of_work(db):
        db.delete(task)

