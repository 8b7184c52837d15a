from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.constants import ROLE_ONSITE_TEAM, ROLE_PROJECT_MANAGER
from ..crud import projects as crud
from ..db.session import get_db
from ..deps.auth import get_current_user, require_roles
from ..schemas.common import Message, page_payload
from ..schemas.project import (
    ProjectCreate,
    ProjectList,
    ProjectOut,
    ProjectSaved,
    ProjectStats,
    ProjectUpdate,
    TaskCreate,
    TaskList,
    TaskOut,
    TaskSaved,
    TaskStatusUpdate,
    TaskUpdate,
)

router = APIRouter(prefix="/api/v1/projects", tags=["projects"], dependencies=[Depends(get_current_user)])
tasks_router = APIRouter(prefix="/api/v1/tasks", tags=["tasks"], dependencies=[Depends(get_current_user)])

_managers = require_roles(ROLE_PROJECT_MANAGER)
_site_team = require_roles(ROLE_PROJECT_MANAGER, ROLE_ONSITE_TEAM)


@router.get("", response_model=ProjectList)
def api_list_projects(
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return page_payload(crud.list_projects(db, status=status, search=search, page=page, limit=limit), "projects")


@router.post("", response_model=ProjectSaved, status_code=201, dependencies=[Depends(_managers)])
def api_create_project(payload: ProjectCreate, db: Session = Depends(get_db)):
    project = crud.create_project(db, payload.model_dump(exclude_none=True))
    return {"message": "Project created successfully", "project": project}


@router.get("/{project_id}", response_model=ProjectOut)
def api_get_project(project_id: int, db: Session = Depends(get_db)):
    return crud.get_project(db, project_id)


@router.get("/{project_id}/stats", response_model=ProjectStats)
def api_project_stats(project_id: int, db: Session = Depends(get_db)):
    return crud.project_stats(db, crud.get_project(db, project_id))


@router.patch("/{project_id}", response_model=ProjectSaved, dependencies=[Depends(_managers)])
def api_update_project(project_id: int, payload: ProjectUpdate, db: Session = Depends(get_db)):
    project = crud.get_project(db, project_id)
    project = crud.update_project(db, project, payload.model_dump(exclude_unset=True))
    return {"message": "Project updated successfully", "project": project}


@router.delete("/{project_id}", response_model=Message, dependencies=[Depends(_managers)])
def api_delete_project(project_id: int, db: Session = Depends(get_db)):
    crud.delete_project(db, crud.get_project(db, project_id))
    return {"message": "Project deleted successfully"}


@tasks_router.get("", response_model=TaskList)
def api_list_tasks(
    project_id: Optional[int] = None,
    assigned_user_id: Optional[int] = None,
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    result = crud.list_tasks(
        db, project_id=project_id, assigned_user_id=assigned_user_id, status=status, page=page, limit=limit
    )
    return page_payload(result, "tasks")


@tasks_router.post("", response_model=TaskSaved, status_code=201, dependencies=[Depends(_site_team)])
def api_create_task(payload: TaskCreate, db: Session = Depends(get_db)):
    task = crud.create_task(db, payload.model_dump(exclude_none=True))
    return {"message": "Task created successfully", "task": task}


@tasks_router.get("/{task_id}", response_model=TaskOut)
def api_get_task(task_id: int, db: Session = Depends(get_db)):
    return crud.get_task(db, task_id)


@tasks_router.patch("/{task_id}", response_model=TaskSaved, dependencies=[Depends(_site_team)])
def api_update_task(task_id: int, payload: TaskUpdate, db: Session = Depends(get_db)):
    task = crud.update_task(db, crud.get_task(db, task_id), payload.model_dump(exclude_unset=True))
    return {"message": "Task updated successfully", "task": task}


@tasks_router.patch("/{task_id}/status", response_model=TaskSaved)
def api_set_task_status(task_id: int, payload: TaskStatusUpdate, db: Session = Depends(get_db)):
    task = crud.set_task_status(db, crud.get_task(db, task_id), payload.status)
    return {"message": "Task status updated successfully", "task": task}


@tasks_router.delete("/{task_id}", response_model=Message, dependencies=[Depends(_managers)])
def api_delete_task(task_id: int, db: Session = Depends(get_db)):
    crud.delete_task(db, crud.get_task(db, task_id))
    return {"message": "Task deleted successfully"}
