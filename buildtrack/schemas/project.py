from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .common import Pagination


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)
    status: Optional[str] = None
    owner_user_id: Optional[int] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Riverside Towers",
                "start_date": "2026-01-05",
                "end_date": "2026-12-20",
                "budget": 2500000,
                "status": "ACTIVE",
            }
        }
    }


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)
    status: Optional[str] = None
    owner_user_id: Optional[int] = None


class ProjectOut(BaseModel):
    id: int
    name: str
    description: Optional[str]
    start_date: Optional[str]
    end_date: Optional[str]
    budget: Optional[float]
    status: str
    owner_user_id: Optional[int]
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class ProjectList(BaseModel):
    projects: list[ProjectOut]
    pagination: Pagination


class ProjectStats(BaseModel):
    project_id: int
    total_tasks: int
    tasks_by_status: dict[str, int]
    completion_percent: float
    material_count: int
    material_value: float
    budget: Optional[float]


class TaskCreate(BaseModel):
    project_id: int
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    assigned_user_id: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    milestone: bool = False


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    assigned_user_id: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    milestone: Optional[bool] = None


class TaskStatusUpdate(BaseModel):
    status: str


class TaskOut(BaseModel):
    id: int
    project_id: int
    title: str
    description: Optional[str]
    assigned_user_id: Optional[int]
    start_date: Optional[str]
    end_date: Optional[str]
    status: str
    priority: str
    milestone: bool
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class TaskList(BaseModel):
    tasks: list[TaskOut]
    pagination: Pagination


class ProjectSaved(BaseModel):
    message: str
    project: ProjectOut


class TaskSaved(BaseModel):
    message: str
    task: TaskOut
