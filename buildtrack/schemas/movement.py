from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .common import Pagination
from .material import MaterialOut


class IssueCreate(BaseModel):
    project_id: int
    material_id: int
    quantity_issued: int = Field(gt=0)
    location: str = Field(..., min_length=1)
    warehouse_id: Optional[int] = None
    mrr_id: Optional[int] = None
    issue_date: Optional[str] = None
    issue_purpose: Optional[str] = None
    issued_by_user_id: Optional[int] = None
    received_by_user_id: Optional[int] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "project_id": 1,
                "material_id": 7,
                "quantity_issued": 20,
                "location": "Block B, level 3",
                "warehouse_id": 1,
            }
        }
    }


class IssueUpdate(BaseModel):
    quantity_issued: Optional[int] = Field(default=None, gt=0)
    location: Optional[str] = None
    issue_date: Optional[str] = None
    issue_purpose: Optional[str] = None
    status: Optional[str] = None


class IssueCancel(BaseModel):
    reason: Optional[str] = None


class IssueOut(BaseModel):
    id: int
    project_id: int
    material_id: int
    warehouse_id: Optional[int]
    mrr_id: Optional[int]
    quantity_issued: int
    issue_date: str
    issue_purpose: Optional[str]
    location: str
    issued_by_user_id: int
    received_by_user_id: int
    created_by_user_id: int
    updated_by_user_id: Optional[int] = None
    status: str
    created_at: str

    class Config:
        from_attributes = True


class IssueList(BaseModel):
    issues: list[IssueOut]
    pagination: Pagination


class ReturnCreate(BaseModel):
    project_id: int
    material_id: int
    quantity: int = Field(gt=0)
    issue_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    return_date: Optional[str] = None
    return_reason: Optional[str] = None
    condition_status: str = "GOOD"
    returned_by_user_id: Optional[int] = None


class ReturnUpdate(BaseModel):
    quantity: Optional[int] = Field(default=None, gt=0)
    return_date: Optional[str] = None
    return_reason: Optional[str] = None
    condition_status: Optional[str] = None


class ReturnOut(BaseModel):
    id: int
    project_id: int
    material_id: int
    warehouse_id: Optional[int]
    issue_id: Optional[int]
    quantity: int
    return_date: str
    return_reason: Optional[str]
    condition_status: str
    returned_by_user_id: int
    created_at: str

    class Config:
        from_attributes = True


class ReturnList(BaseModel):
    returns: list[ReturnOut]
    pagination: Pagination


class ConsumptionCreate(BaseModel):
    project_id: int
    material_id: int
    quantity_consumed: int = Field(gt=0)
    consumption_date: Optional[str] = None
    consumption_purpose: Optional[str] = None
    location: Optional[str] = None


class ConsumptionUpdate(BaseModel):
    quantity_consumed: Optional[int] = Field(default=None, gt=0)
    consumption_date: Optional[str] = None
    consumption_purpose: Optional[str] = None
    location: Optional[str] = None


class ConsumptionOut(BaseModel):
    id: int
    project_id: int
    material_id: int
    quantity_consumed: int
    consumption_date: str
    consumption_purpose: Optional[str]
    location: Optional[str]
    recorded_by_user_id: int
    created_at: str

    class Config:
        from_attributes = True


class ConsumptionList(BaseModel):
    consumptions: list[ConsumptionOut]
    pagination: Pagination


class RestockLine(BaseModel):
    material_id: int
    restock_quantity: int = Field(gt=0)
    cost_per_unit: Optional[float] = Field(default=None, ge=0)
    supplier: Optional[str] = None
    location: Optional[str] = None
    warehouse_id: Optional[int] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None


class BulkRestock(BaseModel):
    items: list[RestockLine] = Field(..., min_length=1)


class RestockResult(BaseModel):
    message: str
    materials: list[MaterialOut]


class IssueSaved(BaseModel):
    message: str
    issue: IssueOut


class ReturnSaved(BaseModel):
    message: str
    material_return: ReturnOut


class ConsumptionSaved(BaseModel):
    message: str
    consumption: ConsumptionOut


class RestockSaved(BaseModel):
    message: str
    material: MaterialOut
    restock_quantity: int
