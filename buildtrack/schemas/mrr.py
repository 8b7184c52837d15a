from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from .common import Pagination


class MrrItemIn(BaseModel):
    item_id: int
    quantity_requested: int = Field(gt=0)
    specifications: Optional[str] = None
    purpose: Optional[str] = None
    priority: Optional[str] = None
    estimated_cost_per_unit: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class MrrCreate(BaseModel):
    project_id: int
    required_date: str
    request_date: Optional[str] = None
    priority: Optional[str] = None
    notes: Optional[str] = None
    items: list[MrrItemIn] = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {
                "project_id": 1,
                "required_date": "2026-04-30",
                "priority": "HIGH",
                "items": [{"item_id": 4, "quantity_requested": 200, "estimated_cost_per_unit": 380}],
            }
        }
    }


class MrrUpdate(BaseModel):
    required_date: Optional[str] = None
    priority: Optional[str] = None
    notes: Optional[str] = None
    items: Optional[list[MrrItemIn]] = None


class MrrReview(BaseModel):
    action: Literal["approve", "reject"]
    rejection_reason: Optional[str] = None


class InventoryCheckRequest(BaseModel):
    auto_create_materials: bool = False


class MrrItemOut(BaseModel):
    id: int
    item_id: int
    quantity_requested: int
    specifications: Optional[str]
    purpose: Optional[str]
    priority: str
    estimated_cost_per_unit: Optional[float]
    total_estimated_cost: Optional[float]
    notes: Optional[str]

    class Config:
        from_attributes = True


class MrrOut(BaseModel):
    id: int
    mrr_number: str
    project_id: int
    requested_by_user_id: int
    request_date: str
    required_date: str
    priority: str
    status: str
    approved_by_user_id: Optional[int]
    approved_at: Optional[str]
    rejection_reason: Optional[str]
    total_estimated_cost: float
    notes: Optional[str]
    items: list[MrrItemOut]
    created_at: str

    class Config:
        from_attributes = True


class MrrList(BaseModel):
    mrrs: list[MrrOut]
    pagination: Pagination


class InventoryCheckLine(BaseModel):
    mrr_item_id: int
    item_id: int
    item_name: Optional[str]
    item_code: Optional[str]
    required_quantity: int
    available_stock: int
    material_id: Optional[int]
    warehouse_id: Optional[int]
    warehouse_name: Optional[str]
    status: str


class InventoryCheckSummary(BaseModel):
    total_items: int
    available_items: int
    insufficient_stock_items: int
    not_in_inventory_items: int
    created_items: int


class InventoryCheckResult(BaseModel):
    message: str
    mrr_id: int
    mrr_status: str
    inventory_status: str
    all_materials_available: bool
    materials_created: int
    inventory_check_results: list[InventoryCheckLine]
    summary: InventoryCheckSummary


class MrrSaved(BaseModel):
    message: str
    mrr: MrrOut
