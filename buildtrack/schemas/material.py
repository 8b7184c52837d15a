from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .common import Pagination


class MaterialCreate(BaseModel):
    name: Optional[str] = None
    item_id: Optional[int] = None
    project_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    item_code: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    unit: Optional[str] = None
    specification: Optional[str] = None
    supplier: Optional[str] = None
    location: Optional[str] = None
    status: Optional[str] = None
    cost_per_unit: Optional[float] = Field(default=None, ge=0)
    stock_qty: int = Field(default=0, ge=0)
    minimum_stock_level: Optional[int] = Field(default=None, ge=0)
    maximum_stock_level: Optional[int] = Field(default=None, ge=0)
    reorder_point: Optional[int] = Field(default=None, ge=0)

    model_config = {
        "json_schema_extra": {
            "example": {
                "item_id": 4,
                "warehouse_id": 1,
                "stock_qty": 120,
                "cost_per_unit": 380.0,
                "reorder_point": 25,
            }
        }
    }


class MaterialUpdate(BaseModel):
    name: Optional[str] = None
    item_id: Optional[int] = None
    project_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    item_code: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    unit: Optional[str] = None
    specification: Optional[str] = None
    supplier: Optional[str] = None
    location: Optional[str] = None
    status: Optional[str] = None
    cost_per_unit: Optional[float] = Field(default=None, ge=0)
    stock_qty: Optional[int] = Field(default=None, ge=0)
    adjustment_reason: Optional[str] = None
    minimum_stock_level: Optional[int] = Field(default=None, ge=0)
    maximum_stock_level: Optional[int] = Field(default=None, ge=0)
    reorder_point: Optional[int] = Field(default=None, ge=0)


class MaterialOut(BaseModel):
    id: int
    item_id: Optional[int]
    project_id: Optional[int]
    warehouse_id: Optional[int]
    warehouse_name: Optional[str] = None
    name: str
    item_code: Optional[str]
    category: Optional[str]
    brand: Optional[str]
    unit: Optional[str]
    specification: Optional[str]
    supplier: Optional[str]
    location: Optional[str]
    status: str
    cost_per_unit: Optional[float]
    stock_qty: int
    minimum_stock_level: int
    maximum_stock_level: int
    reorder_point: int
    is_low_stock: bool
    stock_value: float
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class MaterialList(BaseModel):
    materials: list[MaterialOut]
    pagination: Pagination


class StockLevel(BaseModel):
    material_id: int
    name: str
    item_code: Optional[str]
    category: Optional[str]
    unit: Optional[str]
    warehouse_id: Optional[int]
    warehouse_name: Optional[str]
    project_id: Optional[int]
    stock_qty: int
    reorder_point: int
    minimum_stock_level: int
    cost_per_unit: Optional[float]
    stock_value: float
    is_low_stock: bool


class HistoryEntryOut(BaseModel):
    id: int
    material_id: int
    material_name: Optional[str] = None
    project_id: Optional[int]
    transaction_type: str
    transaction_id: Optional[int]
    quantity_change: int
    quantity_before: int
    quantity_after: int
    reference_number: Optional[str]
    description: Optional[str]
    location: Optional[str]
    performed_by_user_id: int
    transaction_date: str

    class Config:
        from_attributes = True


class HistoryList(BaseModel):
    history: list[HistoryEntryOut]
    pagination: Pagination


class MaterialSaved(BaseModel):
    message: str
    material: MaterialOut
