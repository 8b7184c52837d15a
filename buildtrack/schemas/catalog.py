from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .common import Pagination


class WarehouseCreate(BaseModel):
    name: str = Field(..., min_length=1)
    address: Optional[str] = None
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    is_active: bool = True


class WarehouseUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    is_active: Optional[bool] = None


class WarehouseOut(BaseModel):
    id: int
    name: str
    address: Optional[str]
    contact_person: Optional[str]
    contact_phone: Optional[str]
    is_active: bool

    class Config:
        from_attributes = True


class ItemCreate(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    unit: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True

    model_config = {
        "json_schema_extra": {
            "example": {"code": "CEM-OPC53", "name": "OPC 53 Cement", "unit": "bag", "category": "Cement"}
        }
    }


class ItemUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    unit: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class ItemOut(BaseModel):
    id: int
    code: str
    name: str
    unit: Optional[str]
    category: Optional[str]
    brand: Optional[str]
    description: Optional[str]
    is_active: bool

    class Config:
        from_attributes = True


class ItemList(BaseModel):
    items: list[ItemOut]
    pagination: Pagination


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1)
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_number: Optional[str] = None
    payment_terms: Optional[str] = None
    credit_limit: Optional[float] = Field(default=None, ge=0)
    is_active: bool = True


class SupplierUpdate(BaseModel):
    name: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_number: Optional[str] = None
    payment_terms: Optional[str] = None
    credit_limit: Optional[float] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class SupplierOut(BaseModel):
    id: int
    name: str
    contact_person: Optional[str]
    phone: Optional[str]
    email: Optional[str]
    address: Optional[str]
    gst_number: Optional[str]
    payment_terms: Optional[str]
    credit_limit: Optional[float]
    is_active: bool

    class Config:
        from_attributes = True


class SupplierList(BaseModel):
    suppliers: list[SupplierOut]
    pagination: Pagination


class WarehouseSaved(BaseModel):
    message: str
    warehouse: WarehouseOut


class ItemSaved(BaseModel):
    message: str
    item: ItemOut


class SupplierSaved(BaseModel):
    message: str
    supplier: SupplierOut
