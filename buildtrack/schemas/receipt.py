from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from .common import Pagination

Condition = Literal["GOOD", "DAMAGED", "PARTIAL", "REJECTED"]


class ReceiptItemIn(BaseModel):
    po_item_id: int
    quantity_received: int = Field(gt=0)
    unit_price: Optional[float] = Field(default=None, ge=0)
    cgst_rate: Optional[float] = Field(default=None, ge=0, le=100)
    sgst_rate: Optional[float] = Field(default=None, ge=0, le=100)
    igst_rate: Optional[float] = Field(default=None, ge=0, le=100)
    condition_status: Literal["GOOD", "DAMAGED", "REJECTED"] = "GOOD"
    batch_number: Optional[str] = None
    expiry_date: Optional[str] = None
    notes: Optional[str] = None


class ReceiptCreate(BaseModel):
    po_id: int
    received_date: Optional[str] = None
    delivery_date: Optional[str] = None
    warehouse_id: Optional[int] = None
    project_id: Optional[int] = None
    supplier_delivery_note: Optional[str] = None
    vehicle_number: Optional[str] = None
    driver_name: Optional[str] = None
    condition_status: Condition = "GOOD"
    notes: Optional[str] = None
    items: list[ReceiptItemIn] = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {
                "po_id": 12,
                "warehouse_id": 1,
                "received_date": "2026-05-09",
                "vehicle_number": "KA-01-AB-1234",
                "items": [{"po_item_id": 31, "quantity_received": 200}],
            }
        }
    }


class ReceiveLine(BaseModel):
    receipt_item_id: int
    quantity_actually_received: int = Field(ge=0)
    received_condition: Condition = "GOOD"
    received_notes: Optional[str] = None


class ReceiveRequest(BaseModel):
    items: list[ReceiveLine] = Field(..., min_length=1)
    notes: Optional[str] = None


class CompleteRequest(BaseModel):
    completion_notes: Optional[str] = None


class VerifyLine(BaseModel):
    receipt_item_id: int
    verified_quantity: int = Field(ge=0)
    verification_notes: Optional[str] = None


class VerifyRequest(BaseModel):
    items: list[VerifyLine] = Field(..., min_length=1)
    verification_notes: Optional[str] = None


class ReceiptItemOut(BaseModel):
    id: int
    po_item_id: int
    item_id: int
    quantity_received: int
    quantity_actually_received: Optional[int]
    verified_quantity: Optional[int]
    unit_price: float
    total_price: float
    cgst_rate: float
    sgst_rate: float
    igst_rate: float
    cgst_amount: float
    sgst_amount: float
    igst_amount: float
    condition_status: str
    received_condition: Optional[str]
    received_notes: Optional[str]
    verification_notes: Optional[str]
    batch_number: Optional[str]
    expiry_date: Optional[str]
    notes: Optional[str]

    class Config:
        from_attributes = True


class ReceiptOut(BaseModel):
    id: int
    receipt_number: str
    po_id: int
    po_number: Optional[str] = None
    project_id: Optional[int]
    warehouse_id: Optional[int]
    received_date: str
    delivery_date: Optional[str]
    received_by_user_id: int
    verified_by_user_id: Optional[int]
    verified_at: Optional[str]
    verification_notes: Optional[str]
    supplier_delivery_note: Optional[str]
    vehicle_number: Optional[str]
    driver_name: Optional[str]
    condition_status: str
    status: str
    total_items: int
    notes: Optional[str]
    items: list[ReceiptItemOut]
    created_at: str

    class Config:
        from_attributes = True


class ReceiptList(BaseModel):
    receipts: list[ReceiptOut]
    pagination: Pagination


class ReceiptStatusCount(BaseModel):
    status: str
    count: int


class ReceiptStats(BaseModel):
    status_breakdown: list[ReceiptStatusCount]
    total_receipts: int
    total_value: float


class ReceiptSaved(BaseModel):
    message: str
    receipt: ReceiptOut
