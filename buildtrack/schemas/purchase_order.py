from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .common import Pagination


class PurchaseOrderLineIn(BaseModel):
    item_id: int
    quantity_ordered: int = Field(gt=0)
    unit_price: float = Field(ge=0)
    cgst_rate: float = Field(default=0.0, ge=0, le=100)
    sgst_rate: float = Field(default=0.0, ge=0, le=100)
    igst_rate: float = Field(default=0.0, ge=0, le=100)
    specifications: Optional[str] = None
    size: Optional[str] = None
    notes: Optional[str] = None


class PurchaseOrderCreate(BaseModel):
    supplier_id: int
    project_id: Optional[int] = None
    po_date: Optional[str] = None
    expected_delivery_date: Optional[str] = None
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    notes: Optional[str] = None
    items: list[PurchaseOrderLineIn] = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {
                "supplier_id": 3,
                "project_id": 1,
                "expected_delivery_date": "2026-05-10",
                "items": [
                    {"item_id": 4, "quantity_ordered": 200, "unit_price": 372.5, "cgst_rate": 9, "sgst_rate": 9}
                ],
            }
        }
    }


class PurchaseOrderFromMrr(BaseModel):
    supplier_id: int
    po_date: Optional[str] = None
    expected_delivery_date: Optional[str] = None
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    notes: Optional[str] = None
    # item_id -> unit price; lines without a price use the MRR estimate
    unit_prices: dict[int, float] = Field(default_factory=dict)
    items: Optional[list[PurchaseOrderLineIn]] = None


class PurchaseOrderUpdate(BaseModel):
    supplier_id: Optional[int] = None
    expected_delivery_date: Optional[str] = None
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    notes: Optional[str] = None
    items: Optional[list[PurchaseOrderLineIn]] = None


class PurchaseOrderLineOut(BaseModel):
    id: int
    item_id: int
    item_name: Optional[str] = None
    quantity_ordered: int
    quantity_received: int
    unit_price: float
    total_price: float
    cgst_rate: float
    sgst_rate: float
    igst_rate: float
    cgst_amount: float
    sgst_amount: float
    igst_amount: float
    specifications: Optional[str]
    size: Optional[str]
    notes: Optional[str]

    class Config:
        from_attributes = True


class PurchaseOrderOut(BaseModel):
    id: int
    po_number: str
    mrr_id: Optional[int]
    project_id: Optional[int]
    supplier_id: int
    supplier_name: Optional[str] = None
    po_date: str
    expected_delivery_date: Optional[str]
    status: str
    subtotal: float
    tax_amount: float
    total_amount: float
    payment_terms: Optional[str]
    delivery_terms: Optional[str]
    notes: Optional[str]
    created_by_user_id: int
    approved_by_user_id: Optional[int]
    approved_at: Optional[str]
    placed_at: Optional[str]
    items: list[PurchaseOrderLineOut]
    created_at: str

    class Config:
        from_attributes = True


class PurchaseOrderList(BaseModel):
    purchase_orders: list[PurchaseOrderOut]
    pagination: Pagination


class PlaceOrderResult(BaseModel):
    message: str
    purchase_order: PurchaseOrderOut
    notification_sent: bool


class PurchaseOrderSaved(BaseModel):
    message: str
    purchase_order: PurchaseOrderOut
