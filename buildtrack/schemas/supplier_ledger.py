from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from .catalog import SupplierOut
from .common import Pagination


class PaymentCreate(BaseModel):
    supplier_id: int
    payment_amount: float = Field(gt=0)
    payment_date: Optional[str] = None
    po_id: Optional[int] = None
    reference_number: Optional[str] = None
    description: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {"supplier_id": 3, "payment_amount": 25000, "reference_number": "NEFT-88213"}
        }
    }


class AdjustmentCreate(BaseModel):
    supplier_id: int
    adjustment_type: Literal["CREDIT_NOTE", "DEBIT_NOTE"]
    adjustment_amount: float = Field(gt=0)
    description: str = Field(..., min_length=1)
    adjustment_date: Optional[str] = None
    reference_number: Optional[str] = None


class LedgerEntryOut(BaseModel):
    id: int
    supplier_id: int
    po_id: Optional[int]
    transaction_type: str
    transaction_date: str
    reference_number: Optional[str]
    description: Optional[str]
    debit_amount: float
    credit_amount: float
    balance: float
    payment_status: str
    due_date: Optional[str]
    created_by_user_id: int
    created_at: str

    class Config:
        from_attributes = True


class LedgerList(BaseModel):
    entries: list[LedgerEntryOut]
    pagination: Pagination


class SupplierSummary(BaseModel):
    supplier_id: int
    supplier_name: str
    total_debit: float
    total_credit: float
    balance: float
    last_transaction_date: Optional[str]
    overdue_count: int


class SupplierStatement(BaseModel):
    supplier: SupplierOut
    entries: list[LedgerEntryOut]
    total_debit: float
    total_credit: float
    current_balance: float


class LedgerEntrySaved(BaseModel):
    message: str
    entry: LedgerEntryOut
