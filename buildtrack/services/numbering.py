"""Document number generation for POs, MRRs and goods receipts."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models.mrr import MaterialRequirementRequest
from ..models.purchase_order import PurchaseOrder
from ..models.receipt import MaterialReceipt


def _next_sequence(db: Session, column, prefix: str) -> int:
    """One past the highest numeric suffix already issued under ``prefix``."""

    stmt = select(func.max(column)).where(column.like(f"{prefix}%"))
    current = db.execute(stmt).scalar()
    if not current:
        return 1
    suffix = current[len(prefix):]
    return int(suffix) + 1 if suffix.isdigit() else 1


def next_po_number(db: Session) -> str:
    return f"PO{_next_sequence(db, PurchaseOrder.po_number, 'PO'):06d}"


def next_receipt_number(db: Session) -> str:
    return f"GRN{_next_sequence(db, MaterialReceipt.receipt_number, 'GRN'):06d}"


def next_mrr_number(db: Session, *, now: datetime | None = None) -> str:
    """``MRR<YYYY><MM><seq>``; the sequence restarts every month."""

    now = now or datetime.utcnow()
    prefix = f"MRR{now.year:04d}{now.month:02d}"
    return f"{prefix}{_next_sequence(db, MaterialRequirementRequest.mrr_number, prefix):04d}"
