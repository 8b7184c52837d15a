"""Supplier running account: purchases, payments and adjustment notes.

Every entry stores the balance owed after it is applied, so the newest entry
(by insertion order) always carries the current balance for a supplier.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import case, desc, func, select, update
from sqlalchemy.orm import Session

from ..core.constants import (
    LEDGER_CREDIT_NOTE,
    LEDGER_DEBIT_NOTE,
    LEDGER_PAYMENT,
    LEDGER_PURCHASE,
    PAYMENT_PAID,
    PAYMENT_PARTIAL,
    PAYMENT_PENDING,
)
from ..core.errors import RuleViolation
from ..db.session import unit_of_work
from ..models.purchase_order import PurchaseOrder
from ..models.supplier import Supplier, SupplierLedgerEntry
from ._common import Page, get_or_404, paginate

logger = logging.getLogger(__name__)


def _stamp() -> str:
    return datetime.utcnow().strftime("%Y%m%d%H%M%S")


def current_balance(db: Session, supplier_id: int) -> float:
    stmt = (
        select(SupplierLedgerEntry.balance)
        .where(SupplierLedgerEntry.supplier_id == supplier_id)
        .order_by(desc(SupplierLedgerEntry.id))
        .limit(1)
    )
    balance = db.execute(stmt).scalar()
    return float(balance or 0.0)


def _append(db: Session, *, supplier_id: int, debit: float = 0.0, credit: float = 0.0, **fields) -> SupplierLedgerEntry:
    balance = round(current_balance(db, supplier_id) + debit - credit, 2)
    entry = SupplierLedgerEntry(
        supplier_id=supplier_id,
        debit_amount=debit,
        credit_amount=credit,
        balance=balance,
        **fields,
    )
    db.add(entry)
    db.flush()
    return entry


def post_purchase_debit(db: Session, po: PurchaseOrder, *, user_id: int) -> SupplierLedgerEntry | None:
    """Debit the supplier for a placed PO once; later calls return the existing entry.

    Runs inside the caller's unit of work. Returns ``None`` for a zero-value PO.
    """

    existing = db.execute(
        select(SupplierLedgerEntry).where(
            SupplierLedgerEntry.po_id == po.id,
            SupplierLedgerEntry.supplier_id == po.supplier_id,
            SupplierLedgerEntry.transaction_type == LEDGER_PURCHASE,
        )
    ).scalars().first()
    if existing:
        return existing
    amount = float(po.total_amount or 0)
    if amount <= 0:
        logger.warning("supplier_ledger.skip_zero_po", extra={"extra_data": {"po_id": po.id}})
        return None
    entry = _append(
        db,
        supplier_id=po.supplier_id,
        debit=amount,
        po_id=po.id,
        transaction_type=LEDGER_PURCHASE,
        transaction_date=po.po_date,
        reference_number=po.po_number,
        description=f"Purchase Order {po.po_number}",
        payment_status=PAYMENT_PENDING,
        due_date=po.expected_delivery_date,
        created_by_user_id=user_id,
    )
    logger.info(
        "supplier_ledger.purchase_posted",
        extra={"extra_data": {"po_id": po.id, "supplier_id": po.supplier_id, "amount": amount, "balance": entry.balance}},
    )
    return entry


def record_payment(db: Session, payload: dict, *, user_id: int) -> SupplierLedgerEntry:
    supplier = get_or_404(db, Supplier, payload.get("supplier_id"), "Supplier")
    amount = float(payload.get("payment_amount") or 0)
    if amount <= 0:
        raise RuleViolation("payment_amount must be a positive number")
    if payload.get("po_id") is not None:
        get_or_404(db, PurchaseOrder, payload["po_id"], "Purchase Order")

    with unit_of_work(db):
        entry = _append(
            db,
            supplier_id=supplier.id,
            credit=amount,
            po_id=payload.get("po_id"),
            transaction_type=LEDGER_PAYMENT,
            transaction_date=payload.get("payment_date") or date.today().isoformat(),
            reference_number=payload.get("reference_number") or f"PAY-{_stamp()}",
            description=payload.get("description") or f"Payment of {amount:,.2f}",
            payment_status=PAYMENT_PAID,
            created_by_user_id=user_id,
        )
        if entry.balance > 0:
            entry.payment_status = PAYMENT_PARTIAL
            flip_from, flip_to = (PAYMENT_PENDING,), PAYMENT_PARTIAL
        else:
            flip_from, flip_to = (PAYMENT_PENDING, PAYMENT_PARTIAL), PAYMENT_PAID
        db.execute(
            update(SupplierLedgerEntry)
            .where(
                SupplierLedgerEntry.supplier_id == supplier.id,
                SupplierLedgerEntry.transaction_type == LEDGER_PURCHASE,
                SupplierLedgerEntry.payment_status.in_(flip_from),
            )
            .values(payment_status=flip_to)
            .execution_options(synchronize_session="fetch")
        )
    db.refresh(entry)
    logger.info(
        "supplier_ledger.payment_recorded",
        extra={"extra_data": {"supplier_id": supplier.id, "amount": amount, "balance": entry.balance}},
    )
    return entry


def record_adjustment(db: Session, payload: dict, *, user_id: int) -> SupplierLedgerEntry:
    supplier = get_or_404(db, Supplier, payload.get("supplier_id"), "Supplier")
    kind = (payload.get("adjustment_type") or "").upper()
    if kind not in (LEDGER_CREDIT_NOTE, LEDGER_DEBIT_NOTE):
        raise RuleViolation("adjustment_type must be CREDIT_NOTE or DEBIT_NOTE")
    amount = abs(float(payload.get("adjustment_amount") or 0))
    if not amount:
        raise RuleViolation("adjustment_amount must be non-zero")
    description = (payload.get("description") or "").strip()
    if not description:
        raise RuleViolation("description is required")

    with unit_of_work(db):
        entry = _append(
            db,
            supplier_id=supplier.id,
            debit=amount if kind == LEDGER_DEBIT_NOTE else 0.0,
            credit=amount if kind == LEDGER_CREDIT_NOTE else 0.0,
            transaction_type=kind,
            transaction_date=payload.get("adjustment_date") or date.today().isoformat(),
            reference_number=payload.get("reference_number") or f"{kind}-{_stamp()}",
            description=description,
            payment_status=PAYMENT_PENDING,
            created_by_user_id=user_id,
        )
    db.refresh(entry)
    return entry


def list_entries(
    db: Session,
    *,
    supplier_id: int | None = None,
    transaction_type: str | None = None,
    payment_status: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> Page:
    stmt = select(SupplierLedgerEntry).order_by(desc(SupplierLedgerEntry.id))
    if supplier_id is not None:
        stmt = stmt.where(SupplierLedgerEntry.supplier_id == supplier_id)
    if transaction_type:
        stmt = stmt.where(SupplierLedgerEntry.transaction_type == transaction_type.upper())
    if payment_status:
        stmt = stmt.where(SupplierLedgerEntry.payment_status == payment_status.upper())
    return paginate(db, stmt, page=page, limit=limit)


def supplier_statement(db: Session, supplier_id: int) -> dict[str, object]:
    supplier = get_or_404(db, Supplier, supplier_id, "Supplier")
    entries = list(
        db.execute(
            select(SupplierLedgerEntry).where(SupplierLedgerEntry.supplier_id == supplier.id).order_by(SupplierLedgerEntry.id)
        ).scalars().all()
    )
    return {
        "supplier": supplier,
        "entries": entries,
        "total_debit": round(sum(e.debit_amount or 0 for e in entries), 2),
        "total_credit": round(sum(e.credit_amount or 0 for e in entries), 2),
        "current_balance": entries[-1].balance if entries else 0.0,
    }


def summary(db: Session, *, supplier_id: int | None = None) -> list[dict[str, object]]:
    today = date.today().isoformat()
    overdue = case(
        (
            (SupplierLedgerEntry.payment_status == PAYMENT_PENDING)
            & SupplierLedgerEntry.due_date.is_not(None)
            & (SupplierLedgerEntry.due_date < today),
            1,
        ),
        else_=0,
    )
    stmt = (
        select(
            SupplierLedgerEntry.supplier_id,
            Supplier.name,
            func.coalesce(func.sum(SupplierLedgerEntry.debit_amount), 0).label("total_debit"),
            func.coalesce(func.sum(SupplierLedgerEntry.credit_amount), 0).label("total_credit"),
            func.max(SupplierLedgerEntry.transaction_date).label("last_transaction_date"),
            func.sum(overdue).label("overdue_count"),
        )
        .join(Supplier, Supplier.id == SupplierLedgerEntry.supplier_id)
        .group_by(SupplierLedgerEntry.supplier_id, Supplier.name)
        .order_by(Supplier.name)
    )
    if supplier_id is not None:
        stmt = stmt.where(SupplierLedgerEntry.supplier_id == supplier_id)
    return [
        {
            "supplier_id": row.supplier_id,
            "supplier_name": row.name,
            "total_debit": round(float(row.total_debit), 2),
            "total_credit": round(float(row.total_credit), 2),
            "balance": round(float(row.total_debit) - float(row.total_credit), 2),
            "last_transaction_date": row.last_transaction_date,
            "overdue_count": int(row.overdue_count or 0),
        }
        for row in db.execute(stmt).all()
    ]


def overdue_entries(db: Session) -> list[SupplierLedgerEntry]:
    today = date.today().isoformat()
    stmt = (
        select(SupplierLedgerEntry)
        .where(
            SupplierLedgerEntry.payment_status == PAYMENT_PENDING,
            SupplierLedgerEntry.due_date.is_not(None),
            SupplierLedgerEntry.due_date < today,
        )
        .order_by(SupplierLedgerEntry.due_date)
    )
    return list(db.execute(stmt).scalars().all())
