"""Goods receipt notes (GRN): receiving, verifying and posting stock from a PO."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..core.constants import (
    CONDITIONS,
    ITEM_CONDITIONS,
    PO_APPROVED,
    PO_FULLY_RECEIVED,
    PO_PARTIALLY_RECEIVED,
    PO_PLACED,
    RECEIPT_APPROVED,
    RECEIPT_COMPLETED,
    RECEIPT_PENDING,
    RECEIPT_RECEIVED,
    TXN_PURCHASE,
    normalize_choice,
)
from ..core.errors import RuleViolation
from ..db.mixins import utcnow
from ..db.session import unit_of_work
from ..models.catalog import Warehouse
from ..models.purchase_order import PurchaseOrder
from ..models.receipt import MaterialReceipt, MaterialReceiptItem
from ..services.numbering import next_receipt_number
from ._common import Page, get_or_404, paginate
from .inventory import find_or_create_stock_record, record_transaction

logger = logging.getLogger(__name__)

_TAXES = ("cgst", "sgst", "igst")


def _condition(value: str | None, choices: tuple[str, ...], label: str) -> str:
    try:
        return normalize_choice(value, choices, "GOOD")
    except ValueError as exc:
        raise RuleViolation(f"{label} {exc}") from exc


def list_receipts(
    db: Session,
    *,
    project_id: int | None = None,
    status: str | None = None,
    po_id: int | None = None,
    page: int = 1,
    limit: int = 20,
) -> Page:
    stmt = select(MaterialReceipt).order_by(desc(MaterialReceipt.created_at), desc(MaterialReceipt.id))
    if project_id is not None:
        stmt = stmt.where(MaterialReceipt.project_id == project_id)
    if status:
        stmt = stmt.where(MaterialReceipt.status == status.upper())
    if po_id is not None:
        stmt = stmt.where(MaterialReceipt.po_id == po_id)
    return paginate(db, stmt, page=page, limit=limit)


def get_receipt(db: Session, receipt_id: int) -> MaterialReceipt:
    return get_or_404(db, MaterialReceipt, receipt_id, "Material receipt")


def receipts_by_po(db: Session, po_id: int) -> list[MaterialReceipt]:
    stmt = (
        select(MaterialReceipt)
        .where(MaterialReceipt.po_id == po_id)
        .order_by(desc(MaterialReceipt.created_at), desc(MaterialReceipt.id))
    )
    return list(db.execute(stmt).unique().scalars().all())


def _build_item(po: PurchaseOrder, line: dict) -> MaterialReceiptItem:
    po_items = {po_item.id: po_item for po_item in po.items}
    po_item = po_items.get(line.get("po_item_id"))
    if po_item is None:
        raise RuleViolation(
            "Receipt item does not belong to the Purchase Order",
            details={"po_item_id": line.get("po_item_id")},
        )
    quantity = line.get("quantity_received")
    if quantity is None or quantity <= 0:
        raise RuleViolation("quantity_received must be a positive integer")
    unit_price = line.get("unit_price")
    if unit_price is None:
        unit_price = po_item.unit_price
    if unit_price < 0:
        raise RuleViolation("unit_price must be zero or more")

    total = round(quantity * unit_price, 2)
    receipt_item = MaterialReceiptItem(
        po_item_id=po_item.id,
        item_id=po_item.item_id,
        quantity_received=quantity,
        unit_price=unit_price,
        total_price=total,
        condition_status=_condition(line.get("condition_status"), ITEM_CONDITIONS, "condition_status"),
        batch_number=line.get("batch_number"),
        expiry_date=line.get("expiry_date"),
        notes=line.get("notes"),
    )
    for tax in _TAXES:
        rate = line.get(f"{tax}_rate")
        if rate is None:
            rate = getattr(po_item, f"{tax}_rate") or 0.0
        if not 0 <= rate <= 100:
            raise RuleViolation(f"{tax.upper()} rate must be between 0 and 100")
        setattr(receipt_item, f"{tax}_rate", rate)
        setattr(receipt_item, f"{tax}_amount", round(total * rate / 100, 2))
    return receipt_item


def create_receipt(db: Session, payload: dict, *, user_id: int) -> MaterialReceipt:
    """Open a PENDING receipt against an approved or placed PO."""

    po = get_or_404(db, PurchaseOrder, payload.get("po_id"), "Purchase Order")
    if po.status not in (PO_APPROVED, PO_PLACED):
        raise RuleViolation("Purchase Order must be approved or placed to create material receipt")
    existing = db.execute(select(MaterialReceipt.id).where(MaterialReceipt.po_id == po.id)).first()
    if existing is not None:
        raise RuleViolation("Material receipt already exists for this PO")
    if payload.get("warehouse_id") is not None:
        get_or_404(db, Warehouse, payload["warehouse_id"], "Warehouse")
    lines = payload.get("items") or []
    if not lines:
        raise RuleViolation("At least one item is required")

    receipt = MaterialReceipt(
        receipt_number=next_receipt_number(db),
        po_id=po.id,
        project_id=payload.get("project_id") or po.project_id,
        warehouse_id=payload.get("warehouse_id"),
        received_date=payload.get("received_date") or date.today().isoformat(),
        delivery_date=payload.get("delivery_date"),
        received_by_user_id=user_id,
        supplier_delivery_note=payload.get("supplier_delivery_note"),
        vehicle_number=payload.get("vehicle_number"),
        driver_name=payload.get("driver_name"),
        condition_status=_condition(payload.get("condition_status"), CONDITIONS, "condition_status"),
        status=RECEIPT_PENDING,
        notes=payload.get("notes"),
    )
    receipt.items = [_build_item(po, line) for line in lines]
    receipt.total_items = len(receipt.items)
    with unit_of_work(db):
        db.add(receipt)
    db.refresh(receipt)
    logger.info(
        "receipts.created",
        extra={"extra_data": {"receipt_id": receipt.id, "receipt_number": receipt.receipt_number, "po_id": po.id}},
    )
    return receipt


def _lines_by_id(receipt: MaterialReceipt, lines: list[dict]) -> list[tuple[MaterialReceiptItem, dict]]:
    if not lines:
        raise RuleViolation("At least one item is required")
    known = {item.id: item for item in receipt.items}
    matched = []
    for line in lines:
        item = known.get(line.get("receipt_item_id"))
        if item is None:
            raise RuleViolation(
                "Receipt item not found on this receipt",
                details={"receipt_item_id": line.get("receipt_item_id")},
            )
        matched.append((item, line))
    return matched


def _non_negative(line: dict, key: str) -> int:
    value = line.get(key)
    if value is None or isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise RuleViolation(f"{key} must be a non-negative integer")
    return value


def receive_receipt(db: Session, receipt: MaterialReceipt, payload: dict) -> MaterialReceipt:
    """Record what physically arrived. Stock is posted later by ``complete_receipt``."""

    if receipt.status != RECEIPT_PENDING:
        raise RuleViolation("Receipt is not in pending status")
    matched = _lines_by_id(receipt, payload.get("items") or [])
    with unit_of_work(db):
        for item, line in matched:
            item.quantity_actually_received = _non_negative(line, "quantity_actually_received")
            item.received_condition = _condition(line.get("received_condition"), CONDITIONS, "received_condition")
            item.received_notes = line.get("received_notes")
        receipt.status = RECEIPT_RECEIVED
        if payload.get("notes"):
            receipt.notes = payload["notes"]
    db.refresh(receipt)
    logger.info("receipts.received", extra={"extra_data": {"receipt_id": receipt.id}})
    return receipt


def _post_stock(db: Session, receipt: MaterialReceipt, item: MaterialReceiptItem, quantity: int, *, user_id: int, description: str) -> None:
    material = find_or_create_stock_record(
        db,
        item_id=item.item_id,
        warehouse_id=receipt.warehouse_id,
        project_id=receipt.project_id,
        cost_per_unit=item.unit_price,
    )
    material.cost_per_unit = item.unit_price
    record_transaction(
        db,
        material_id=material.id,
        project_id=receipt.project_id,
        transaction_type=TXN_PURCHASE,
        transaction_id=item.id,
        quantity_change=quantity,
        reference_number=receipt.receipt_number,
        description=description,
        performed_by_user_id=user_id,
        commit=False,
    )
    if item.po_item is not None:
        item.po_item.quantity_received = (item.po_item.quantity_received or 0) + quantity


def _refresh_po_status(db: Session, po: PurchaseOrder | None) -> None:
    if po is None:
        return
    db.flush()
    received = [line for line in po.items if (line.quantity_received or 0) > 0]
    if not received:
        return
    if all((line.quantity_received or 0) >= line.quantity_ordered for line in po.items):
        po.status = PO_FULLY_RECEIVED
    else:
        po.status = PO_PARTIALLY_RECEIVED


def complete_receipt(db: Session, receipt: MaterialReceipt, *, user_id: int, completion_notes: str | None = None) -> MaterialReceipt:
    """Post every actually received quantity to stock and close the receipt.

    All ledger entries, PO quantities and the status change commit together.
    """

    if receipt.status != RECEIPT_RECEIVED:
        raise RuleViolation("Receipt must be received before completion")
    description = f"Material received from PO: {receipt.po_number or 'N/A'}"
    posted = 0
    with unit_of_work(db):
        for item in receipt.items:
            quantity = item.quantity_actually_received or 0
            if quantity > 0:
                _post_stock(db, receipt, item, quantity, user_id=user_id, description=description)
                posted += 1
        _refresh_po_status(db, receipt.purchase_order)
        receipt.status = RECEIPT_COMPLETED
        if completion_notes:
            receipt.notes = completion_notes
    db.refresh(receipt)
    logger.info("receipts.completed", extra={"extra_data": {"receipt_id": receipt.id, "lines_posted": posted}})
    return receipt


def verify_receipt(db: Session, receipt: MaterialReceipt, payload: dict, *, user_id: int) -> MaterialReceipt:
    """Approve a pending receipt and post the verified quantities to stock."""

    if receipt.status != RECEIPT_PENDING:
        raise RuleViolation("Only pending receipts can be verified")
    matched = _lines_by_id(receipt, payload.get("items") or [])
    description = f"Material verified and received from PO: {receipt.po_number or 'N/A'}"
    stamp = utcnow()
    with unit_of_work(db):
        for item, line in matched:
            item.verified_quantity = _non_negative(line, "verified_quantity")
            item.verification_notes = line.get("verification_notes")
        receipt.status = RECEIPT_APPROVED
        receipt.verified_by_user_id = user_id
        receipt.verified_at = stamp
        receipt.verification_notes = payload.get("verification_notes")
        for item, _ in matched:
            if item.verified_quantity > 0:
                _post_stock(db, receipt, item, item.verified_quantity, user_id=user_id, description=description)
        _refresh_po_status(db, receipt.purchase_order)
    db.refresh(receipt)
    logger.info("receipts.verified", extra={"extra_data": {"receipt_id": receipt.id, "by": user_id}})
    return receipt


def receipt_stats(
    db: Session,
    *,
    project_id: int | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> dict[str, object]:
    filters = []
    if project_id is not None:
        filters.append(MaterialReceipt.project_id == project_id)
    if start_date and end_date:
        filters.append(MaterialReceipt.received_date.between(start_date, end_date))

    breakdown = db.execute(
        select(MaterialReceipt.status, func.count(MaterialReceipt.id)).where(*filters).group_by(MaterialReceipt.status)
    ).all()
    total_receipts = db.execute(select(func.count(MaterialReceipt.id)).where(*filters)).scalar_one()
    total_value = db.execute(
        select(func.coalesce(func.sum(MaterialReceiptItem.total_price), 0.0))
        .join(MaterialReceipt, MaterialReceiptItem.receipt_id == MaterialReceipt.id)
        .where(*filters)
    ).scalar_one()
    return {
        "status_breakdown": [{"status": status, "count": count} for status, count in breakdown],
        "total_receipts": int(total_receipts),
        "total_value": round(float(total_value or 0), 2),
    }
