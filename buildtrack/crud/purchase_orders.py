"""Purchase orders: pricing, GST, approval and placement with the supplier."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..core.constants import (
    MRR_APPROVED,
    MRR_PROCESSING,
    PO_APPROVED,
    PO_CANCELLED,
    PO_CLOSED,
    PO_DRAFT,
    PO_PLACED,
)
from ..core.errors import RuleViolation
from ..db.mixins import utcnow
from ..db.session import unit_of_work
from ..models.catalog import Item
from ..models.mrr import MaterialRequirementRequest
from ..models.project import Project
from ..models.purchase_order import PurchaseOrder, PurchaseOrderItem
from ..models.receipt import MaterialReceipt
from ..models.supplier import Supplier
from ..services.notifications import send_purchase_order_notification
from ..services.numbering import next_po_number
from ._common import Page, get_or_404, paginate
from .supplier_ledger import post_purchase_debit

logger = logging.getLogger(__name__)

_TAXES = ("cgst", "sgst", "igst")


def _rate(line: dict, tax: str) -> float:
    rate = float(line.get(f"{tax}_rate") or 0)
    if not 0 <= rate <= 100:
        raise RuleViolation(f"{tax.upper()} rate must be between 0 and 100")
    return rate


def build_line(db: Session, line: dict) -> PurchaseOrderItem:
    """Price one PO line: total = quantity x unit price, each tax = total x rate / 100."""

    item = get_or_404(db, Item, line.get("item_id"), "Item")
    quantity = line.get("quantity_ordered")
    if quantity is None or quantity <= 0:
        raise RuleViolation("quantity_ordered must be a positive integer")
    unit_price = line.get("unit_price")
    if unit_price is None or unit_price < 0:
        raise RuleViolation("unit_price must be zero or more")
    total = round(quantity * unit_price, 2)
    po_item = PurchaseOrderItem(
        item_id=item.id,
        quantity_ordered=quantity,
        quantity_received=0,
        unit_price=unit_price,
        total_price=total,
        specifications=line.get("specifications"),
        size=line.get("size"),
        notes=line.get("notes"),
    )
    for tax in _TAXES:
        rate = _rate(line, tax)
        setattr(po_item, f"{tax}_rate", rate)
        setattr(po_item, f"{tax}_amount", round(total * rate / 100, 2))
    return po_item


def recompute_totals(po: PurchaseOrder) -> None:
    subtotal = sum(line.total_price or 0 for line in po.items)
    tax = sum((line.cgst_amount or 0) + (line.sgst_amount or 0) + (line.igst_amount or 0) for line in po.items)
    po.subtotal = round(subtotal, 2)
    po.tax_amount = round(tax, 2)
    po.total_amount = round(subtotal + tax, 2)


def list_purchase_orders(
    db: Session,
    *,
    status: str | None = None,
    project_id: int | None = None,
    supplier_id: int | None = None,
    page: int = 1,
    limit: int = 20,
) -> Page:
    stmt = select(PurchaseOrder).order_by(desc(PurchaseOrder.created_at), desc(PurchaseOrder.id))
    if status:
        stmt = stmt.where(PurchaseOrder.status == status.upper())
    if project_id is not None:
        stmt = stmt.where(PurchaseOrder.project_id == project_id)
    if supplier_id is not None:
        stmt = stmt.where(PurchaseOrder.supplier_id == supplier_id)
    return paginate(db, stmt, page=page, limit=limit)


def get_purchase_order(db: Session, po_id: int) -> PurchaseOrder:
    return get_or_404(db, PurchaseOrder, po_id, "Purchase Order")


def _new_order(db: Session, payload: dict, *, user_id: int, project_id: int | None, mrr_id: int | None) -> PurchaseOrder:
    supplier = get_or_404(db, Supplier, payload.get("supplier_id"), "Supplier")
    if project_id is not None:
        get_or_404(db, Project, project_id, "Project")
    lines = payload.get("items") or []
    if not lines:
        raise RuleViolation("At least one item is required")

    po = PurchaseOrder(
        po_number=next_po_number(db),
        mrr_id=mrr_id,
        project_id=project_id,
        supplier_id=supplier.id,
        po_date=payload.get("po_date") or date.today().isoformat(),
        expected_delivery_date=payload.get("expected_delivery_date"),
        status=PO_DRAFT,
        payment_terms=payload.get("payment_terms"),
        delivery_terms=payload.get("delivery_terms"),
        notes=payload.get("notes"),
        created_by_user_id=user_id,
    )
    po.items = [build_line(db, line) for line in lines]
    recompute_totals(po)
    with unit_of_work(db):
        db.add(po)
    db.refresh(po)
    logger.info(
        "purchase_orders.created",
        extra={"extra_data": {"po_id": po.id, "po_number": po.po_number, "total": po.total_amount}},
    )
    return po


def create_purchase_order(db: Session, payload: dict, *, user_id: int) -> PurchaseOrder:
    return _new_order(db, payload, user_id=user_id, project_id=payload.get("project_id"), mrr_id=None)


def create_from_mrr(db: Session, mrr_id: int, payload: dict, *, user_id: int) -> PurchaseOrder:
    """Raise a PO for an approved MRR.

    Lines default to the MRR's items at their estimated unit cost; explicit
    ``items`` in the payload replace them.
    """

    mrr = get_or_404(db, MaterialRequirementRequest, mrr_id, "MRR")
    if mrr.status not in (MRR_APPROVED, MRR_PROCESSING):
        raise RuleViolation("Only approved MRRs can be converted to Purchase Orders")
    data = dict(payload)
    if not data.get("items"):
        prices = {int(k): v for k, v in (data.get("unit_prices") or {}).items()}
        data["items"] = [
            {
                "item_id": line.item_id,
                "quantity_ordered": line.quantity_requested,
                "unit_price": prices.get(line.item_id, line.estimated_cost_per_unit or 0.0),
                "specifications": line.specifications,
                "notes": line.notes,
            }
            for line in mrr.items
        ]
    return _new_order(db, data, user_id=user_id, project_id=mrr.project_id, mrr_id=mrr.id)


def update_purchase_order(db: Session, po: PurchaseOrder, payload: dict) -> PurchaseOrder:
    if po.status != PO_DRAFT:
        raise RuleViolation("Only draft Purchase Orders can be updated")
    if payload.get("supplier_id") is not None:
        get_or_404(db, Supplier, payload["supplier_id"], "Supplier")
    with unit_of_work(db):
        for name in ("supplier_id", "expected_delivery_date", "payment_terms", "delivery_terms", "notes"):
            if name in payload and payload[name] is not None:
                setattr(po, name, payload[name])
        if payload.get("items"):
            po.items = [build_line(db, line) for line in payload["items"]]
        recompute_totals(po)
    db.refresh(po)
    return po


def approve_purchase_order(db: Session, po: PurchaseOrder, *, user_id: int) -> PurchaseOrder:
    if po.status != PO_DRAFT:
        raise RuleViolation("Only draft Purchase Orders can be approved")
    with unit_of_work(db):
        po.status = PO_APPROVED
        po.approved_by_user_id = user_id
        po.approved_at = utcnow()
    db.refresh(po)
    logger.info("purchase_orders.approved", extra={"extra_data": {"po_id": po.id, "by": user_id}})
    return po


def place_order(db: Session, po: PurchaseOrder, *, user_id: int) -> tuple[PurchaseOrder, bool]:
    """Mark an approved PO as placed, debit the supplier and notify them.

    Returns the PO and whether the supplier notification went out. A failed
    notification is logged and never undoes the placement.
    """

    if po.status != PO_APPROVED:
        raise RuleViolation("Only approved Purchase Orders can be placed")
    with unit_of_work(db):
        po.status = PO_PLACED
        po.placed_at = utcnow()
        db.flush()
        post_purchase_debit(db, po, user_id=user_id)
    db.refresh(po)
    logger.info("purchase_orders.placed", extra={"extra_data": {"po_id": po.id, "po_number": po.po_number}})

    try:
        notified = send_purchase_order_notification(po)
    except Exception:
        logger.exception("purchase_orders.notify_failed", extra={"extra_data": {"po_id": po.id}})
        notified = False
    return po, notified


def cancel_purchase_order(db: Session, po: PurchaseOrder) -> PurchaseOrder:
    if po.status in (PO_CANCELLED, PO_CLOSED):
        raise RuleViolation("Purchase Order is already cancelled or closed")
    with unit_of_work(db):
        po.status = PO_CANCELLED
    db.refresh(po)
    logger.info("purchase_orders.cancelled", extra={"extra_data": {"po_id": po.id}})
    return po


def receipts_for_order(db: Session, po: PurchaseOrder) -> list[MaterialReceipt]:
    stmt = select(MaterialReceipt).where(MaterialReceipt.po_id == po.id).order_by(MaterialReceipt.id)
    return list(db.execute(stmt).unique().scalars().all())
