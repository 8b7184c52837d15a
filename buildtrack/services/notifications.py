"""Supplier notifications sent when a purchase order is placed."""

from __future__ import annotations

import logging
import re

import httpx

from ..core.config import settings
from ..models.purchase_order import PurchaseOrder

logger = logging.getLogger(__name__)


def normalize_phone(raw: str | None) -> str | None:
    """Digits only, with the 91 country code added to bare 10-digit numbers."""

    digits = re.sub(r"\D", "", raw or "")
    if not digits:
        return None
    if len(digits) == 10 and not digits.startswith("91"):
        digits = "91" + digits
    return digits


def _money(value: float | None) -> str:
    return f"{(value or 0):,.2f}"


def build_purchase_order_message(po: PurchaseOrder) -> str:
    project_name = po.project.name if po.project else "N/A"
    lines = [
        "*NEW PURCHASE ORDER*",
        "",
        f"*PO Number:* {po.po_number}",
        f"*Project:* {project_name}",
        f"*PO Date:* {po.po_date}",
        f"*Expected Delivery:* {po.expected_delivery_date or 'Not specified'}",
        f"*Total Amount:* INR {_money(po.total_amount)}",
        "",
        "*ITEMS REQUIRED:*",
    ]
    for index, line in enumerate(po.items, start=1):
        item = line.item
        label = f"{item.name} ({item.code})" if item else f"Item {line.item_id}"
        unit = (item.unit if item else None) or "units"
        lines.append(f"{index}. {label}")
        lines.append(f"   Quantity: {line.quantity_ordered} {unit}")
        lines.append(f"   Rate: INR {_money(line.unit_price)}/unit")
        lines.append(f"   Total: INR {_money(line.total_price)}")
    lines += [
        "",
        "*TERMS & CONDITIONS:*",
        f"- Payment Terms: {po.payment_terms or 'As per agreement'}",
        f"- Delivery Terms: {po.delivery_terms or 'As per agreement'}",
    ]
    if po.notes:
        lines += ["", f"*NOTES:* {po.notes}"]
    lines += ["", "Please confirm receipt of this order and provide delivery timeline."]
    return "\n".join(lines)


def send_purchase_order_notification(po: PurchaseOrder, *, client: httpx.Client | None = None) -> bool:
    """Send the placed PO to the supplier over WhatsApp.

    Returns ``False`` when no API endpoint is configured (the message is only
    logged). Transport and HTTP errors are raised for the caller to handle.
    """

    supplier = po.supplier
    phone = normalize_phone(supplier.phone if supplier else None)
    if not phone:
        raise ValueError("Supplier phone number not available")

    message = build_purchase_order_message(po)
    if not settings.WHATSAPP_API_URL:
        logger.info(
            "notifications.whatsapp_skipped",
            extra={"extra_data": {"po_number": po.po_number, "to": phone, "body": message}},
        )
        return False

    headers = {"Content-Type": "application/json"}
    if settings.WHATSAPP_API_TOKEN:
        headers["Authorization"] = f"Bearer {settings.WHATSAPP_API_TOKEN}"
    payload = {
        "messaging_product": "whatsapp",
        "to": phone,
        "type": "text",
        "text": {"body": message},
    }

    owns_client = client is None
    http = client or httpx.Client(timeout=httpx.Timeout(settings.WHATSAPP_TIMEOUT_SEC))
    try:
        response = http.post(settings.WHATSAPP_API_URL, json=payload, headers=headers)
        response.raise_for_status()
    finally:
        if owns_client:
            http.close()

    logger.info(
        "notifications.whatsapp_sent",
        extra={"extra_data": {"po_number": po.po_number, "to": phone, "status": response.status_code}},
    )
    return True
