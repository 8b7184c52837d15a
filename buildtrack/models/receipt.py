"""Goods received against a purchase order (GRN)."""

from __future__ import annotations

from sqlalchemy import Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.mixins import TimestampMixin
from ..db.session import Base


class MaterialReceipt(TimestampMixin, Base):
    __tablename__ = "material_receipts"

    id = Column(Integer, primary_key=True, index=True)
    receipt_number = Column(Text, nullable=False, unique=True, index=True)
    po_id = Column(Integer, ForeignKey("purchase_orders.id"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True)
    received_date = Column(Text, nullable=False)
    delivery_date = Column(Text, nullable=True)
    received_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    verified_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    verified_at = Column(Text, nullable=True)
    verification_notes = Column(Text, nullable=True)
    supplier_delivery_note = Column(Text, nullable=True)
    vehicle_number = Column(Text, nullable=True)
    driver_name = Column(Text, nullable=True)
    condition_status = Column(Text, nullable=False, default="GOOD")
    status = Column(Text, nullable=False, default="PENDING", index=True)
    total_items = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    purchase_order = relationship("PurchaseOrder", lazy="joined")
    items = relationship(
        "MaterialReceiptItem",
        back_populates="receipt",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="MaterialReceiptItem.id",
    )

    @property
    def po_number(self) -> str | None:
        return self.purchase_order.po_number if self.purchase_order else None


class MaterialReceiptItem(Base):
    __tablename__ = "material_receipt_items"

    id = Column(Integer, primary_key=True, index=True)
    receipt_id = Column(Integer, ForeignKey("material_receipts.id"), nullable=False, index=True)
    po_item_id = Column(Integer, ForeignKey("purchase_order_items.id"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    quantity_received = Column(Integer, nullable=False)
    quantity_actually_received = Column(Integer, nullable=True)
    verified_quantity = Column(Integer, nullable=True)
    unit_price = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)
    cgst_rate = Column(Float, nullable=False, default=0.0)
    sgst_rate = Column(Float, nullable=False, default=0.0)
    igst_rate = Column(Float, nullable=False, default=0.0)
    cgst_amount = Column(Float, nullable=False, default=0.0)
    sgst_amount = Column(Float, nullable=False, default=0.0)
    igst_amount = Column(Float, nullable=False, default=0.0)
    condition_status = Column(Text, nullable=False, default="GOOD")
    received_condition = Column(Text, nullable=True)
    received_notes = Column(Text, nullable=True)
    verification_notes = Column(Text, nullable=True)
    batch_number = Column(Text, nullable=True)
    expiry_date = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    receipt = relationship("MaterialReceipt", back_populates="items")
    po_item = relationship("PurchaseOrderItem")
    item = relationship("Item", lazy="joined")


__all__ = ["MaterialReceipt", "MaterialReceiptItem"]
