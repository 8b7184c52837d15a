from __future__ import annotations

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.mixins import TimestampMixin
from ..db.session import Base


class Supplier(TimestampMixin, Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, index=True)
    contact_person = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    gst_number = Column(Text, nullable=True)
    payment_terms = Column(Text, nullable=True)
    credit_limit = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class SupplierLedgerEntry(TimestampMixin, Base):
    """Running account with a supplier.

    Debits (purchases, debit notes) raise what we owe; credits (payments,
    credit notes) lower it. ``balance`` is the amount owed after this entry.
    """

    __tablename__ = "supplier_ledger"

    id = Column(Integer, primary_key=True, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True)
    po_id = Column(Integer, ForeignKey("purchase_orders.id"), nullable=True, index=True)
    transaction_type = Column(Text, nullable=False)
    transaction_date = Column(Text, nullable=False)
    reference_number = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    debit_amount = Column(Float, nullable=False, default=0.0)
    credit_amount = Column(Float, nullable=False, default=0.0)
    balance = Column(Float, nullable=False)
    payment_status = Column(Text, nullable=False, default="PENDING")
    due_date = Column(Text, nullable=True)
    created_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    supplier = relationship("Supplier")


__all__ = ["Supplier", "SupplierLedgerEntry"]
