from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
)
from sqlalchemy.orm import relationship

from papermate.database import Base


def _utcnow() -> datetime:
    return datetime.utcnow()


class POStatusEnum(str, enum.Enum):
    OPEN = "OPEN"
    PARTIAL = "PARTIAL"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"
    __table_args__ = (Index("ix_purchase_orders_supplier", "supplier_id"),)

    id = Column(Integer, primary_key=True, index=True)
    supplier_id = Column(Integer, ForeignKey("parties.id", ondelete="RESTRICT"), nullable=False)
    status = Column(
        SAEnum(POStatusEnum, name="po_status_enum", native_enum=False),
        nullable=False,
        default=POStatusEnum.OPEN,
        index=True,
    )
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    supplier = relationship("Party", lazy="joined")
    lines = relationship(
        "PurchaseOrderLine",
        back_populates="purchase_order",
        lazy="selectin",
        order_by="PurchaseOrderLine.id",
    )


class PurchaseOrderLine(Base):
    __tablename__ = "purchase_order_lines"
    __table_args__ = (Index("ix_purchase_order_lines_po", "purchase_order_id"),)

    id = Column(Integer, primary_key=True, index=True)
    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    qty = Column(Float, nullable=False)
    unit_cost = Column(Numeric(12, 4), nullable=False, default=0)

    purchase_order = relationship("PurchaseOrder", back_populates="lines")
    product = relationship("Product", lazy="joined")
