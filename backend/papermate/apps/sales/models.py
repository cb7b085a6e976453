from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from papermate.database import Base


def _utcnow() -> datetime:
    return datetime.utcnow()


class OrderStatusEnum(str, enum.Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    CANCELLED = "CANCELLED"


class PaymentStatusEnum(str, enum.Enum):
    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


class SalesOrder(Base):
    __tablename__ = "sales_orders"
    __table_args__ = (Index("ix_sales_orders_customer", "customer_id"),)

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("parties.id", ondelete="RESTRICT"), nullable=False)
    status = Column(
        SAEnum(OrderStatusEnum, name="order_status_enum", native_enum=False),
        nullable=False,
        default=OrderStatusEnum.DRAFT,
        index=True,
    )
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    customer = relationship("Party", lazy="joined")
    lines = relationship(
        "SalesOrderLine",
        back_populates="sales_order",
        lazy="selectin",
        order_by="SalesOrderLine.id",
    )
    payment = relationship("Payment", back_populates="sales_order", uselist=False, lazy="selectin")


class SalesOrderLine(Base):
    __tablename__ = "sales_order_lines"
    __table_args__ = (Index("ix_sales_order_lines_so", "sales_order_id"),)

    id = Column(Integer, primary_key=True, index=True)
    sales_order_id = Column(Integer, ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    qty = Column(Float, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=True)

    sales_order = relationship("SalesOrder", back_populates="lines")
    product = relationship("Product", lazy="joined")


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (UniqueConstraint("sales_order_id", name="uq_payment_sales_order"),)

    id = Column(Integer, primary_key=True, index=True)
    sales_order_id = Column(Integer, ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False)
    status = Column(
        SAEnum(PaymentStatusEnum, name="payment_status_enum", native_enum=False),
        nullable=False,
        default=PaymentStatusEnum.UNPAID,
        index=True,
    )
    amount = Column(Numeric(12, 2), nullable=True)
    paid_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    sales_order = relationship("SalesOrder", back_populates="payment")
