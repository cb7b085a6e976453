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
    String,
    Text,
)
from sqlalchemy.orm import relationship

from papermate.apps.inventory.models import DEFAULT_WAREHOUSE
from papermate.database import Base


def _utcnow() -> datetime:
    return datetime.utcnow()


class ProdStatusEnum(str, enum.Enum):
    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    CANCELLED = "CANCELLED"


class ProductionOrder(Base):
    __tablename__ = "production_orders"

    id = Column(Integer, primary_key=True, index=True)
    status = Column(
        SAEnum(ProdStatusEnum, name="prod_status_enum", native_enum=False),
        nullable=False,
        default=ProdStatusEnum.IN_PROGRESS,
        index=True,
    )
    warehouse = Column(String(32), nullable=False, default=DEFAULT_WAREHOUSE)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    consumption = relationship(
        "ProductionConsumption",
        back_populates="production_order",
        lazy="selectin",
        order_by="ProductionConsumption.id",
    )
    output = relationship(
        "ProductionOutput",
        back_populates="production_order",
        lazy="selectin",
        order_by="ProductionOutput.id",
    )


class ProductionConsumption(Base):
    __tablename__ = "production_consumption"
    __table_args__ = (Index("ix_production_consumption_order", "production_order_id"),)

    id = Column(Integer, primary_key=True, index=True)
    production_order_id = Column(Integer, ForeignKey("production_orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    qty = Column(Float, nullable=False)

    production_order = relationship("ProductionOrder", back_populates="consumption")
    product = relationship("Product", lazy="joined")


class ProductionOutput(Base):
    __tablename__ = "production_output"
    __table_args__ = (Index("ix_production_output_order", "production_order_id"),)

    id = Column(Integer, primary_key=True, index=True)
    production_order_id = Column(Integer, ForeignKey("production_orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    qty = Column(Float, nullable=False)
    batch_no = Column(String(64), nullable=True, index=True)

    production_order = relationship("ProductionOrder", back_populates="output")
    product = relationship("Product", lazy="joined")
