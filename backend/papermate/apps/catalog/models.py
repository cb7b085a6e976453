from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum as SAEnum,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from papermate.database import Base


def _utcnow() -> datetime:
    return datetime.utcnow()


class ProductTypeEnum(str, enum.Enum):
    RAW = "RAW"
    FINISHED = "FINISHED"


class FinishedKindEnum(str, enum.Enum):
    PLATE = "PLATE"
    BOWL = "BOWL"
    SHEET = "SHEET"


class PartyTypeEnum(str, enum.Enum):
    SUPPLIER = "SUPPLIER"
    CUSTOMER = "CUSTOMER"


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (UniqueConstraint("code", name="uq_product_code"),)

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(
        SAEnum(ProductTypeEnum, name="product_type_enum", native_enum=False),
        nullable=False,
        index=True,
    )
    uom = Column(String(16), nullable=False)
    finished_kind = Column(
        SAEnum(FinishedKindEnum, name="finished_kind_enum", native_enum=False),
        nullable=True,
    )
    size = Column(String(32), nullable=True)
    attributes = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class Party(Base):
    __tablename__ = "parties"
    __table_args__ = (UniqueConstraint("name", name="uq_party_name"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    type = Column(
        SAEnum(PartyTypeEnum, name="party_type_enum", native_enum=False),
        nullable=False,
        index=True,
    )
    whatsapp = Column(String(32), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
