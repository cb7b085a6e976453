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
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import relationship

from papermate.database import Base
from papermate.errors import LedgerImmutableError

DEFAULT_WAREHOUSE = "MAIN"


def _utcnow() -> datetime:
    return datetime.utcnow()


class TxnTypeEnum(str, enum.Enum):
    GRN = "GRN"
    PROD_CONS = "PROD_CONS"
    PROD_OUT = "PROD_OUT"
    SHIP = "SHIP"


class RefTableEnum(str, enum.Enum):
    PO = "PO"
    PROD = "PROD"
    SO = "SO"


# Which document a movement must point at, and which way it moves stock.
TXN_REF_TABLE = {
    TxnTypeEnum.GRN: RefTableEnum.PO,
    TxnTypeEnum.PROD_CONS: RefTableEnum.PROD,
    TxnTypeEnum.PROD_OUT: RefTableEnum.PROD,
    TxnTypeEnum.SHIP: RefTableEnum.SO,
}

TXN_SIGN = {
    TxnTypeEnum.GRN: 1,
    TxnTypeEnum.PROD_CONS: -1,
    TxnTypeEnum.PROD_OUT: 1,
    TxnTypeEnum.SHIP: -1,
}


class InventoryTxn(Base):
    """
    One signed stock movement. Rows are append-only: stock on hand for a
    (product, warehouse) is the sum of its rows and is never stored.
    """

    __tablename__ = "inventory_txns"
    __table_args__ = (
        Index("ix_inventory_txns_product_warehouse", "product_id", "warehouse"),
        Index("ix_inventory_txns_ref", "ref_table", "ref_id"),
        UniqueConstraint("idempotency_key", name="uq_inventory_txn_idempotency"),
    )

    id = Column(Integer, primary_key=True, index=True)
    txn_type = Column(
        SAEnum(TxnTypeEnum, name="txn_type_enum", native_enum=False),
        nullable=False,
        index=True,
    )
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    qty = Column(Float, nullable=False)
    warehouse = Column(String(32), nullable=False, default=DEFAULT_WAREHOUSE)
    ref_table = Column(
        SAEnum(RefTableEnum, name="txn_ref_table_enum", native_enum=False),
        nullable=False,
    )
    ref_id = Column(Integer, nullable=False)
    batch_no = Column(String(64), nullable=True, index=True)
    idempotency_key = Column(String(128), nullable=True)

    occurred_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    product = relationship("Product", lazy="joined")


@event.listens_for(InventoryTxn, "before_update")
def _block_ledger_update(mapper, connection, target):
    raise LedgerImmutableError(f"Inventory ledger row {target.id} cannot be updated.")


@event.listens_for(InventoryTxn, "before_delete")
def _block_ledger_delete(mapper, connection, target):
    raise LedgerImmutableError(f"Inventory ledger row {target.id} cannot be deleted.")
