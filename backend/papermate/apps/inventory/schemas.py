from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from . import models


class InventoryTxnRead(BaseModel):
    id: int
    txn_type: models.TxnTypeEnum
    product_id: int
    qty: float
    warehouse: str
    ref_table: models.RefTableEnum
    ref_id: int
    batch_no: Optional[str] = None
    idempotency_key: Optional[str] = None
    occurred_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class StockBalance(BaseModel):
    product_id: int
    product_code: str
    uom: str
    warehouse: str
    quantity: float
