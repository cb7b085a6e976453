from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from . import models


class PurchaseOrderLineCreate(BaseModel):
    product_id: int
    qty: float = Field(..., gt=0)
    unit_cost: Decimal = Field(Decimal("0"), ge=0)


class PurchaseOrderCreate(BaseModel):
    supplier_id: int
    notes: Optional[str] = None
    lines: List[PurchaseOrderLineCreate] = Field(..., min_length=1)


class PurchaseOrderLineRead(BaseModel):
    id: int
    product_id: int
    qty: float
    unit_cost: Decimal

    class Config:
        from_attributes = True


class PurchaseOrderRead(BaseModel):
    id: int
    supplier_id: int
    status: models.POStatusEnum
    notes: Optional[str] = None
    created_at: datetime
    lines: List[PurchaseOrderLineRead] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ReceiptLine(BaseModel):
    product_id: int
    qty: float = Field(..., gt=0)


class GoodsReceiptCreate(BaseModel):
    """
    Lines to receive against a purchase order. When `lines` is omitted the
    full outstanding quantity of every line is received.
    """

    lines: Optional[List[ReceiptLine]] = None
    warehouse: Optional[str] = None


class ReceivedLine(BaseModel):
    product_id: int
    ordered: float
    received: float
