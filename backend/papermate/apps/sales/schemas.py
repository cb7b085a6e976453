from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from . import models


class SalesOrderLineCreate(BaseModel):
    product_id: int
    qty: float = Field(..., gt=0)
    unit_price: Optional[Decimal] = Field(None, ge=0)


class SalesOrderCreate(BaseModel):
    customer_id: int
    notes: Optional[str] = None
    lines: List[SalesOrderLineCreate] = Field(..., min_length=1)


class SalesOrderLineRead(BaseModel):
    id: int
    product_id: int
    qty: float
    unit_price: Optional[Decimal] = None

    class Config:
        from_attributes = True


class PaymentRead(BaseModel):
    id: int
    sales_order_id: int
    status: models.PaymentStatusEnum
    amount: Optional[Decimal] = None
    paid_date: Optional[date] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SalesOrderRead(BaseModel):
    id: int
    customer_id: int
    status: models.OrderStatusEnum
    notes: Optional[str] = None
    created_at: datetime
    lines: List[SalesOrderLineRead] = Field(default_factory=list)
    payment: Optional[PaymentRead] = None

    class Config:
        from_attributes = True


class ShipmentLine(BaseModel):
    product_id: int
    qty: float = Field(..., gt=0)


class ShipmentCreate(BaseModel):
    """
    Lines to ship against a confirmed sales order. When `lines` is omitted
    everything still outstanding is shipped.
    """

    lines: Optional[List[ShipmentLine]] = None
    warehouse: Optional[str] = None


class ShippedLine(BaseModel):
    product_id: int
    ordered: float
    shipped: float


class PaymentCreate(BaseModel):
    status: models.PaymentStatusEnum = models.PaymentStatusEnum.UNPAID
    amount: Optional[Decimal] = None
    paid_date: Optional[date] = None


class PaymentUpdate(BaseModel):
    status: Optional[models.PaymentStatusEnum] = None
    amount: Optional[Decimal] = None
    paid_date: Optional[date] = None
