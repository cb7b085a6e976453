from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from . import models


class ConsumptionLineCreate(BaseModel):
    product_id: int
    qty: float = Field(..., gt=0)


class OutputLineCreate(BaseModel):
    product_id: int
    qty: float = Field(..., gt=0)
    batch_no: Optional[str] = None


class ProductionOrderCreate(BaseModel):
    status: models.ProdStatusEnum = models.ProdStatusEnum.IN_PROGRESS
    notes: Optional[str] = None
    consumption: List[ConsumptionLineCreate] = Field(default_factory=list)
    output: List[OutputLineCreate] = Field(default_factory=list)
    warehouse: Optional[str] = None


class ConsumptionLineRead(BaseModel):
    id: int
    product_id: int
    qty: float

    class Config:
        from_attributes = True


class OutputLineRead(BaseModel):
    id: int
    product_id: int
    qty: float
    batch_no: Optional[str] = None

    class Config:
        from_attributes = True


class ProductionOrderRead(BaseModel):
    id: int
    status: models.ProdStatusEnum
    warehouse: str
    notes: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    consumption: List[ConsumptionLineRead] = Field(default_factory=list)
    output: List[OutputLineRead] = Field(default_factory=list)

    class Config:
        from_attributes = True
