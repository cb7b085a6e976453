from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel

from . import models


class ProductAttrs(BaseModel):
    name: str
    type: models.ProductTypeEnum
    uom: str
    finished_kind: Optional[models.FinishedKindEnum] = None
    size: Optional[str] = None
    attributes: Optional[Dict[str, Any]] = None


class ProductRead(ProductAttrs):
    id: int
    code: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PartyAttrs(BaseModel):
    type: models.PartyTypeEnum
    whatsapp: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class PartyCreate(PartyAttrs):
    name: str


class PartyRead(PartyCreate):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True
