from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from papermate.config import Settings
from papermate.database import get_app_settings, get_db

from . import models, schemas, services

router = APIRouter(prefix="/purchasing", tags=["purchasing"])


@router.post(
    "/purchase-orders",
    response_model=schemas.PurchaseOrderRead,
    status_code=status.HTTP_201_CREATED,
)
def create_purchase_order(payload: schemas.PurchaseOrderCreate, db: Session = Depends(get_db)):
    po = services.create_purchase_order(db, payload=payload)
    db.commit()
    db.refresh(po)
    return po


@router.get("/purchase-orders", response_model=List[schemas.PurchaseOrderRead])
def list_purchase_orders(
    status: Optional[models.POStatusEnum] = None,
    supplier_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    return services.list_purchase_orders(db, status=status, supplier_id=supplier_id, skip=skip, limit=limit)


@router.get("/purchase-orders/{purchase_order_id}", response_model=schemas.PurchaseOrderRead)
def get_purchase_order(purchase_order_id: int, db: Session = Depends(get_db)):
    return services.get_purchase_order(db, purchase_order_id=purchase_order_id)


@router.get("/purchase-orders/{purchase_order_id}/received", response_model=List[schemas.ReceivedLine])
def received_quantities(purchase_order_id: int, db: Session = Depends(get_db)):
    return services.received_quantities(db, purchase_order_id=purchase_order_id)


@router.post("/purchase-orders/{purchase_order_id}/receive", response_model=schemas.PurchaseOrderRead)
def receive_purchase_order(
    purchase_order_id: int,
    payload: Optional[schemas.GoodsReceiptCreate] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    warehouse = payload.warehouse if payload and payload.warehouse else settings.default_warehouse
    po = services.receive_purchase_order(
        db,
        purchase_order_id=purchase_order_id,
        payload=payload,
        warehouse=warehouse,
    )
    db.commit()
    db.refresh(po)
    return po


@router.post("/purchase-orders/{purchase_order_id}/cancel", response_model=schemas.PurchaseOrderRead)
def cancel_purchase_order(purchase_order_id: int, db: Session = Depends(get_db)):
    po = services.cancel_purchase_order(db, purchase_order_id=purchase_order_id)
    db.commit()
    db.refresh(po)
    return po
