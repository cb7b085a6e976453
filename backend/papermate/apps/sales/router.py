from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from papermate.config import Settings
from papermate.database import get_app_settings, get_db

from . import models, schemas, services

router = APIRouter(prefix="/sales", tags=["sales", "payments"])


@router.post("/orders", response_model=schemas.SalesOrderRead, status_code=status.HTTP_201_CREATED)
def create_sales_order(payload: schemas.SalesOrderCreate, db: Session = Depends(get_db)):
    so = services.create_sales_order(db, payload=payload)
    db.commit()
    db.refresh(so)
    return so


@router.get("/orders", response_model=List[schemas.SalesOrderRead])
def list_sales_orders(
    status: Optional[models.OrderStatusEnum] = None,
    customer_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    return services.list_sales_orders(db, status=status, customer_id=customer_id, skip=skip, limit=limit)


@router.get("/orders/{sales_order_id}", response_model=schemas.SalesOrderRead)
def get_sales_order(sales_order_id: int, db: Session = Depends(get_db)):
    return services.get_sales_order(db, sales_order_id=sales_order_id)


@router.get("/orders/{sales_order_id}/shipped", response_model=List[schemas.ShippedLine])
def shipped_quantities(sales_order_id: int, db: Session = Depends(get_db)):
    return services.shipped_quantities(db, sales_order_id=sales_order_id)


@router.post("/orders/{sales_order_id}/confirm", response_model=schemas.SalesOrderRead)
def confirm_sales_order(sales_order_id: int, db: Session = Depends(get_db)):
    so = services.confirm_sales_order(db, sales_order_id=sales_order_id)
    db.commit()
    db.refresh(so)
    return so


@router.post("/orders/{sales_order_id}/ship", response_model=schemas.SalesOrderRead)
def ship_sales_order(
    sales_order_id: int,
    payload: Optional[schemas.ShipmentCreate] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    warehouse = payload.warehouse if payload and payload.warehouse else settings.default_warehouse
    so = services.ship_sales_order(
        db,
        sales_order_id=sales_order_id,
        payload=payload,
        warehouse=warehouse,
        allow_negative_stock=settings.allow_negative_stock,
    )
    db.commit()
    db.refresh(so)
    return so


@router.post("/orders/{sales_order_id}/cancel", response_model=schemas.SalesOrderRead)
def cancel_sales_order(sales_order_id: int, db: Session = Depends(get_db)):
    so = services.cancel_sales_order(db, sales_order_id=sales_order_id)
    db.commit()
    db.refresh(so)
    return so


@router.get("/orders/{sales_order_id}/payment", response_model=schemas.PaymentRead)
def get_payment(sales_order_id: int, db: Session = Depends(get_db)):
    return services.get_payment(db, sales_order_id=sales_order_id)


@router.post(
    "/orders/{sales_order_id}/payment",
    response_model=schemas.PaymentRead,
    status_code=status.HTTP_201_CREATED,
)
def record_payment(sales_order_id: int, payload: schemas.PaymentCreate, db: Session = Depends(get_db)):
    payment = services.record_payment(db, sales_order_id=sales_order_id, payload=payload)
    db.commit()
    db.refresh(payment)
    return payment


@router.patch("/orders/{sales_order_id}/payment", response_model=schemas.PaymentRead)
def update_payment(sales_order_id: int, payload: schemas.PaymentUpdate, db: Session = Depends(get_db)):
    payment = services.update_payment(db, sales_order_id=sales_order_id, payload=payload)
    db.commit()
    db.refresh(payment)
    return payment
