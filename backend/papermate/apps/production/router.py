from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from papermate.config import Settings
from papermate.database import get_app_settings, get_db

from . import models, schemas, services

router = APIRouter(prefix="/production", tags=["production"])


@router.post("/orders", response_model=schemas.ProductionOrderRead, status_code=status.HTTP_201_CREATED)
def create_production_order(
    payload: schemas.ProductionOrderCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    order = services.create_production_order(
        db,
        payload=payload,
        warehouse=payload.warehouse or settings.default_warehouse,
        allow_negative_stock=settings.allow_negative_stock,
    )
    db.commit()
    db.refresh(order)
    return order


@router.get("/orders", response_model=List[schemas.ProductionOrderRead])
def list_production_orders(
    status: Optional[models.ProdStatusEnum] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    return services.list_production_orders(db, status=status, skip=skip, limit=limit)


@router.get("/orders/{production_order_id}", response_model=schemas.ProductionOrderRead)
def get_production_order(production_order_id: int, db: Session = Depends(get_db)):
    return services.get_production_order(db, production_order_id=production_order_id)


@router.post("/orders/{production_order_id}/start", response_model=schemas.ProductionOrderRead)
def start_production_order(
    production_order_id: int,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    order = services.start_production_order(
        db,
        production_order_id=production_order_id,
        allow_negative_stock=settings.allow_negative_stock,
    )
    db.commit()
    db.refresh(order)
    return order


@router.post("/orders/{production_order_id}/complete", response_model=schemas.ProductionOrderRead)
def complete_production_order(
    production_order_id: int,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    order = services.complete_production_order(
        db,
        production_order_id=production_order_id,
        allow_negative_stock=settings.allow_negative_stock,
    )
    db.commit()
    db.refresh(order)
    return order


@router.post("/orders/{production_order_id}/cancel", response_model=schemas.ProductionOrderRead)
def cancel_production_order(production_order_id: int, db: Session = Depends(get_db)):
    order = services.cancel_production_order(db, production_order_id=production_order_id)
    db.commit()
    db.refresh(order)
    return order
