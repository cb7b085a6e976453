from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from papermate.apps.catalog import services as catalog_services
from papermate.apps.inventory import models as inventory_models
from papermate.apps.inventory import services as inventory_services
from papermate.errors import ConstraintViolationError, NotFoundError

from . import models, schemas

# Orders in these states have already written their movements to the ledger.
_POSTED_STATES = {models.ProdStatusEnum.IN_PROGRESS, models.ProdStatusEnum.DONE}


def get_production_order(db: Session, *, production_order_id: int) -> models.ProductionOrder:
    order = (
        db.query(models.ProductionOrder)
        .filter(models.ProductionOrder.id == production_order_id)
        .first()
    )
    if not order:
        raise NotFoundError(f"Production order {production_order_id} not found.")
    return order


def _lock_production_order(db: Session, *, production_order_id: int) -> models.ProductionOrder:
    order = (
        db.query(models.ProductionOrder)
        .filter(models.ProductionOrder.id == production_order_id)
        .with_for_update(of=models.ProductionOrder)
        .first()
    )
    if not order:
        raise NotFoundError(f"Production order {production_order_id} not found.")
    return order


def list_production_orders(
    db: Session,
    *,
    status: Optional[models.ProdStatusEnum] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.ProductionOrder]:
    query = db.query(models.ProductionOrder)
    if status is not None:
        query = query.filter(models.ProductionOrder.status == status)
    return query.order_by(models.ProductionOrder.id.asc()).offset(skip).limit(limit).all()


def _post_movements(
    db: Session,
    *,
    order: models.ProductionOrder,
    allow_negative_stock: bool,
) -> None:
    # Consumption first, so a short raw material fails before any output is booked.
    for line in order.consumption:
        inventory_services.append_txn(
            db,
            txn_type=inventory_models.TxnTypeEnum.PROD_CONS,
            product_id=line.product_id,
            qty=-line.qty,
            warehouse=order.warehouse,
            ref_table=inventory_models.RefTableEnum.PROD,
            ref_id=order.id,
            allow_negative_stock=allow_negative_stock,
        )
    for line in order.output:
        inventory_services.append_txn(
            db,
            txn_type=inventory_models.TxnTypeEnum.PROD_OUT,
            product_id=line.product_id,
            qty=line.qty,
            warehouse=order.warehouse,
            ref_table=inventory_models.RefTableEnum.PROD,
            ref_id=order.id,
            batch_no=line.batch_no,
        )


def create_production_order(
    db: Session,
    *,
    payload: schemas.ProductionOrderCreate,
    warehouse: Optional[str] = None,
    allow_negative_stock: bool = False,
) -> models.ProductionOrder:
    """
    Record a production run with its consumption and output lines.

    Unless the order is only PLANNED, its PROD_CONS (negative) and PROD_OUT
    (positive) movements are appended in the same transaction.
    The warehouse is stored on the order; later start or complete calls
    post to it.
    """
    if payload.status == models.ProdStatusEnum.CANCELLED:
        raise ConstraintViolationError("A production order cannot be created as CANCELLED.")
    if not payload.consumption and not payload.output:
        raise ConstraintViolationError("A production order needs consumption or output lines.")

    order = models.ProductionOrder(
        status=payload.status,
        notes=payload.notes,
        warehouse=inventory_services.normalize_warehouse(warehouse or payload.warehouse),
        completed_at=datetime.utcnow() if payload.status == models.ProdStatusEnum.DONE else None,
    )
    db.add(order)
    db.flush()

    for line in payload.consumption:
        catalog_services.get_product(db, product_id=line.product_id)
        db.add(models.ProductionConsumption(production_order_id=order.id, product_id=line.product_id, qty=line.qty))
    for line in payload.output:
        catalog_services.get_product(db, product_id=line.product_id)
        db.add(
            models.ProductionOutput(
                production_order_id=order.id,
                product_id=line.product_id,
                qty=line.qty,
                batch_no=line.batch_no,
            )
        )
    db.flush()
    db.refresh(order)

    if order.status in _POSTED_STATES:
        _post_movements(db, order=order, allow_negative_stock=allow_negative_stock)
    return order


def start_production_order(
    db: Session,
    *,
    production_order_id: int,
    allow_negative_stock: bool = False,
) -> models.ProductionOrder:
    order = _lock_production_order(db, production_order_id=production_order_id)
    if order.status != models.ProdStatusEnum.PLANNED:
        raise ConstraintViolationError(
            f"Production order {order.id} is {order.status.value}; only PLANNED orders can start."
        )
    _post_movements(db, order=order, allow_negative_stock=allow_negative_stock)
    order.status = models.ProdStatusEnum.IN_PROGRESS
    db.add(order)
    db.flush()
    return order


def complete_production_order(
    db: Session,
    *,
    production_order_id: int,
    allow_negative_stock: bool = False,
) -> models.ProductionOrder:
    order = _lock_production_order(db, production_order_id=production_order_id)
    if order.status == models.ProdStatusEnum.DONE:
        return order
    if order.status == models.ProdStatusEnum.CANCELLED:
        raise ConstraintViolationError(f"Production order {order.id} is CANCELLED.")
    if order.status == models.ProdStatusEnum.PLANNED:
        _post_movements(db, order=order, allow_negative_stock=allow_negative_stock)
    order.status = models.ProdStatusEnum.DONE
    order.completed_at = datetime.utcnow()
    db.add(order)
    db.flush()
    return order


def cancel_production_order(db: Session, *, production_order_id: int) -> models.ProductionOrder:
    order = _lock_production_order(db, production_order_id=production_order_id)
    if order.status == models.ProdStatusEnum.CANCELLED:
        return order
    if order.status in _POSTED_STATES:
        raise ConstraintViolationError(
            f"Production order {order.id} has posted movements and cannot be cancelled."
        )
    order.status = models.ProdStatusEnum.CANCELLED
    db.add(order)
    db.flush()
    return order
