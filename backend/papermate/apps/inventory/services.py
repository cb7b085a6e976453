from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from papermate.apps.catalog import models as catalog_models
from papermate.apps.catalog import services as catalog_services
from papermate.apps.production import models as production_models
from papermate.apps.purchasing import models as purchasing_models
from papermate.apps.sales import models as sales_models
from papermate.errors import ConstraintViolationError, InsufficientStockError, NotFoundError

from . import models, schemas

logger = logging.getLogger(__name__)

_REF_MODELS = {
    models.RefTableEnum.PO: purchasing_models.PurchaseOrder,
    models.RefTableEnum.PROD: production_models.ProductionOrder,
    models.RefTableEnum.SO: sales_models.SalesOrder,
}


def normalize_warehouse(warehouse: Optional[str]) -> str:
    return (warehouse or models.DEFAULT_WAREHOUSE).strip().upper()


def _ensure_reference_exists(db: Session, *, ref_table: models.RefTableEnum, ref_id: int) -> None:
    ref_model = _REF_MODELS[ref_table]
    exists = db.query(ref_model.id).filter(ref_model.id == ref_id).first()
    if not exists:
        raise NotFoundError(f"{ref_table.value} document {ref_id} not found.")


def _validate_movement(
    *,
    txn_type: models.TxnTypeEnum,
    qty: float,
    ref_table: models.RefTableEnum,
) -> None:
    if qty == 0:
        raise ConstraintViolationError("Ledger quantity must be non-zero.")
    expected_ref = models.TXN_REF_TABLE[txn_type]
    if ref_table != expected_ref:
        raise ConstraintViolationError(
            f"{txn_type.value} movements must reference {expected_ref.value}, got {ref_table.value}."
        )
    sign = models.TXN_SIGN[txn_type]
    if qty * sign < 0:
        direction = "positive" if sign > 0 else "negative"
        raise ConstraintViolationError(f"{txn_type.value} quantity must be {direction}.")


def _same_movement(entry: models.InventoryTxn, **fields) -> bool:
    return all(getattr(entry, key) == value for key, value in fields.items())


def find_by_idempotency_key(db: Session, *, idempotency_key: str) -> Optional[models.InventoryTxn]:
    return (
        db.query(models.InventoryTxn)
        .filter(models.InventoryTxn.idempotency_key == idempotency_key)
        .first()
    )


def _replayed_movement(existing: models.InventoryTxn, **fields) -> models.InventoryTxn:
    if not _same_movement(existing, **fields):
        raise ConstraintViolationError("Idempotency key reuse with different movement.")
    return existing


def append_txn(
    db: Session,
    *,
    txn_type: models.TxnTypeEnum,
    product_id: int,
    qty: float,
    ref_table: models.RefTableEnum,
    ref_id: int,
    warehouse: Optional[str] = None,
    batch_no: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    occurred_at: Optional[datetime] = None,
    allow_negative_stock: bool = False,
) -> models.InventoryTxn:
    """
    Append one immutable ledger row.

    Stock for (product, warehouse) moves by exactly `qty`. The caller owns
    the transaction: this only flushes, so the order document and its
    movements commit or roll back together.
    """
    warehouse = normalize_warehouse(warehouse)
    _validate_movement(txn_type=txn_type, qty=qty, ref_table=ref_table)
    catalog_services.get_product(db, product_id=product_id)
    _ensure_reference_exists(db, ref_table=ref_table, ref_id=ref_id)

    movement = dict(
        txn_type=txn_type,
        product_id=product_id,
        qty=qty,
        warehouse=warehouse,
        ref_table=ref_table,
        ref_id=ref_id,
        batch_no=batch_no,
    )
    if idempotency_key:
        existing = find_by_idempotency_key(db, idempotency_key=idempotency_key)
        if existing:
            return _replayed_movement(existing, **movement)

    if qty < 0 and not allow_negative_stock:
        on_hand = get_stock(db, product_id=product_id, warehouse=warehouse)
        if on_hand + qty < 0:
            raise InsufficientStockError(
                f"Insufficient stock for product {product_id} at {warehouse}: "
                f"on hand {on_hand:g}, requested {-qty:g}."
            )

    entry = models.InventoryTxn(
        idempotency_key=idempotency_key,
        occurred_at=occurred_at or datetime.utcnow(),
        **movement,
    )
    if idempotency_key:
        try:
            with db.begin_nested():
                db.add(entry)
                db.flush()
        except IntegrityError:
            # A concurrent writer committed the same key first.
            winner = find_by_idempotency_key(db, idempotency_key=idempotency_key)
            if not winner:
                raise ConstraintViolationError(f"Idempotency key {idempotency_key!r} could not be recorded.")
            logger.info(
                "Idempotent movement written concurrently; reusing existing row",
                extra={"txn_id": winner.id, "idempotency_key": idempotency_key},
            )
            return _replayed_movement(winner, **movement)
    else:
        db.add(entry)
        db.flush()
    logger.info(
        "Inventory movement appended",
        extra={
            "txn_id": entry.id,
            "txn_type": txn_type.value,
            "product_id": product_id,
            "qty": qty,
            "warehouse": warehouse,
            "ref": f"{ref_table.value}:{ref_id}",
        },
    )
    return entry


def get_stock(db: Session, *, product_id: int, warehouse: Optional[str] = None) -> float:
    total = (
        db.query(func.coalesce(func.sum(models.InventoryTxn.qty), 0.0))
        .filter(
            models.InventoryTxn.product_id == product_id,
            models.InventoryTxn.warehouse == normalize_warehouse(warehouse),
        )
        .scalar()
    )
    return float(total or 0.0)


def get_stock_by_code(db: Session, *, product_code: str, warehouse: Optional[str] = None) -> schemas.StockBalance:
    product = catalog_services.get_product_by_code(db, code=product_code)
    if not product:
        raise NotFoundError(f"Product {product_code} not found.")
    warehouse = normalize_warehouse(warehouse)
    return schemas.StockBalance(
        product_id=product.id,
        product_code=product.code,
        uom=product.uom,
        warehouse=warehouse,
        quantity=get_stock(db, product_id=product.id, warehouse=warehouse),
    )


def list_stock(
    db: Session,
    *,
    warehouse: Optional[str] = None,
    product_code: Optional[str] = None,
) -> List[schemas.StockBalance]:
    query = (
        db.query(
            catalog_models.Product.id,
            catalog_models.Product.code,
            catalog_models.Product.uom,
            models.InventoryTxn.warehouse,
            func.sum(models.InventoryTxn.qty),
        )
        .join(catalog_models.Product, catalog_models.Product.id == models.InventoryTxn.product_id)
        .group_by(
            catalog_models.Product.id,
            catalog_models.Product.code,
            catalog_models.Product.uom,
            models.InventoryTxn.warehouse,
        )
    )
    if warehouse:
        query = query.filter(models.InventoryTxn.warehouse == normalize_warehouse(warehouse))
    if product_code:
        query = query.filter(catalog_services.product_code_matches(product_code))

    return [
        schemas.StockBalance(
            product_id=product_id,
            product_code=code,
            uom=uom,
            warehouse=row_warehouse,
            quantity=float(total or 0.0),
        )
        for product_id, code, uom, row_warehouse, total in query.order_by(
            catalog_models.Product.code.asc(), models.InventoryTxn.warehouse.asc()
        ).all()
    ]


def list_ledger(
    db: Session,
    *,
    product_id: Optional[int] = None,
    ref_table: Optional[models.RefTableEnum] = None,
    ref_id: Optional[int] = None,
    txn_type: Optional[models.TxnTypeEnum] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.InventoryTxn]:
    query = db.query(models.InventoryTxn)
    if product_id is not None:
        query = query.filter(models.InventoryTxn.product_id == product_id)
    if ref_table is not None:
        query = query.filter(models.InventoryTxn.ref_table == ref_table)
    if ref_id is not None:
        query = query.filter(models.InventoryTxn.ref_id == ref_id)
    if txn_type is not None:
        query = query.filter(models.InventoryTxn.txn_type == txn_type)
    return (
        query.order_by(models.InventoryTxn.occurred_at.desc(), models.InventoryTxn.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def movement_totals(
    db: Session,
    *,
    txn_type: models.TxnTypeEnum,
    ref_table: models.RefTableEnum,
    ref_id: int,
) -> Dict[int, float]:
    """Sum of ledger quantities per product for one document and movement type."""
    rows = (
        db.query(models.InventoryTxn.product_id, func.sum(models.InventoryTxn.qty))
        .filter(
            models.InventoryTxn.txn_type == txn_type,
            models.InventoryTxn.ref_table == ref_table,
            models.InventoryTxn.ref_id == ref_id,
        )
        .group_by(models.InventoryTxn.product_id)
        .all()
    )
    return {product_id: float(total or 0.0) for product_id, total in rows}
