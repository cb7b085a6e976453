from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from papermate.apps.catalog import models as catalog_models
from papermate.apps.catalog import services as catalog_services
from papermate.apps.inventory import models as inventory_models
from papermate.apps.inventory import services as inventory_services
from papermate.errors import ConstraintViolationError, NotFoundError

from . import models, schemas

# Float quantities are compared with a small tolerance.
_QTY_EPSILON = 1e-9


def _lock_purchase_order(db: Session, *, purchase_order_id: int) -> models.PurchaseOrder:
    po = (
        db.query(models.PurchaseOrder)
        .filter(models.PurchaseOrder.id == purchase_order_id)
        .with_for_update(of=models.PurchaseOrder)
        .first()
    )
    if not po:
        raise NotFoundError(f"Purchase order {purchase_order_id} not found.")
    return po


def get_purchase_order(db: Session, *, purchase_order_id: int) -> models.PurchaseOrder:
    po = db.query(models.PurchaseOrder).filter(models.PurchaseOrder.id == purchase_order_id).first()
    if not po:
        raise NotFoundError(f"Purchase order {purchase_order_id} not found.")
    return po


def list_purchase_orders(
    db: Session,
    *,
    status: Optional[models.POStatusEnum] = None,
    supplier_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.PurchaseOrder]:
    query = db.query(models.PurchaseOrder)
    if status is not None:
        query = query.filter(models.PurchaseOrder.status == status)
    if supplier_id is not None:
        query = query.filter(models.PurchaseOrder.supplier_id == supplier_id)
    return query.order_by(models.PurchaseOrder.id.asc()).offset(skip).limit(limit).all()


def create_purchase_order(db: Session, *, payload: schemas.PurchaseOrderCreate) -> models.PurchaseOrder:
    supplier = catalog_services.get_party(db, party_id=payload.supplier_id)
    catalog_services.require_party_type(supplier, catalog_models.PartyTypeEnum.SUPPLIER)
    if not payload.lines:
        raise ConstraintViolationError("A purchase order needs at least one line.")

    po = models.PurchaseOrder(
        supplier_id=supplier.id,
        status=models.POStatusEnum.OPEN,
        notes=payload.notes,
    )
    db.add(po)
    db.flush()

    for line in payload.lines:
        catalog_services.get_product(db, product_id=line.product_id)
        db.add(
            models.PurchaseOrderLine(
                purchase_order_id=po.id,
                product_id=line.product_id,
                qty=line.qty,
                unit_cost=line.unit_cost,
            )
        )
    db.flush()
    db.refresh(po)
    return po


def _ordered_by_product(po: models.PurchaseOrder) -> Dict[int, float]:
    ordered: Dict[int, float] = defaultdict(float)
    for line in po.lines:
        ordered[line.product_id] += line.qty
    return dict(ordered)


def received_quantities(db: Session, *, purchase_order_id: int) -> List[schemas.ReceivedLine]:
    po = get_purchase_order(db, purchase_order_id=purchase_order_id)
    received = inventory_services.movement_totals(
        db,
        txn_type=inventory_models.TxnTypeEnum.GRN,
        ref_table=inventory_models.RefTableEnum.PO,
        ref_id=po.id,
    )
    return [
        schemas.ReceivedLine(product_id=product_id, ordered=ordered, received=received.get(product_id, 0.0))
        for product_id, ordered in _ordered_by_product(po).items()
    ]


def _status_from_receipts(ordered: Dict[int, float], received: Dict[int, float]) -> models.POStatusEnum:
    if not any(received.get(product_id, 0.0) > _QTY_EPSILON for product_id in ordered):
        return models.POStatusEnum.OPEN
    if all(received.get(product_id, 0.0) >= qty - _QTY_EPSILON for product_id, qty in ordered.items()):
        return models.POStatusEnum.RECEIVED
    return models.POStatusEnum.PARTIAL


def receive_purchase_order(
    db: Session,
    *,
    purchase_order_id: int,
    payload: Optional[schemas.GoodsReceiptCreate] = None,
    warehouse: Optional[str] = None,
) -> models.PurchaseOrder:
    """
    Post goods received against a purchase order.

    Appends one GRN movement per received product and moves the order to
    PARTIAL or RECEIVED. Receiving more than was ordered is rejected.
    """
    payload = payload or schemas.GoodsReceiptCreate()
    po = _lock_purchase_order(db, purchase_order_id=purchase_order_id)
    if po.status in {models.POStatusEnum.CANCELLED, models.POStatusEnum.RECEIVED}:
        raise ConstraintViolationError(f"Purchase order {po.id} is {po.status.value}; nothing to receive.")

    ordered = _ordered_by_product(po)
    received = inventory_services.movement_totals(
        db,
        txn_type=inventory_models.TxnTypeEnum.GRN,
        ref_table=inventory_models.RefTableEnum.PO,
        ref_id=po.id,
    )

    to_receive: Dict[int, float] = defaultdict(float)
    if payload.lines is None:
        for product_id, qty in ordered.items():
            outstanding = qty - received.get(product_id, 0.0)
            if outstanding > _QTY_EPSILON:
                to_receive[product_id] = outstanding
    else:
        for line in payload.lines:
            if line.product_id not in ordered:
                raise ConstraintViolationError(
                    f"Product {line.product_id} is not on purchase order {po.id}."
                )
            to_receive[line.product_id] += line.qty

    for product_id, qty in to_receive.items():
        already = received.get(product_id, 0.0)
        if already + qty > ordered[product_id] + _QTY_EPSILON:
            raise ConstraintViolationError(
                f"Receiving {qty:g} of product {product_id} exceeds purchase order {po.id}: "
                f"ordered {ordered[product_id]:g}, already received {already:g}."
            )

    warehouse = warehouse or payload.warehouse
    for product_id, qty in to_receive.items():
        inventory_services.append_txn(
            db,
            txn_type=inventory_models.TxnTypeEnum.GRN,
            product_id=product_id,
            qty=qty,
            warehouse=warehouse,
            ref_table=inventory_models.RefTableEnum.PO,
            ref_id=po.id,
        )
        received[product_id] = received.get(product_id, 0.0) + qty

    po.status = _status_from_receipts(ordered, received)
    db.add(po)
    db.flush()
    return po


def cancel_purchase_order(db: Session, *, purchase_order_id: int) -> models.PurchaseOrder:
    po = _lock_purchase_order(db, purchase_order_id=purchase_order_id)
    if po.status == models.POStatusEnum.CANCELLED:
        return po
    if po.status != models.POStatusEnum.OPEN:
        raise ConstraintViolationError(
            f"Purchase order {po.id} has receipts and cannot be cancelled."
        )
    po.status = models.POStatusEnum.CANCELLED
    db.add(po)
    db.flush()
    return po
