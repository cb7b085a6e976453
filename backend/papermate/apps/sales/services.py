from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from papermate.apps.catalog import models as catalog_models
from papermate.apps.catalog import services as catalog_services
from papermate.apps.inventory import models as inventory_models
from papermate.apps.inventory import services as inventory_services
from papermate.errors import ConstraintViolationError, NotFoundError

from . import models, schemas

_QTY_EPSILON = 1e-9


# ---------------------------------------------------------------------------
# Sales orders
# ---------------------------------------------------------------------------


def get_sales_order(db: Session, *, sales_order_id: int) -> models.SalesOrder:
    so = db.query(models.SalesOrder).filter(models.SalesOrder.id == sales_order_id).first()
    if not so:
        raise NotFoundError(f"Sales order {sales_order_id} not found.")
    return so


def _lock_sales_order(db: Session, *, sales_order_id: int) -> models.SalesOrder:
    so = (
        db.query(models.SalesOrder)
        .filter(models.SalesOrder.id == sales_order_id)
        .with_for_update(of=models.SalesOrder)
        .first()
    )
    if not so:
        raise NotFoundError(f"Sales order {sales_order_id} not found.")
    return so


def list_sales_orders(
    db: Session,
    *,
    status: Optional[models.OrderStatusEnum] = None,
    customer_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.SalesOrder]:
    query = db.query(models.SalesOrder)
    if status is not None:
        query = query.filter(models.SalesOrder.status == status)
    if customer_id is not None:
        query = query.filter(models.SalesOrder.customer_id == customer_id)
    return query.order_by(models.SalesOrder.id.asc()).offset(skip).limit(limit).all()


def create_sales_order(db: Session, *, payload: schemas.SalesOrderCreate) -> models.SalesOrder:
    customer = catalog_services.get_party(db, party_id=payload.customer_id)
    catalog_services.require_party_type(customer, catalog_models.PartyTypeEnum.CUSTOMER)
    if not payload.lines:
        raise ConstraintViolationError("A sales order needs at least one line.")

    so = models.SalesOrder(
        customer_id=customer.id,
        status=models.OrderStatusEnum.DRAFT,
        notes=payload.notes,
    )
    db.add(so)
    db.flush()

    for line in payload.lines:
        catalog_services.get_product(db, product_id=line.product_id)
        db.add(
            models.SalesOrderLine(
                sales_order_id=so.id,
                product_id=line.product_id,
                qty=line.qty,
                unit_price=line.unit_price,
            )
        )
    db.flush()
    db.refresh(so)
    return so


def confirm_sales_order(db: Session, *, sales_order_id: int) -> models.SalesOrder:
    so = _lock_sales_order(db, sales_order_id=sales_order_id)
    if so.status == models.OrderStatusEnum.CONFIRMED:
        return so
    if so.status != models.OrderStatusEnum.DRAFT:
        raise ConstraintViolationError(
            f"Sales order {so.id} is {so.status.value}; only DRAFT orders can be confirmed."
        )
    so.status = models.OrderStatusEnum.CONFIRMED
    db.add(so)
    db.flush()
    return so


def _ordered_by_product(so: models.SalesOrder) -> Dict[int, float]:
    ordered: Dict[int, float] = defaultdict(float)
    for line in so.lines:
        ordered[line.product_id] += line.qty
    return dict(ordered)


def _shipped_by_product(db: Session, *, sales_order_id: int) -> Dict[int, float]:
    # SHIP rows are negative; shipped quantities are their magnitude.
    totals = inventory_services.movement_totals(
        db,
        txn_type=inventory_models.TxnTypeEnum.SHIP,
        ref_table=inventory_models.RefTableEnum.SO,
        ref_id=sales_order_id,
    )
    return {product_id: -qty for product_id, qty in totals.items()}


def shipped_quantities(db: Session, *, sales_order_id: int) -> List[schemas.ShippedLine]:
    so = get_sales_order(db, sales_order_id=sales_order_id)
    shipped = _shipped_by_product(db, sales_order_id=so.id)
    return [
        schemas.ShippedLine(product_id=product_id, ordered=ordered, shipped=shipped.get(product_id, 0.0))
        for product_id, ordered in _ordered_by_product(so).items()
    ]


def ship_sales_order(
    db: Session,
    *,
    sales_order_id: int,
    payload: Optional[schemas.ShipmentCreate] = None,
    warehouse: Optional[str] = None,
    allow_negative_stock: bool = False,
) -> models.SalesOrder:
    """
    Ship goods against a confirmed sales order.

    Appends one SHIP movement (negative) per product. Shipping more than was
    ordered is rejected; the order becomes SHIPPED once every line is out.
    """
    payload = payload or schemas.ShipmentCreate()
    so = _lock_sales_order(db, sales_order_id=sales_order_id)
    if so.status != models.OrderStatusEnum.CONFIRMED:
        raise ConstraintViolationError(
            f"Sales order {so.id} is {so.status.value}; only CONFIRMED orders can ship."
        )

    ordered = _ordered_by_product(so)
    shipped = _shipped_by_product(db, sales_order_id=so.id)

    to_ship: Dict[int, float] = defaultdict(float)
    if payload.lines is None:
        for product_id, qty in ordered.items():
            outstanding = qty - shipped.get(product_id, 0.0)
            if outstanding > _QTY_EPSILON:
                to_ship[product_id] = outstanding
    else:
        for line in payload.lines:
            if line.product_id not in ordered:
                raise ConstraintViolationError(f"Product {line.product_id} is not on sales order {so.id}.")
            to_ship[line.product_id] += line.qty

    for product_id, qty in to_ship.items():
        already = shipped.get(product_id, 0.0)
        if already + qty > ordered[product_id] + _QTY_EPSILON:
            raise ConstraintViolationError(
                f"Shipping {qty:g} of product {product_id} exceeds sales order {so.id}: "
                f"ordered {ordered[product_id]:g}, already shipped {already:g}."
            )

    warehouse = warehouse or payload.warehouse
    for product_id, qty in to_ship.items():
        inventory_services.append_txn(
            db,
            txn_type=inventory_models.TxnTypeEnum.SHIP,
            product_id=product_id,
            qty=-qty,
            warehouse=warehouse,
            ref_table=inventory_models.RefTableEnum.SO,
            ref_id=so.id,
            allow_negative_stock=allow_negative_stock,
        )
        shipped[product_id] = shipped.get(product_id, 0.0) + qty

    if all(shipped.get(product_id, 0.0) >= qty - _QTY_EPSILON for product_id, qty in ordered.items()):
        so.status = models.OrderStatusEnum.SHIPPED
    db.add(so)
    db.flush()
    return so


def cancel_sales_order(db: Session, *, sales_order_id: int) -> models.SalesOrder:
    so = _lock_sales_order(db, sales_order_id=sales_order_id)
    if so.status == models.OrderStatusEnum.CANCELLED:
        return so
    if so.status == models.OrderStatusEnum.SHIPPED or _shipped_by_product(db, sales_order_id=so.id):
        raise ConstraintViolationError(f"Sales order {so.id} has shipments and cannot be cancelled.")
    so.status = models.OrderStatusEnum.CANCELLED
    db.add(so)
    db.flush()
    return so


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


def _validate_payment(
    *,
    status: models.PaymentStatusEnum,
    amount: Optional[Decimal],
    paid_date: Optional[date],
) -> None:
    if status == models.PaymentStatusEnum.UNPAID:
        if amount is not None:
            raise ConstraintViolationError("An UNPAID payment cannot carry an amount.")
        if paid_date is not None:
            raise ConstraintViolationError("An UNPAID payment cannot carry a paid date.")
        return
    if amount is None or amount <= 0:
        raise ConstraintViolationError(f"A {status.value} payment needs a positive amount.")


def get_payment(db: Session, *, sales_order_id: int) -> models.Payment:
    payment = db.query(models.Payment).filter(models.Payment.sales_order_id == sales_order_id).first()
    if not payment:
        raise NotFoundError(f"No payment recorded for sales order {sales_order_id}.")
    return payment


def record_payment(
    db: Session,
    *,
    sales_order_id: int,
    payload: schemas.PaymentCreate,
) -> models.Payment:
    so = get_sales_order(db, sales_order_id=sales_order_id)
    existing = db.query(models.Payment).filter(models.Payment.sales_order_id == so.id).first()
    if existing:
        raise ConstraintViolationError(f"Sales order {so.id} already has a payment record.")
    _validate_payment(status=payload.status, amount=payload.amount, paid_date=payload.paid_date)

    payment = models.Payment(
        sales_order=so,
        status=payload.status,
        amount=payload.amount,
        paid_date=payload.paid_date,
    )
    db.add(payment)
    db.flush()
    return payment


def update_payment(
    db: Session,
    *,
    sales_order_id: int,
    payload: schemas.PaymentUpdate,
) -> models.Payment:
    payment = get_payment(db, sales_order_id=sales_order_id)
    changes = payload.model_dump(exclude_unset=True)
    status = changes.get("status") or payment.status
    amount = changes["amount"] if "amount" in changes else payment.amount
    paid_date = changes["paid_date"] if "paid_date" in changes else payment.paid_date
    _validate_payment(status=status, amount=amount, paid_date=paid_date)

    payment.status = status
    payment.amount = amount
    payment.paid_date = paid_date
    db.add(payment)
    db.flush()
    return payment
