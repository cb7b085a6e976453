from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from papermate.apps.catalog import models as catalog_models
from papermate.apps.catalog import schemas as catalog_schemas
from papermate.apps.catalog import services as catalog_services
from papermate.apps.inventory import models as inventory_models
from papermate.apps.inventory import services as inventory_services
from papermate.apps.production import models as production_models
from papermate.apps.production import schemas as production_schemas
from papermate.apps.production import services as production_services
from papermate.apps.sales import models as sales_models
from papermate.apps.sales import router as sales_router
from papermate.apps.sales import schemas as sales_schemas
from papermate.apps.sales import services as sales_services
from papermate.errors import ConstraintViolationError, InsufficientStockError, NotFoundError


@pytest.fixture()
def plates(db_session):
    """300 packs of 8in plates on hand, booked from an output-only run."""
    plate = catalog_services.upsert_product(
        db_session,
        code="PLATE-8IN-P25",
        attrs=catalog_schemas.ProductAttrs(
            name='8" Plate Pack (25)',
            type=catalog_models.ProductTypeEnum.FINISHED,
            finished_kind=catalog_models.FinishedKindEnum.PLATE,
            uom="PACK",
        ),
    )
    customer = catalog_services.find_or_create_party(
        db_session,
        name="Nellore Retail",
        attrs=catalog_schemas.PartyAttrs(type=catalog_models.PartyTypeEnum.CUSTOMER),
    )
    supplier = catalog_services.find_or_create_party(
        db_session,
        name="SAPCO Papers",
        attrs=catalog_schemas.PartyAttrs(type=catalog_models.PartyTypeEnum.SUPPLIER),
    )
    production_services.create_production_order(
        db_session,
        payload=production_schemas.ProductionOrderCreate(
            status=production_models.ProdStatusEnum.DONE,
            output=[production_schemas.OutputLineCreate(product_id=plate.id, qty=300, batch_no="A-1")],
        ),
    )
    db_session.commit()
    return {"plate": plate, "customer": customer, "supplier": supplier}


def _confirmed_order(db, plates, qty=120):
    so = sales_services.create_sales_order(
        db,
        payload=sales_schemas.SalesOrderCreate(
            customer_id=plates["customer"].id,
            lines=[sales_schemas.SalesOrderLineCreate(product_id=plates["plate"].id, qty=qty, unit_price=Decimal("45"))],
        ),
    )
    assert so.status == sales_models.OrderStatusEnum.DRAFT
    return sales_services.confirm_sales_order(db, sales_order_id=so.id)


def test_full_shipment_reduces_stock_and_marks_shipped(db_session, plates):
    so = _confirmed_order(db_session, plates)

    so = sales_services.ship_sales_order(db_session, sales_order_id=so.id)
    db_session.commit()

    assert so.status == sales_models.OrderStatusEnum.SHIPPED
    rows = inventory_services.list_ledger(
        db_session,
        ref_table=inventory_models.RefTableEnum.SO,
        ref_id=so.id,
    )
    assert [(row.txn_type, row.qty) for row in rows] == [(inventory_models.TxnTypeEnum.SHIP, -120.0)]
    assert inventory_services.get_stock(db_session, product_id=plates["plate"].id) == pytest.approx(180)


def test_partial_shipment_keeps_order_confirmed(db_session, plates):
    so = _confirmed_order(db_session, plates, qty=60)

    so = sales_services.ship_sales_order(
        db_session,
        sales_order_id=so.id,
        payload=sales_schemas.ShipmentCreate(
            lines=[sales_schemas.ShipmentLine(product_id=plates["plate"].id, qty=30)],
        ),
    )

    assert so.status == sales_models.OrderStatusEnum.CONFIRMED
    shipped = sales_services.shipped_quantities(db_session, sales_order_id=so.id)
    assert [(line.ordered, line.shipped) for line in shipped] == [(60.0, 30.0)]


def test_over_shipment_is_rejected(db_session, plates):
    so = _confirmed_order(db_session, plates, qty=60)

    with pytest.raises(ConstraintViolationError):
        sales_services.ship_sales_order(
            db_session,
            sales_order_id=so.id,
            payload=sales_schemas.ShipmentCreate(
                lines=[sales_schemas.ShipmentLine(product_id=plates["plate"].id, qty=61)],
            ),
        )


def test_shipment_beyond_stock_is_rejected(db_session, plates):
    so = _confirmed_order(db_session, plates, qty=400)

    with pytest.raises(InsufficientStockError):
        sales_services.ship_sales_order(db_session, sales_order_id=so.id)
    assert inventory_services.get_stock(db_session, product_id=plates["plate"].id) == pytest.approx(300)


def test_draft_order_cannot_ship(db_session, plates):
    so = sales_services.create_sales_order(
        db_session,
        payload=sales_schemas.SalesOrderCreate(
            customer_id=plates["customer"].id,
            lines=[sales_schemas.SalesOrderLineCreate(product_id=plates["plate"].id, qty=10)],
        ),
    )

    with pytest.raises(ConstraintViolationError):
        sales_services.ship_sales_order(db_session, sales_order_id=so.id)


def test_sales_order_requires_customer(db_session, plates):
    with pytest.raises(ConstraintViolationError):
        sales_services.create_sales_order(
            db_session,
            payload=sales_schemas.SalesOrderCreate(
                customer_id=plates["supplier"].id,
                lines=[sales_schemas.SalesOrderLineCreate(product_id=plates["plate"].id, qty=10)],
            ),
        )


def test_cancel_blocked_after_shipment(db_session, plates):
    so = _confirmed_order(db_session, plates, qty=60)
    sales_services.ship_sales_order(
        db_session,
        sales_order_id=so.id,
        payload=sales_schemas.ShipmentCreate(
            lines=[sales_schemas.ShipmentLine(product_id=plates["plate"].id, qty=10)],
        ),
    )

    with pytest.raises(ConstraintViolationError):
        sales_services.cancel_sales_order(db_session, sales_order_id=so.id)

    unshipped = _confirmed_order(db_session, plates, qty=5)
    cancelled = sales_services.cancel_sales_order(db_session, sales_order_id=unshipped.id)
    assert cancelled.status == sales_models.OrderStatusEnum.CANCELLED


def test_partial_payment_recorded_once(db_session, plates):
    so = _confirmed_order(db_session, plates)

    payment = sales_services.record_payment(
        db_session,
        sales_order_id=so.id,
        payload=sales_schemas.PaymentCreate(
            status=sales_models.PaymentStatusEnum.PARTIAL,
            amount=Decimal("1200.00"),
            paid_date=date(2025, 8, 18),
        ),
    )
    db_session.commit()

    assert payment.sales_order_id == so.id
    assert so.payment.id == payment.id
    with pytest.raises(ConstraintViolationError):
        sales_services.record_payment(db_session, sales_order_id=so.id, payload=sales_schemas.PaymentCreate())


def test_payment_amount_rules(db_session, plates):
    so = _confirmed_order(db_session, plates)

    with pytest.raises(ConstraintViolationError):
        sales_services.record_payment(
            db_session,
            sales_order_id=so.id,
            payload=sales_schemas.PaymentCreate(status=sales_models.PaymentStatusEnum.PAID),
        )
    with pytest.raises(ConstraintViolationError):
        sales_services.record_payment(
            db_session,
            sales_order_id=so.id,
            payload=sales_schemas.PaymentCreate(amount=Decimal("10.00")),
        )


def test_unpaid_payment_rejects_zero_amount(db_session, plates):
    so = _confirmed_order(db_session, plates)

    with pytest.raises(ConstraintViolationError):
        sales_services.record_payment(
            db_session,
            sales_order_id=so.id,
            payload=sales_schemas.PaymentCreate(amount=Decimal("0")),
        )

    sales_services.record_payment(db_session, sales_order_id=so.id, payload=sales_schemas.PaymentCreate())
    with pytest.raises(ConstraintViolationError):
        sales_services.update_payment(
            db_session,
            sales_order_id=so.id,
            payload=sales_schemas.PaymentUpdate(amount=Decimal("0.00")),
        )
    assert sales_services.get_payment(db_session, sales_order_id=so.id).amount is None


def test_update_payment_to_paid(db_session, plates):
    so = _confirmed_order(db_session, plates)
    sales_services.record_payment(db_session, sales_order_id=so.id, payload=sales_schemas.PaymentCreate())

    with pytest.raises(ConstraintViolationError):
        sales_services.update_payment(
            db_session,
            sales_order_id=so.id,
            payload=sales_schemas.PaymentUpdate(status=sales_models.PaymentStatusEnum.PAID),
        )

    payment = sales_services.update_payment(
        db_session,
        sales_order_id=so.id,
        payload=sales_schemas.PaymentUpdate(
            status=sales_models.PaymentStatusEnum.PAID,
            amount=Decimal("5400.00"),
            paid_date=date(2025, 8, 20),
        ),
    )
    assert payment.status == sales_models.PaymentStatusEnum.PAID
    assert payment.amount == Decimal("5400.00")


def test_payment_endpoint_reports_missing_payment(db_session, plates):
    so = _confirmed_order(db_session, plates)

    with pytest.raises(NotFoundError):
        sales_router.get_payment(sales_order_id=so.id, db=db_session)
