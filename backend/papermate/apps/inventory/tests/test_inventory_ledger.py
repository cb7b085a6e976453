from __future__ import annotations

from decimal import Decimal

import pytest

from papermate.apps.catalog import models as catalog_models
from papermate.apps.catalog import schemas as catalog_schemas
from papermate.apps.catalog import services as catalog_services
from papermate.apps.inventory import models as inventory_models
from papermate.apps.inventory import router as inventory_router
from papermate.apps.inventory import services as inventory_services
from papermate.apps.production import models as production_models
from papermate.apps.purchasing import schemas as purchasing_schemas
from papermate.apps.purchasing import services as purchasing_services
from papermate.errors import (
    ConstraintViolationError,
    InsufficientStockError,
    LedgerImmutableError,
    NotFoundError,
)

GRN = inventory_models.TxnTypeEnum.GRN
PO = inventory_models.RefTableEnum.PO


def _raw_product(db, code="RAW-ROLL-100KG"):
    return catalog_services.upsert_product(
        db,
        code=code,
        attrs=catalog_schemas.ProductAttrs(name="Paper Roll 100kg", type=catalog_models.ProductTypeEnum.RAW, uom="KG"),
    )


def _purchase_order(db, product):
    supplier = catalog_services.find_or_create_party(
        db,
        name="SAPCO Papers",
        attrs=catalog_schemas.PartyAttrs(type=catalog_models.PartyTypeEnum.SUPPLIER),
    )
    return purchasing_services.create_purchase_order(
        db,
        payload=purchasing_schemas.PurchaseOrderCreate(
            supplier_id=supplier.id,
            lines=[purchasing_schemas.PurchaseOrderLineCreate(product_id=product.id, qty=500, unit_cost=Decimal("1.2"))],
        ),
    )


def _grn(db, product, po, qty, **kwargs):
    return inventory_services.append_txn(
        db,
        txn_type=GRN,
        product_id=product.id,
        qty=qty,
        ref_table=PO,
        ref_id=po.id,
        **kwargs,
    )


def test_stock_is_sum_of_ledger_rows(db_session):
    product = _raw_product(db_session)
    po = _purchase_order(db_session, product)

    _grn(db_session, product, po, 200)
    _grn(db_session, product, po, 50.5)
    db_session.commit()

    assert inventory_services.get_stock(db_session, product_id=product.id) == pytest.approx(250.5)
    balance = inventory_services.get_stock_by_code(db_session, product_code="raw-roll-100kg")
    assert balance.quantity == pytest.approx(250.5)
    assert balance.warehouse == inventory_models.DEFAULT_WAREHOUSE
    assert balance.uom == "KG"


def test_stock_is_tracked_per_warehouse(db_session):
    product = _raw_product(db_session)
    po = _purchase_order(db_session, product)

    _grn(db_session, product, po, 100)
    _grn(db_session, product, po, 40, warehouse="annex")

    assert inventory_services.get_stock(db_session, product_id=product.id) == pytest.approx(100)
    assert inventory_services.get_stock(db_session, product_id=product.id, warehouse="ANNEX") == pytest.approx(40)
    balances = inventory_services.list_stock(db_session)
    assert [(b.warehouse, b.quantity) for b in balances] == [("ANNEX", 40.0), ("MAIN", 100.0)]


def test_unknown_product_has_no_stock(db_session):
    with pytest.raises(NotFoundError):
        inventory_services.get_stock_by_code(db_session, product_code="NOPE")


def test_append_rejects_zero_and_wrong_sign(db_session):
    product = _raw_product(db_session)
    po = _purchase_order(db_session, product)

    with pytest.raises(ConstraintViolationError):
        _grn(db_session, product, po, 0)
    with pytest.raises(ConstraintViolationError):
        _grn(db_session, product, po, -10)


def test_append_rejects_mismatched_reference_table(db_session):
    product = _raw_product(db_session)
    po = _purchase_order(db_session, product)

    with pytest.raises(ConstraintViolationError):
        inventory_services.append_txn(
            db_session,
            txn_type=GRN,
            product_id=product.id,
            qty=10,
            ref_table=inventory_models.RefTableEnum.SO,
            ref_id=po.id,
        )


def test_append_requires_existing_document(db_session):
    product = _raw_product(db_session)

    with pytest.raises(NotFoundError):
        inventory_services.append_txn(
            db_session,
            txn_type=GRN,
            product_id=product.id,
            qty=10,
            ref_table=PO,
            ref_id=999,
        )


def test_outbound_movement_cannot_drive_stock_negative(db_session):
    product = _raw_product(db_session)
    po = _purchase_order(db_session, product)
    _grn(db_session, product, po, 20)

    with pytest.raises(InsufficientStockError):
        inventory_services.append_txn(
            db_session,
            txn_type=inventory_models.TxnTypeEnum.PROD_CONS,
            product_id=product.id,
            qty=-25,
            ref_table=inventory_models.RefTableEnum.PROD,
            ref_id=_production_order_id(db_session),
        )
    assert inventory_services.get_stock(db_session, product_id=product.id) == pytest.approx(20)


def test_negative_stock_allowed_when_configured(db_session):
    product = _raw_product(db_session)

    inventory_services.append_txn(
        db_session,
        txn_type=inventory_models.TxnTypeEnum.PROD_CONS,
        product_id=product.id,
        qty=-5,
        ref_table=inventory_models.RefTableEnum.PROD,
        ref_id=_production_order_id(db_session),
        allow_negative_stock=True,
    )
    assert inventory_services.get_stock(db_session, product_id=product.id) == pytest.approx(-5)


def _production_order_id(db):
    order = production_models.ProductionOrder(status=production_models.ProdStatusEnum.PLANNED)
    db.add(order)
    db.flush()
    return order.id


def test_ledger_rows_cannot_be_updated(db_session):
    product = _raw_product(db_session)
    po = _purchase_order(db_session, product)
    entry = _grn(db_session, product, po, 10)
    db_session.commit()

    entry.qty = 99
    with pytest.raises(LedgerImmutableError):
        db_session.flush()
    db_session.rollback()
    assert inventory_services.get_stock(db_session, product_id=product.id) == pytest.approx(10)


def test_ledger_rows_cannot_be_deleted(db_session):
    product = _raw_product(db_session)
    po = _purchase_order(db_session, product)
    entry = _grn(db_session, product, po, 10)
    db_session.commit()

    db_session.delete(entry)
    with pytest.raises(LedgerImmutableError):
        db_session.flush()
    db_session.rollback()
    assert db_session.query(inventory_models.InventoryTxn).count() == 1


def test_idempotency_key_returns_existing_row(db_session):
    product = _raw_product(db_session)
    po = _purchase_order(db_session, product)

    first = _grn(db_session, product, po, 30, idempotency_key="grn-po1-roll")
    again = _grn(db_session, product, po, 30, idempotency_key="grn-po1-roll")

    assert again.id == first.id
    assert db_session.query(inventory_models.InventoryTxn).count() == 1
    assert inventory_services.get_stock(db_session, product_id=product.id) == pytest.approx(30)


def test_idempotency_key_reuse_with_different_payload_fails(db_session):
    product = _raw_product(db_session)
    po = _purchase_order(db_session, product)
    _grn(db_session, product, po, 30, idempotency_key="grn-po1-roll")

    with pytest.raises(ConstraintViolationError):
        _grn(db_session, product, po, 31, idempotency_key="grn-po1-roll")


def test_idempotency_key_written_concurrently_reuses_winner(db_session, monkeypatch):
    product = _raw_product(db_session)
    po = _purchase_order(db_session, product)
    winner = _grn(db_session, product, po, 30, idempotency_key="grn-po1-roll")
    db_session.commit()

    original_lookup = inventory_services.find_by_idempotency_key
    calls = []

    def _stale_then_fresh(db, *, idempotency_key):
        calls.append(idempotency_key)
        if len(calls) == 1:
            return None
        return original_lookup(db, idempotency_key=idempotency_key)

    monkeypatch.setattr(inventory_services, "find_by_idempotency_key", _stale_then_fresh)

    again = _grn(db_session, product, po, 30, idempotency_key="grn-po1-roll")

    assert again.id == winner.id
    assert len(calls) == 2
    assert db_session.query(inventory_models.InventoryTxn).count() == 1
    assert inventory_services.get_stock(db_session, product_id=product.id) == pytest.approx(30)


def test_idempotency_key_conflict_with_different_movement_fails(db_session, monkeypatch):
    product = _raw_product(db_session)
    po = _purchase_order(db_session, product)
    _grn(db_session, product, po, 30, idempotency_key="grn-po1-roll")
    db_session.commit()

    original_lookup = inventory_services.find_by_idempotency_key
    calls = []

    def _stale_then_fresh(db, *, idempotency_key):
        calls.append(idempotency_key)
        return None if len(calls) == 1 else original_lookup(db, idempotency_key=idempotency_key)

    monkeypatch.setattr(inventory_services, "find_by_idempotency_key", _stale_then_fresh)

    with pytest.raises(ConstraintViolationError):
        _grn(db_session, product, po, 31, idempotency_key="grn-po1-roll")
    assert db_session.query(inventory_models.InventoryTxn).count() == 1


def test_ledger_endpoint_filters_by_reference(db_session):
    product = _raw_product(db_session)
    po = _purchase_order(db_session, product)
    _grn(db_session, product, po, 10)
    _grn(db_session, product, po, 15)
    db_session.commit()

    rows = inventory_router.list_ledger(
        product_id=None,
        ref_table=PO,
        ref_id=po.id,
        txn_type=None,
        skip=0,
        limit=100,
        db=db_session,
    )
    assert sorted(row.qty for row in rows) == [10.0, 15.0]
    assert inventory_services.movement_totals(db_session, txn_type=GRN, ref_table=PO, ref_id=po.id) == {
        product.id: 25.0
    }
