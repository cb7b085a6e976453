# backend/papermate/seed.py
"""
Demo dataset for PaperMate, wired to the single inventory ledger.

How re-runs stay safe:
- Products: upsert by code
- Parties: find-or-create by name
- Purchase, production and sales groups: only seeded when their document
  table is empty. A non-empty table skips the whole group.

Each group commits as one transaction. A failure rolls that group back
and aborts the run.

Seeded movements are written as recorded whatever the balance, so a
skipped group never blocks the groups after it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from papermate.apps.catalog import models as catalog_models
from papermate.apps.catalog import schemas as catalog_schemas
from papermate.apps.catalog import services as catalog_services
from papermate.apps.inventory import models as inventory_models
from papermate.apps.production import models as production_models
from papermate.apps.production import schemas as production_schemas
from papermate.apps.production import services as production_services
from papermate.apps.purchasing import models as purchasing_models
from papermate.apps.purchasing import schemas as purchasing_schemas
from papermate.apps.purchasing import services as purchasing_services
from papermate.apps.sales import models as sales_models
from papermate.apps.sales import schemas as sales_schemas
from papermate.apps.sales import services as sales_services
from papermate.errors import PartialSeedStateError

logger = logging.getLogger(__name__)

RAW_PAPER = "RAW-ROLL-100KG"
RAW_KRAFT = "RAW-KRAFT-80GSM"
PLATE_8 = "PLATE-8IN-P25"
PLATE_10 = "PLATE-10IN-P25"
SHEET_12 = "SHEET-12x12"

SAPCO = "SAPCO Papers"
COASTAL = "Coastal Pulp"
NELLORE = "Nellore Retail"
VIZAG = "Vizag Mart"

PRODUCTS: List[Tuple[str, catalog_schemas.ProductAttrs]] = [
    (
        RAW_PAPER,
        catalog_schemas.ProductAttrs(
            name="Paper Roll 100kg",
            type=catalog_models.ProductTypeEnum.RAW,
            uom="KG",
            attributes={"gsm": 180},
        ),
    ),
    (
        RAW_KRAFT,
        catalog_schemas.ProductAttrs(
            name="Kraft Paper 80gsm",
            type=catalog_models.ProductTypeEnum.RAW,
            uom="KG",
            attributes={"gsm": 80},
        ),
    ),
    (
        PLATE_8,
        catalog_schemas.ProductAttrs(
            name='8" Plate Pack (25)',
            type=catalog_models.ProductTypeEnum.FINISHED,
            finished_kind=catalog_models.FinishedKindEnum.PLATE,
            size="8in",
            uom="PACK",
            attributes={"pack": 25},
        ),
    ),
    (
        PLATE_10,
        catalog_schemas.ProductAttrs(
            name='10" Plate Pack (25)',
            type=catalog_models.ProductTypeEnum.FINISHED,
            finished_kind=catalog_models.FinishedKindEnum.PLATE,
            size="10in",
            uom="PACK",
            attributes={"pack": 25},
        ),
    ),
    (
        SHEET_12,
        catalog_schemas.ProductAttrs(
            name="Paper Sheet 12x12in",
            type=catalog_models.ProductTypeEnum.FINISHED,
            finished_kind=catalog_models.FinishedKindEnum.SHEET,
            size="12x12in",
            uom="SHEET",
        ),
    ),
]

PARTIES: List[Tuple[str, catalog_schemas.PartyAttrs]] = [
    (
        SAPCO,
        catalog_schemas.PartyAttrs(
            type=catalog_models.PartyTypeEnum.SUPPLIER,
            whatsapp="+911234567890",
            email="sapco@example.com",
        ),
    ),
    (
        COASTAL,
        catalog_schemas.PartyAttrs(
            type=catalog_models.PartyTypeEnum.SUPPLIER,
            whatsapp="+919999000111",
            email="coastal@example.com",
        ),
    ),
    (
        NELLORE,
        catalog_schemas.PartyAttrs(
            type=catalog_models.PartyTypeEnum.CUSTOMER,
            whatsapp="+919876543210",
            email="buyer@example.com",
        ),
    ),
    (
        VIZAG,
        catalog_schemas.PartyAttrs(
            type=catalog_models.PartyTypeEnum.CUSTOMER,
            whatsapp="+919123456789",
            email="vizag@example.com",
        ),
    ),
]


@dataclass
class SeedContext:
    products: Dict[str, int]
    parties: Dict[str, int]
    warehouse: str


@dataclass
class SeedReport:
    products: Dict[str, int] = field(default_factory=dict)
    parties: Dict[str, int] = field(default_factory=dict)
    created: Dict[str, List[int]] = field(default_factory=dict)
    skipped_groups: List[str] = field(default_factory=list)
    partial_groups: List[str] = field(default_factory=list)
    txn_count: int = 0


@dataclass
class SeedGroup:
    name: str
    model: type
    expected_documents: int
    run: Callable[[Session, SeedContext], List[int]]


# ---------------------------------------------------------------------------
# Masters
# ---------------------------------------------------------------------------


def seed_masters(db: Session) -> Tuple[Dict[str, int], Dict[str, int]]:
    products = {}
    for code, attrs in PRODUCTS:
        product = catalog_services.upsert_product(db, code=code, attrs=attrs)
        products[code] = product.id
    parties = {}
    for name, attrs in PARTIES:
        party = catalog_services.find_or_create_party(db, name=name, attrs=attrs)
        parties[name] = party.id
    return products, parties


# ---------------------------------------------------------------------------
# Document groups
# ---------------------------------------------------------------------------


def _seed_purchase_orders(db: Session, ctx: SeedContext) -> List[int]:
    p = ctx.products

    # PO #1: fully received
    po1 = purchasing_services.create_purchase_order(
        db,
        payload=purchasing_schemas.PurchaseOrderCreate(
            supplier_id=ctx.parties[SAPCO],
            lines=[
                purchasing_schemas.PurchaseOrderLineCreate(product_id=p[RAW_PAPER], qty=200, unit_cost=Decimal("1.2")),
                purchasing_schemas.PurchaseOrderLineCreate(product_id=p[RAW_KRAFT], qty=100, unit_cost=Decimal("0.9")),
            ],
        ),
    )
    purchasing_services.receive_purchase_order(db, purchase_order_id=po1.id, warehouse=ctx.warehouse)

    # PO #2: 50 of 150 received
    po2 = purchasing_services.create_purchase_order(
        db,
        payload=purchasing_schemas.PurchaseOrderCreate(
            supplier_id=ctx.parties[COASTAL],
            lines=[
                purchasing_schemas.PurchaseOrderLineCreate(product_id=p[RAW_PAPER], qty=150, unit_cost=Decimal("1.25")),
            ],
        ),
    )
    purchasing_services.receive_purchase_order(
        db,
        purchase_order_id=po2.id,
        payload=purchasing_schemas.GoodsReceiptCreate(
            lines=[purchasing_schemas.ReceiptLine(product_id=p[RAW_PAPER], qty=50)],
        ),
        warehouse=ctx.warehouse,
    )

    # PO #3: fully received
    po3 = purchasing_services.create_purchase_order(
        db,
        payload=purchasing_schemas.PurchaseOrderCreate(
            supplier_id=ctx.parties[SAPCO],
            lines=[
                purchasing_schemas.PurchaseOrderLineCreate(product_id=p[RAW_KRAFT], qty=200, unit_cost=Decimal("0.88")),
            ],
        ),
    )
    purchasing_services.receive_purchase_order(db, purchase_order_id=po3.id, warehouse=ctx.warehouse)
    return [po1.id, po2.id, po3.id]


def _production_run(
    db: Session,
    ctx: SeedContext,
    *,
    status: production_models.ProdStatusEnum,
    notes: str,
    consume: Tuple[str, float],
    produce: Tuple[str, float, str],
) -> int:
    consume_code, consume_qty = consume
    produce_code, produce_qty, batch_no = produce
    order = production_services.create_production_order(
        db,
        payload=production_schemas.ProductionOrderCreate(
            status=status,
            notes=notes,
            consumption=[
                production_schemas.ConsumptionLineCreate(product_id=ctx.products[consume_code], qty=consume_qty),
            ],
            output=[
                production_schemas.OutputLineCreate(
                    product_id=ctx.products[produce_code],
                    qty=produce_qty,
                    batch_no=batch_no,
                ),
            ],
        ),
        warehouse=ctx.warehouse,
        allow_negative_stock=True,
    )
    return order.id


def _seed_production_orders(db: Session, ctx: SeedContext) -> List[int]:
    done = production_models.ProdStatusEnum.DONE
    return [
        _production_run(
            db, ctx, status=done, notes="Run A",
            consume=(RAW_PAPER, 80), produce=(PLATE_8, 300, "A-2025-08-17"),
        ),
        _production_run(
            db, ctx, status=production_models.ProdStatusEnum.IN_PROGRESS, notes="Sheets S batch",
            consume=(RAW_KRAFT, 40), produce=(SHEET_12, 500, "S-2025-08-17"),
        ),
        _production_run(
            db, ctx, status=done, notes="Run B",
            consume=(RAW_PAPER, 30), produce=(PLATE_10, 100, "B-2025-08-17"),
        ),
    ]


def _sales_order(db: Session, ctx: SeedContext, *, customer: str, product: str, qty: float) -> sales_models.SalesOrder:
    return sales_services.create_sales_order(
        db,
        payload=sales_schemas.SalesOrderCreate(
            customer_id=ctx.parties[customer],
            lines=[sales_schemas.SalesOrderLineCreate(product_id=ctx.products[product], qty=qty)],
        ),
    )


def _seed_sales_orders(db: Session, ctx: SeedContext) -> List[int]:
    # SO #1: shipped in full
    so1 = _sales_order(db, ctx, customer=NELLORE, product=PLATE_8, qty=120)
    sales_services.confirm_sales_order(db, sales_order_id=so1.id)
    sales_services.ship_sales_order(
        db,
        sales_order_id=so1.id,
        warehouse=ctx.warehouse,
        allow_negative_stock=True,
    )

    # SO #2: 30 of 60 shipped
    so2 = _sales_order(db, ctx, customer=VIZAG, product=PLATE_10, qty=60)
    sales_services.confirm_sales_order(db, sales_order_id=so2.id)
    sales_services.ship_sales_order(
        db,
        sales_order_id=so2.id,
        payload=sales_schemas.ShipmentCreate(
            lines=[sales_schemas.ShipmentLine(product_id=ctx.products[PLATE_10], qty=30)],
        ),
        warehouse=ctx.warehouse,
        allow_negative_stock=True,
    )

    # SO #3: not shipped yet
    so3 = _sales_order(db, ctx, customer=NELLORE, product=SHEET_12, qty=200)

    sales_services.record_payment(
        db,
        sales_order_id=so1.id,
        payload=sales_schemas.PaymentCreate(
            status=sales_models.PaymentStatusEnum.PARTIAL,
            amount=Decimal("1200.00"),
            paid_date=date(2025, 8, 18),
        ),
    )
    for so in (so2, so3):
        sales_services.record_payment(db, sales_order_id=so.id, payload=sales_schemas.PaymentCreate())
    return [so1.id, so2.id, so3.id]


SEED_GROUPS: List[SeedGroup] = [
    SeedGroup("purchasing", purchasing_models.PurchaseOrder, 3, _seed_purchase_orders),
    SeedGroup("production", production_models.ProductionOrder, 3, _seed_production_orders),
    SeedGroup("sales", sales_models.SalesOrder, 3, _seed_sales_orders),
]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _run_group(db: Session, group: SeedGroup, ctx: SeedContext, report: SeedReport, *, strict: bool) -> None:
    existing = db.query(func.count(group.model.id)).scalar() or 0
    if existing:
        if existing < group.expected_documents:
            logger.warning(
                "Seed group is partially populated; skipping it anyway",
                extra={"group": group.name, "existing": existing, "expected": group.expected_documents},
            )
            if strict:
                raise PartialSeedStateError(
                    f"{group.name} holds {existing} of {group.expected_documents} seeded documents."
                )
            report.partial_groups.append(group.name)
        logger.info("Seed group already populated; skipping", extra={"group": group.name, "existing": existing})
        report.skipped_groups.append(group.name)
        return

    try:
        report.created[group.name] = group.run(db, ctx)
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Seed group failed; rolled back", extra={"group": group.name})
        raise
    logger.info("Seed group created", extra={"group": group.name, "ids": report.created[group.name]})


def run_seed(
    db: Session,
    *,
    strict: bool = False,
    warehouse: Optional[str] = None,
) -> SeedReport:
    report = SeedReport()
    try:
        report.products, report.parties = seed_masters(db)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(
        "Masters seeded",
        extra={"products": sorted(report.products), "parties": sorted(report.parties)},
    )

    ctx = SeedContext(
        products=report.products,
        parties=report.parties,
        warehouse=warehouse or inventory_models.DEFAULT_WAREHOUSE,
    )
    for group in SEED_GROUPS:
        _run_group(db, group, ctx, report, strict=strict)

    report.txn_count = db.query(func.count(inventory_models.InventoryTxn.id)).scalar() or 0
    logger.info("Seed complete", extra={"inventory_txn_count": report.txn_count})
    return report
