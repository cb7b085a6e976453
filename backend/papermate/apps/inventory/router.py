from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from papermate.database import get_db

from . import models, schemas, services

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("/stock", response_model=List[schemas.StockBalance])
def list_stock(
    warehouse: Optional[str] = None,
    product_code: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return services.list_stock(db, warehouse=warehouse, product_code=product_code)


@router.get("/stock/{product_code}", response_model=schemas.StockBalance)
def get_stock(
    product_code: str,
    warehouse: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return services.get_stock_by_code(db, product_code=product_code, warehouse=warehouse)


@router.get("/ledger", response_model=List[schemas.InventoryTxnRead])
def list_ledger(
    product_id: Optional[int] = None,
    ref_table: Optional[models.RefTableEnum] = None,
    ref_id: Optional[int] = None,
    txn_type: Optional[models.TxnTypeEnum] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return services.list_ledger(
        db,
        product_id=product_id,
        ref_table=ref_table,
        ref_id=ref_id,
        txn_type=txn_type,
        skip=skip,
        limit=limit,
    )
