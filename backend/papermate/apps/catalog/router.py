from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from papermate.database import get_db
from papermate.errors import NotFoundError

from . import models, schemas, services

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/products", response_model=List[schemas.ProductRead])
def list_products(
    product_type: Optional[models.ProductTypeEnum] = None,
    db: Session = Depends(get_db),
):
    return services.list_products(db, product_type=product_type)


@router.get("/products/{code}", response_model=schemas.ProductRead)
def get_product(code: str, db: Session = Depends(get_db)):
    product = services.get_product_by_code(db, code=code)
    if not product:
        raise NotFoundError(f"Product {code} not found.")
    return product


@router.put("/products/{code}", response_model=schemas.ProductRead)
def upsert_product(
    code: str,
    payload: schemas.ProductAttrs,
    db: Session = Depends(get_db),
):
    product = services.upsert_product(db, code=code, attrs=payload)
    db.commit()
    db.refresh(product)
    return product


@router.get("/parties", response_model=List[schemas.PartyRead])
def list_parties(
    party_type: Optional[models.PartyTypeEnum] = None,
    db: Session = Depends(get_db),
):
    return services.list_parties(db, party_type=party_type)


@router.post("/parties", response_model=schemas.PartyRead, status_code=status.HTTP_201_CREATED)
def find_or_create_party(payload: schemas.PartyCreate, db: Session = Depends(get_db)):
    party = services.find_or_create_party(
        db,
        name=payload.name,
        attrs=schemas.PartyAttrs(**payload.model_dump(exclude={"name"})),
    )
    db.commit()
    db.refresh(party)
    return party
