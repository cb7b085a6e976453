from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from papermate.errors import ConstraintViolationError, NotFoundError, RaceDuplicateError

from . import models, schemas

logger = logging.getLogger(__name__)


def normalize_product_code(code: str) -> str:
    return (code or "").strip()


def product_code_matches(code: str):
    """Case-insensitive match on `products.code`; the stored code keeps its case."""
    return func.upper(models.Product.code) == normalize_product_code(code).upper()


def _normalize_party_name(name: str) -> str:
    return " ".join((name or "").split())


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


def get_product(db: Session, *, product_id: int) -> models.Product:
    product = db.query(models.Product).filter(models.Product.id == product_id).first()
    if not product:
        raise NotFoundError(f"Product {product_id} not found.")
    return product


def get_product_by_code(db: Session, *, code: str) -> Optional[models.Product]:
    return db.query(models.Product).filter(product_code_matches(code)).order_by(models.Product.id.asc()).first()


def list_products(
    db: Session,
    *,
    product_type: Optional[models.ProductTypeEnum] = None,
) -> List[models.Product]:
    query = db.query(models.Product)
    if product_type is not None:
        query = query.filter(models.Product.type == product_type)
    return query.order_by(models.Product.code.asc()).all()


def _apply_product_attrs(product: models.Product, attrs: schemas.ProductAttrs) -> None:
    if attrs.type == models.ProductTypeEnum.RAW and attrs.finished_kind is not None:
        raise ConstraintViolationError("finished_kind is only allowed for FINISHED products.")
    product.name = attrs.name
    product.type = attrs.type
    product.uom = attrs.uom.strip().upper()
    product.finished_kind = attrs.finished_kind
    product.size = attrs.size
    product.attributes = dict(attrs.attributes) if attrs.attributes is not None else None


def upsert_product(db: Session, *, code: str, attrs: schemas.ProductAttrs) -> models.Product:
    """
    Create-or-update a product keyed by its unique code.

    Calling it again with the same code updates the existing row in place,
    so the result depends only on (code, attrs).
    """
    code = normalize_product_code(code)
    if not code:
        raise ConstraintViolationError("Product code is required.")

    product = get_product_by_code(db, code=code)
    if product:
        _apply_product_attrs(product, attrs)
        db.flush()
        return product

    product = models.Product(code=code)
    _apply_product_attrs(product, attrs)
    try:
        with db.begin_nested():
            db.add(product)
            db.flush()
    except IntegrityError:
        # Another writer inserted the same code first; update theirs instead.
        product = get_product_by_code(db, code=code)
        if not product:
            raise ConstraintViolationError(f"Product code {code} could not be upserted.")
        _apply_product_attrs(product, attrs)
        db.flush()
    return product


# ---------------------------------------------------------------------------
# Parties
# ---------------------------------------------------------------------------


def get_party(db: Session, *, party_id: int) -> models.Party:
    party = db.query(models.Party).filter(models.Party.id == party_id).first()
    if not party:
        raise NotFoundError(f"Party {party_id} not found.")
    return party


def get_party_by_name(db: Session, *, name: str) -> Optional[models.Party]:
    return db.query(models.Party).filter(models.Party.name == _normalize_party_name(name)).first()


def list_parties(
    db: Session,
    *,
    party_type: Optional[models.PartyTypeEnum] = None,
) -> List[models.Party]:
    query = db.query(models.Party)
    if party_type is not None:
        query = query.filter(models.Party.type == party_type)
    return query.order_by(models.Party.name.asc()).all()


def find_or_create_party(db: Session, *, name: str, attrs: schemas.PartyAttrs) -> models.Party:
    """
    Return the party with this name, creating it when absent.

    An existing party is returned untouched. `parties.name` is unique, so a
    concurrent insert of the same name fails inside the savepoint and the
    winner's row is returned instead of a duplicate.
    """
    name = _normalize_party_name(name)
    if not name:
        raise ConstraintViolationError("Party name is required.")

    existing = get_party_by_name(db, name=name)
    if existing:
        return existing

    party = models.Party(
        name=name,
        type=attrs.type,
        whatsapp=attrs.whatsapp,
        email=attrs.email,
        address=attrs.address,
    )
    try:
        with db.begin_nested():
            db.add(party)
            db.flush()
    except IntegrityError:
        winner = get_party_by_name(db, name=name)
        if not winner:
            raise RaceDuplicateError(f"Party {name!r} could not be created or found.")
        logger.info("Party created concurrently; reusing existing row", extra={"party_name": name})
        return winner
    return party


def require_party_type(party: models.Party, expected: models.PartyTypeEnum) -> None:
    if party.type != expected:
        raise ConstraintViolationError(
            f"Party {party.name!r} is a {party.type.value}, expected {expected.value}."
        )
