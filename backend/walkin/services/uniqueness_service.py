# Overview: Service-layer operations for name uniqueness; read-only checks used before catalog writes.

"""
Case-insensitive name collision checks for named catalog entities.

The functions here never write and never raise on a collision: they return
False and the caller turns that into a ConflictError before touching the
store. The unique indexes on lower(name) / lower(sku) remain the final
authority when two requests race past the check.
"""
from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Category, Product, Service
from ..validation import ValidationError


NAMED_ENTITIES = {
    "service": Service,
    "category": Category,
}


def _normalize(value: str) -> str:
    return value.strip().lower()


def check_name_available(entity_type: str, candidate_name: str, exclude_id: int | None = None) -> bool:
    """
    Return True when no other entity of entity_type uses candidate_name.

    Comparison is on the trimmed, lower-cased name. Pass exclude_id on
    update so an entity can keep (or re-case) its own name.
    """
    model = NAMED_ENTITIES.get(entity_type)
    if model is None:
        raise ValidationError(f"Unknown entity type '{entity_type}'")

    q = db.session.query(model.id).filter(func.lower(model.name) == _normalize(candidate_name))
    if exclude_id is not None:
        q = q.filter(model.id != exclude_id)
    return q.first() is None


def check_sku_available(candidate_sku: str | None, exclude_id: int | None = None) -> bool:
    """Products: a blank SKU never conflicts."""
    if candidate_sku is None or not candidate_sku.strip():
        return True

    q = db.session.query(Product.id).filter(func.lower(Product.sku) == _normalize(candidate_sku))
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    return q.first() is None
