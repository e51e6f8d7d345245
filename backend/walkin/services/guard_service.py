# Overview: Service-layer operations for deletion guards; counts active work referencing catalog rows.

"""
Referential-integrity guards for destructive catalog operations.

IN-USE RULE:
A service or staff member is "in use" while at least one walk-in that
references it is waiting or in-progress. Finished tickets never block.

SERVICE MATCHING:
A ticket references a service when its service_id points at it, or when its
free-text service_name equals the service's name exactly. The name match
keeps tickets typed before service_id existed (and combined "A + B"
labels stored verbatim) behaving as they always have.

ATOMICITY:
can_delete() is a read-only pre-check. Callers that go on to delete must
re-run the count inside the write transaction that performs the delete
(see catalog_service.delete_service / delete_staff).
"""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import or_

from ..extensions import db
from ..models import ACTIVE_STATUSES, Category, Service, Staff, WalkIn
from ..validation import NotFoundError, ValidationError


@dataclass(frozen=True)
class GuardResult:
    allowed: bool
    blocking_count: int

    def to_dict(self) -> dict:
        return {"allowed": self.allowed, "blocking_count": self.blocking_count}


def count_active_for_service(service: Service) -> int:
    return (
        db.session.query(WalkIn)
        .filter(
            WalkIn.status.in_(ACTIVE_STATUSES),
            or_(WalkIn.service_id == service.id, WalkIn.service_name == service.name),
        )
        .count()
    )


def count_active_for_staff(staff: Staff) -> int:
    return (
        db.session.query(WalkIn)
        .filter(WalkIn.status.in_(ACTIVE_STATUSES), WalkIn.staff_id == staff.id)
        .count()
    )


def _load(model, entity_id: int, label: str):
    entity = db.session.query(model).filter_by(id=entity_id).first()
    if entity is None:
        raise NotFoundError(f"{label} not found")
    return entity


def can_delete(entity_type: str, entity_id: int) -> GuardResult:
    """
    Decide whether a catalog entity may be deleted right now.

    Categories are never blocked: their services are detached, not removed.
    """
    if entity_type == "service":
        count = count_active_for_service(_load(Service, entity_id, "Service"))
    elif entity_type == "staff":
        count = count_active_for_staff(_load(Staff, entity_id, "Staff member"))
    elif entity_type == "category":
        _load(Category, entity_id, "Category")
        count = 0
    else:
        raise ValidationError(f"Unknown entity type '{entity_type}'")

    return GuardResult(allowed=count == 0, blocking_count=count)
