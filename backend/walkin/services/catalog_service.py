# Overview: Service-layer operations for the catalog (services, staff, categories); encapsulates business logic and database work.

"""
Catalog writes.

Every write that depends on a prior read follows the same shape:
  1. cheap pre-check for a friendly error (uniqueness_service / guard_service)
  2. the write itself, inside one transaction
  3. the storage constraint (unique index) or an in-transaction re-check
     as the final authority

Guarded deletes take the write lock first, then lock the row, re-count
active walk-ins and delete, so a ticket created between the pre-check and
the delete cannot be orphaned.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import ACTIVE_STATUSES, Category, Service, Staff, StaffAssignment, WalkIn
from ..validation import ConflictError, GuardViolation, NotFoundError, ValidationError
from .concurrency import begin_write_transaction, commit_or_conflict, lock_for_update, run_with_retry
from .guard_service import count_active_for_service, count_active_for_staff
from .uniqueness_service import check_name_available

SERVICE_NAME_SEPARATOR = " + "

SERVICE_MUTABLE_FIELDS = {
    "name", "description", "price_cents", "duration_minutes", "is_active",
    "category_id", "image_url", "thumbnail_url", "image_alt",
}
STAFF_MUTABLE_FIELDS = {
    "name", "title", "email", "phone", "image_url", "bio", "display_order", "is_active",
}
CATEGORY_MUTABLE_FIELDS = {"name", "description", "icon", "display_order", "is_active"}


def _apply_patch(entity, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k not in allowed:
            continue
        setattr(entity, k, v)


# ---------------------------------------------------------------------------
# Service-name helpers shared with the queue and customer stats
# ---------------------------------------------------------------------------

def split_service_names(label: str | None) -> list[str]:
    """'Haircut + Beard Trim' -> ['Haircut', 'Beard Trim']"""
    if not label:
        return []
    return [part.strip() for part in label.split(SERVICE_NAME_SEPARATOR) if part.strip()]


def service_price_map() -> dict[str, int]:
    rows = db.session.query(Service.name, Service.price_cents).all()
    return {name: price for name, price in rows}


def find_service_by_name(name: str | None) -> Service | None:
    if not name:
        return None
    return (
        db.session.query(Service)
        .filter(func.lower(Service.name) == name.strip().lower())
        .first()
    )


def _require_category(category_id: int | None) -> None:
    if category_id is None:
        return
    if db.session.query(Category.id).filter_by(id=category_id).first() is None:
        raise ValidationError(f"Category {category_id} does not exist")


def _require_ids(model, ids: list[int], label: str) -> None:
    if not ids:
        return
    found = {row[0] for row in db.session.query(model.id).filter(model.id.in_(ids)).all()}
    missing = sorted(set(ids) - found)
    if missing:
        raise ValidationError(f"Unknown {label} ids: {', '.join(str(i) for i in missing)}")


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def list_services() -> list[dict]:
    services = db.session.query(Service).order_by(Service.created_at.desc(), Service.id.desc()).all()
    return [s.to_dict(include_staff=True) for s in services]


def list_active_services() -> list[dict]:
    """Active services, alphabetical, for the walk-in form."""
    services = (
        db.session.query(Service)
        .filter(Service.is_active.is_(True))
        .order_by(Service.name.asc())
        .all()
    )
    return [s.to_dict() for s in services]


def get_service(service_id: int) -> Service:
    service = db.session.query(Service).filter_by(id=service_id).first()
    if service is None:
        raise NotFoundError("Service not found")
    return service


def create_service(*, patch: dict) -> Service:
    """
    Create a service from a validated patch.

    Raises:
        ConflictError: name already used (case-insensitive)
        ValidationError: category_id does not exist
    """
    if not check_name_available("service", patch["name"]):
        raise ConflictError("A service with this name already exists")
    _require_category(patch.get("category_id"))
    staff_ids = patch.get("staff_ids")
    if staff_ids:
        _require_ids(Staff, staff_ids, "staff")

    service = Service(is_active=True)
    _apply_patch(service, patch, SERVICE_MUTABLE_FIELDS)
    db.session.add(service)
    if staff_ids:
        db.session.flush()
        _replace_service_staff(service.id, staff_ids)
    commit_or_conflict("A service with this name already exists")

    current_app.logger.info("Created service id=%s name=%r", service.id, service.name)
    return service


def update_service(*, service_id: int, patch: dict) -> Service:
    """
    Update a service; staff_ids (when present) replaces its staff pairings.

    Renaming to the service's own name in another case is allowed.
    """
    service = get_service(service_id)

    if "name" in patch and not check_name_available("service", patch["name"], exclude_id=service.id):
        raise ConflictError("A service with this name already exists")
    if "category_id" in patch:
        _require_category(patch["category_id"])

    staff_ids = patch.get("staff_ids")
    if staff_ids is not None:
        _require_ids(Staff, staff_ids, "staff")
        _replace_service_staff(service.id, staff_ids)

    _apply_patch(service, patch, SERVICE_MUTABLE_FIELDS)

    commit_or_conflict("A service with this name already exists")
    return service


def _replace_service_staff(service_id: int, staff_ids: list[int]) -> None:
    db.session.query(StaffAssignment).filter_by(service_id=service_id).delete(synchronize_session=False)
    for staff_id in dict.fromkeys(staff_ids):
        db.session.add(StaffAssignment(service_id=service_id, staff_id=staff_id, is_primary=False))


def assign_staff_to_service(*, service_id: int, staff_ids: list[int]) -> Service:
    """Replace every staff pairing of a service."""
    service = get_service(service_id)
    _require_ids(Staff, staff_ids, "staff")
    _replace_service_staff(service.id, staff_ids)
    db.session.commit()
    return service


def delete_service(service_id: int) -> None:
    """
    Guarded delete.

    Raises:
        NotFoundError: no such service
        GuardViolation: service referenced by waiting / in-progress walk-ins
            (count reported as inUseCount)
    """
    def _op():
        begin_write_transaction()
        service = lock_for_update(db.session.query(Service).filter_by(id=service_id)).first()
        if service is None:
            raise NotFoundError("Service not found")

        in_use = count_active_for_service(service)
        if in_use > 0:
            current_app.logger.warning(
                "Refused to delete service id=%s: %d active walk-ins", service_id, in_use
            )
            raise GuardViolation(
                "Cannot delete: service in use by active customers",
                blocking_count=in_use,
                count_key="inUseCount",
            )

        db.session.query(StaffAssignment).filter_by(service_id=service.id).delete(synchronize_session=False)
        # Finished tickets keep their service_name snapshot
        db.session.query(WalkIn).filter(WalkIn.service_id == service.id).update(
            {WalkIn.service_id: None}, synchronize_session=False
        )
        db.session.delete(service)
        db.session.commit()
        current_app.logger.info("Deleted service id=%s", service_id)

    run_with_retry(_op)


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------

def list_staff() -> list[dict]:
    members = (
        db.session.query(Staff)
        .order_by(Staff.display_order.asc(), Staff.created_at.desc(), Staff.id.desc())
        .all()
    )
    walk_in_counts = dict(
        db.session.query(WalkIn.staff_id, func.count(WalkIn.id))
        .filter(WalkIn.staff_id.isnot(None))
        .group_by(WalkIn.staff_id)
        .all()
    )
    items = []
    for member in members:
        data = member.to_dict(include_services=True)
        data["service_count"] = len(member.service_assignments)
        data["walk_in_count"] = walk_in_counts.get(member.id, 0)
        items.append(data)
    return items


def get_staff(staff_id: int) -> Staff:
    member = db.session.query(Staff).filter_by(id=staff_id).first()
    if member is None:
        raise NotFoundError("Staff member not found")
    return member


def get_staff_detail(staff_id: int) -> dict:
    member = get_staff(staff_id)
    active = (
        db.session.query(WalkIn)
        .filter(WalkIn.staff_id == member.id, WalkIn.status.in_(ACTIVE_STATUSES))
        .order_by(WalkIn.created_at.asc(), WalkIn.id.asc())
        .all()
    )
    data = member.to_dict(include_services=True)
    data["active_walk_ins"] = [w.to_dict() for w in active]
    return data


def create_staff(*, patch: dict) -> Staff:
    member = Staff(is_active=True, display_order=0)
    _apply_patch(member, patch, STAFF_MUTABLE_FIELDS)
    db.session.add(member)
    db.session.commit()
    return member


def update_staff(*, staff_id: int, patch: dict) -> Staff:
    member = get_staff(staff_id)
    _apply_patch(member, patch, STAFF_MUTABLE_FIELDS)
    db.session.commit()
    return member


def assign_services(*, staff_id: int, service_ids: list[int], primary_service_id: int | None = None) -> list[StaffAssignment]:
    """
    Replace the services a staff member performs.

    primary_service_id, when given, must be one of service_ids.
    """
    member = get_staff(staff_id)
    _require_ids(Service, service_ids, "service")
    if primary_service_id is not None and primary_service_id not in service_ids:
        raise ValidationError("primary_service_id must be one of service_ids")

    db.session.query(StaffAssignment).filter_by(staff_id=member.id).delete(synchronize_session=False)
    assignments = []
    for service_id in dict.fromkeys(service_ids):
        assignment = StaffAssignment(
            staff_id=member.id,
            service_id=service_id,
            is_primary=service_id == primary_service_id,
        )
        db.session.add(assignment)
        assignments.append(assignment)
    db.session.commit()
    return assignments


def list_staff_services(staff_id: int) -> list[StaffAssignment]:
    member = get_staff(staff_id)
    return (
        db.session.query(StaffAssignment)
        .join(Service, Service.id == StaffAssignment.service_id)
        .filter(StaffAssignment.staff_id == member.id)
        .order_by(StaffAssignment.is_primary.desc(), Service.name.asc())
        .all()
    )


def delete_staff(staff_id: int) -> None:
    """
    Guarded delete.

    Raises:
        NotFoundError: no such staff member
        GuardViolation: staff member assigned to waiting / in-progress
            walk-ins (count reported as activeWalkIns)
    """
    def _op():
        begin_write_transaction()
        member = lock_for_update(db.session.query(Staff).filter_by(id=staff_id)).first()
        if member is None:
            raise NotFoundError("Staff member not found")

        active = count_active_for_staff(member)
        if active > 0:
            current_app.logger.warning(
                "Refused to delete staff id=%s: %d active walk-ins", staff_id, active
            )
            raise GuardViolation(
                "Cannot delete staff member with active walk-ins",
                blocking_count=active,
                count_key="activeWalkIns",
            )

        db.session.query(StaffAssignment).filter_by(staff_id=member.id).delete(synchronize_session=False)
        db.session.query(WalkIn).filter(WalkIn.staff_id == member.id).update(
            {WalkIn.staff_id: None}, synchronize_session=False
        )
        db.session.delete(member)
        db.session.commit()
        current_app.logger.info("Deleted staff id=%s", staff_id)

    run_with_retry(_op)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def _service_counts() -> dict[int, int]:
    return dict(
        db.session.query(Service.category_id, func.count(Service.id))
        .filter(Service.category_id.isnot(None))
        .group_by(Service.category_id)
        .all()
    )


def list_categories() -> list[dict]:
    categories = (
        db.session.query(Category)
        .order_by(Category.display_order.asc(), Category.created_at.desc(), Category.id.desc())
        .all()
    )
    counts = _service_counts()
    return [c.to_dict(service_count=counts.get(c.id, 0)) for c in categories]


def get_category(category_id: int) -> Category:
    category = db.session.query(Category).filter_by(id=category_id).first()
    if category is None:
        raise NotFoundError("Category not found")
    return category


def get_category_detail(category_id: int) -> dict:
    category = get_category(category_id)
    services = (
        db.session.query(Service)
        .filter_by(category_id=category.id)
        .order_by(Service.name.asc())
        .all()
    )
    data = category.to_dict(service_count=len(services))
    data["services"] = [s.to_dict() for s in services]
    return data


def create_category(*, patch: dict) -> Category:
    if not check_name_available("category", patch["name"]):
        raise ConflictError("Category name already exists")

    category = Category(is_active=True, display_order=0)
    _apply_patch(category, patch, CATEGORY_MUTABLE_FIELDS)
    db.session.add(category)
    commit_or_conflict("Category name already exists")
    return category


def update_category(*, category_id: int, patch: dict) -> Category:
    category = get_category(category_id)
    if "name" in patch and not check_name_available("category", patch["name"], exclude_id=category.id):
        raise ConflictError("Category name already exists")

    _apply_patch(category, patch, CATEGORY_MUTABLE_FIELDS)
    commit_or_conflict("Category name already exists")
    return category


def delete_category(category_id: int) -> int:
    """
    Delete a category, detaching (never deleting) its services.

    Returns the number of services whose category was cleared.
    """
    def _op() -> int:
        begin_write_transaction()
        category = lock_for_update(db.session.query(Category).filter_by(id=category_id)).first()
        if category is None:
            raise NotFoundError("Category not found")

        detached = (
            db.session.query(Service)
            .filter(Service.category_id == category.id)
            .update({Service.category_id: None}, synchronize_session=False)
        )
        db.session.delete(category)
        db.session.commit()
        current_app.logger.info("Deleted category id=%s, detached %d services", category_id, detached)
        return detached

    return run_with_retry(_op)
