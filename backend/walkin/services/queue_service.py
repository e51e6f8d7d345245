# Overview: Service-layer operations for the walk-in queue; intake, status lifecycle and ticket removal.

"""
Walk-in queue lifecycle.

STATE MACHINE:
    waiting -> in-progress -> done

resolve_transition() is total over (current, requested):
- requested == current        -> NO_OP   (nothing written)
- requested == successor      -> ADVANCE
- anything else               -> REJECT  (skips, regressions, leaving done)

TIMESTAMPS:
- started_at is stamped the first time a ticket enters in-progress
- completed_at is stamped when it reaches done

DELETION:
A done ticket is history: it is never deleted and its staff and service
are frozen. A ticket that product sales point at is kept as well, so the
sale ledger stays intact.
"""
from __future__ import annotations

import enum
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import ProductSale, Staff, WalkIn, WalkInStatus
from ..validation import GuardViolation, NotFoundError, TransitionError, ValidationError, optional_text, require_text
from walkin.time_utils import minutes_between, utcnow
from .catalog_service import find_service_by_name, split_service_names
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .customer_service import normalize_phone, resolve_customer


class Transition(enum.Enum):
    ADVANCE = "advance"
    NO_OP = "no_op"
    REJECT = "reject"


def resolve_transition(current: WalkInStatus, requested: WalkInStatus) -> Transition:
    if requested == current:
        return Transition.NO_OP
    if requested == current.successor:
        return Transition.ADVANCE
    return Transition.REJECT


def _parse_status(value) -> WalkInStatus:
    status = WalkInStatus.parse(value)
    if status is None:
        allowed = ", ".join(s.value for s in WalkInStatus)
        raise ValidationError(f"Invalid status. Must be one of: {allowed}")
    return status


def _load_walkin(walkin_id: int, *, for_update: bool = False) -> WalkIn:
    q = db.session.query(WalkIn).filter_by(id=walkin_id)
    if for_update:
        q = lock_for_update(q)
    walkin = q.first()
    if walkin is None:
        raise NotFoundError("Walk-in not found")
    return walkin


def _require_active_staff(staff_id: int) -> Staff:
    staff = db.session.query(Staff).filter_by(id=staff_id).first()
    if staff is None:
        raise NotFoundError("Staff member not found")
    if not staff.is_active:
        raise ValidationError("Staff member is not active")
    return staff


def _reject_if_done(walkin: WalkIn) -> None:
    if walkin.status == WalkInStatus.DONE.value:
        raise ValidationError("Cannot modify a completed walk-in")


def _apply_service(walkin: WalkIn, service_label: str) -> None:
    """Store the ticket's service label; link service_id when it names one catalog service."""
    walkin.service_name = service_label
    match = find_service_by_name(service_label)
    walkin.service_id = match.id if match else None


def list_walkins(status=None) -> list[WalkIn]:
    q = db.session.query(WalkIn)
    if status is not None:
        q = q.filter(WalkIn.status == _parse_status(status).value)
    return q.order_by(WalkIn.created_at.asc(), WalkIn.id.asc()).all()


def create_walkin(phone, name, service=None, notes=None, staff_id=None) -> WalkIn:
    """
    Intake: resolve the customer by phone, then open a waiting ticket.

    The customer is committed before the ticket is written; a failure
    creating the ticket leaves the customer record in place.
    """
    normalize_phone(phone)
    display_name = require_text(name, "name", max_length=100)
    service_label = optional_text(service, "service", max_length=255)
    notes = optional_text(notes, "notes", max_length=500)
    if staff_id is not None and (isinstance(staff_id, bool) or not isinstance(staff_id, int)):
        raise ValidationError("staff_id must be an integer id")

    customer = resolve_customer(phone, display_name)

    def _op() -> WalkIn:
        begin_write_transaction()
        if staff_id is not None:
            _require_active_staff(staff_id)

        walkin = WalkIn(
            customer_id=customer.id,
            customer_name=display_name,
            status=WalkInStatus.WAITING.value,
            staff_id=staff_id,
            notes=notes,
            created_at=utcnow(),
        )
        _apply_service(walkin, service_label or current_app.config.get("PENDING_SERVICE_LABEL", "Pending selection"))
        db.session.add(walkin)
        db.session.commit()
        return walkin

    walkin = run_with_retry(_op)
    current_app.logger.info(
        "Walk-in id=%s opened for customer id=%s (%s)", walkin.id, customer.id, walkin.service_name
    )
    return walkin


def advance_status(walkin_id: int, target_status, staff_id=None, service=None) -> tuple[WalkIn, dict | None]:
    """
    Move a ticket along the lifecycle, optionally updating staff / service.

    Returns (walkin, service_details); service_details is only present when
    this call moved the ticket to done.

    Raises:
        ValidationError: unknown status value, inactive staff, edits to a done ticket
        NotFoundError: ticket or staff member absent
        TransitionError: target not reachable from the current status
    """
    target = _parse_status(target_status)
    service_label = optional_text(service, "service", max_length=255)
    if staff_id is not None and (isinstance(staff_id, bool) or not isinstance(staff_id, int)):
        raise ValidationError("staff_id must be an integer id")

    def _op():
        begin_write_transaction()
        walkin = _load_walkin(walkin_id, for_update=True)
        current = walkin.lifecycle_status

        outcome = resolve_transition(current, target)
        if outcome is Transition.REJECT:
            raise TransitionError(current.value, target.value)
        if staff_id is not None or service_label is not None:
            _reject_if_done(walkin)

        if staff_id is not None:
            _require_active_staff(staff_id)
            walkin.staff_id = staff_id
        if service_label is not None:
            _apply_service(walkin, service_label)

        details = None
        if outcome is Transition.ADVANCE:
            now = utcnow()
            walkin.status = target.value
            if target is WalkInStatus.IN_PROGRESS and walkin.started_at is None:
                walkin.started_at = now
            if target is WalkInStatus.DONE:
                walkin.completed_at = now

        db.session.commit()

        if outcome is Transition.ADVANCE:
            current_app.logger.info(
                "Walk-in id=%s moved %s -> %s", walkin.id, current.value, target.value
            )
            if target is WalkInStatus.DONE:
                details = complete_summary(walkin)
        return walkin, details

    return run_with_retry(_op)


def complete_summary(walkin: WalkIn) -> dict:
    """
    Price and duration of the catalog services named on a ticket.

    "Haircut + Beard Trim" sums both services; names not in the catalog
    contribute nothing. time_taken_minutes runs from started_at (or
    created_at when the ticket never recorded a start) to completed_at.
    """
    names = split_service_names(walkin.service_name)
    price_cents = 0
    duration_minutes = 0
    for name in names:
        service = find_service_by_name(name)
        if service is None:
            continue
        price_cents += service.price_cents
        duration_minutes += service.duration_minutes

    return {
        "services": names,
        "price_cents": price_cents,
        "duration_minutes": duration_minutes,
        "time_taken_minutes": minutes_between(walkin.started_at or walkin.created_at, walkin.completed_at),
    }


def assign_staff(walkin_id: int, staff_id: int) -> WalkIn:
    """Attach a staff member to a ticket without touching its status."""
    if isinstance(staff_id, bool) or not isinstance(staff_id, int):
        raise ValidationError("staff_id must be an integer id")

    def _op() -> WalkIn:
        begin_write_transaction()
        walkin = _load_walkin(walkin_id, for_update=True)
        _reject_if_done(walkin)
        _require_active_staff(staff_id)
        walkin.staff_id = staff_id
        db.session.commit()
        return walkin

    return run_with_retry(_op)


def select_service(walkin_id: int, service_name) -> WalkIn:
    """Replace the placeholder (or previously chosen) service on a ticket."""
    label = require_text(service_name, "service", max_length=255)

    def _op() -> WalkIn:
        begin_write_transaction()
        walkin = _load_walkin(walkin_id, for_update=True)
        _reject_if_done(walkin)
        _apply_service(walkin, label)
        db.session.commit()
        return walkin

    return run_with_retry(_op)


def delete_walkin(walkin_id: int) -> None:
    """
    Remove a waiting / in-progress ticket.

    The done check and the delete run in one write transaction, so a
    ticket completed concurrently is never removed.
    """
    def _op() -> None:
        begin_write_transaction()
        walkin = _load_walkin(walkin_id, for_update=True)

        if walkin.status == WalkInStatus.DONE.value:
            raise GuardViolation("Cannot delete a completed walk-in", blocking_count=1)

        sale_count = db.session.query(ProductSale).filter_by(walk_in_id=walkin.id).count()
        if sale_count > 0:
            raise GuardViolation("Cannot delete a walk-in with recorded product sales", blocking_count=sale_count)

        db.session.delete(walkin)
        db.session.commit()
        current_app.logger.info("Deleted walk-in id=%s", walkin_id)

    run_with_retry(_op)


LEGACY_DONE_STATUSES = ("completed",)
ASSUMED_SERVICE_MINUTES = 30


def fix_legacy_statuses() -> int:
    """
    Rewrite tickets stored with a legacy finished status to done.

    A missing completed_at is estimated as started_at + 30 minutes, or
    created_at when the ticket never started. Returns the rows fixed.
    """
    tickets = db.session.query(WalkIn).filter(WalkIn.status.in_(LEGACY_DONE_STATUSES)).all()
    for ticket in tickets:
        ticket.status = WalkInStatus.DONE.value
        if ticket.completed_at is None:
            if ticket.started_at is not None:
                ticket.completed_at = ticket.started_at + timedelta(minutes=ASSUMED_SERVICE_MINUTES)
            else:
                ticket.completed_at = ticket.created_at
    db.session.commit()
    if tickets:
        current_app.logger.info("Rewrote %d legacy walk-in statuses to done", len(tickets))
    return len(tickets)
