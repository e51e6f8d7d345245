# Overview: Service-layer operations for customers; phone-based identity resolution and visit stats.

"""
Customer identity resolution.

IDENTITY RULES:
- A customer IS their canonical phone number (+<country><10 digits>).
- First sight of a phone creates the customer; later walk-ins with the same
  phone reuse it and overwrite the display name if it changed.
- resolve_customer is idempotent: the same (phone, name) twice returns the
  same row and writes nothing the second time.
- Two simultaneous first sightings of one phone race on the unique phone
  constraint; the loser rolls back and reads the winner's row.
"""
from __future__ import annotations

import re

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Customer, WalkIn, WalkInStatus
from ..validation import ConflictError, NotFoundError, ValidationError, require_text, optional_text
from walkin.time_utils import utcnow, to_utc_z
from .concurrency import run_with_retry
from .catalog_service import service_price_map, split_service_names

_WHITESPACE = re.compile(r"\s+")
_NON_DIGIT = re.compile(r"\D")

CUSTOMER_SORT_FIELDS = {"name", "phone", "created_at", "visits", "ltv", "last_visit"}
MAX_PAGE_SIZE = 200


def normalize_phone(raw_phone) -> str:
    """
    Canonicalize a phone number to +<country><10 digits>.

    - whitespace is stripped
    - an input already in canonical form is accepted verbatim
    - otherwise, if exactly 10 digits remain after dropping every non-digit,
      the configured country code is prepended
    - anything else is a ValidationError
    """
    if not isinstance(raw_phone, str) or not raw_phone.strip():
        raise ValidationError("Phone number is required")

    country_code = current_app.config.get("PHONE_COUNTRY_CODE", "+91")
    cleaned = _WHITESPACE.sub("", raw_phone)

    if re.fullmatch(re.escape(country_code) + r"\d{10}", cleaned):
        return cleaned

    digits = _NON_DIGIT.sub("", cleaned)
    if len(digits) == 10:
        return f"{country_code}{digits}"

    raise ValidationError(f"Invalid phone format. Expected: {country_code} followed by 10 digits")


def resolve_customer(raw_phone, name) -> Customer:
    """
    Find-or-create the customer for a phone number, refreshing the name.

    Commits its own unit of work. At most one write (create or rename)
    happens per call.
    """
    phone = normalize_phone(raw_phone)
    display_name = require_text(name, "name", max_length=100)

    def _op() -> Customer:
        customer = db.session.query(Customer).filter_by(phone=phone).first()

        if customer is None:
            customer = Customer(phone=phone, name=display_name)
            db.session.add(customer)
            try:
                db.session.commit()
            except IntegrityError:
                # Lost the first-sight race; the other request created it
                db.session.rollback()
                customer = db.session.query(Customer).filter_by(phone=phone).first()
                if customer is None:
                    raise
            else:
                current_app.logger.info("Created customer id=%s phone=%s", customer.id, phone)
                return customer

        if customer.name.strip() != display_name:
            current_app.logger.info(
                "Renaming customer id=%s from %r to %r", customer.id, customer.name, display_name
            )
            customer.name = display_name
            db.session.commit()

        return customer

    return run_with_retry(_op)


def create_customer(*, phone, name, email=None) -> Customer:
    """Explicit creation (customer screen). Unlike resolve_customer, an existing phone is a conflict."""
    canonical = normalize_phone(phone)
    display_name = require_text(name, "name", max_length=100)
    email = optional_text(email, "email", max_length=255)
    if email is not None and "@" not in email:
        raise ValidationError("Invalid email format")

    existing = db.session.query(Customer.id).filter_by(phone=canonical).first()
    if existing:
        raise ConflictError("Customer with this phone number already exists")

    customer = Customer(phone=canonical, name=display_name, email=email)
    db.session.add(customer)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Customer with this phone number already exists") from exc
    return customer


def rename_customer(customer_id: int, name) -> Customer:
    display_name = require_text(name, "name", max_length=100)

    def _op() -> Customer:
        customer = db.session.query(Customer).filter_by(id=customer_id).first()
        if customer is None:
            raise NotFoundError("Customer not found")
        customer.name = display_name
        db.session.commit()
        return customer

    return run_with_retry(_op)


def _visit_stats(customers: list[Customer]) -> dict[int, dict]:
    """
    Visit count, lifetime value and recency per customer.

    Lifetime value prices each completed ticket at the current catalog
    price of the service(s) named on it; unknown names count as 0.
    """
    if not customers:
        return {}

    ids = [c.id for c in customers]
    tickets = (
        db.session.query(WalkIn)
        .filter(WalkIn.customer_id.in_(ids))
        .order_by(WalkIn.completed_at.desc())
        .all()
    )
    prices = service_price_map()
    reminder_days = current_app.config.get("REMINDER_AFTER_DAYS", 30)
    now = utcnow()

    stats = {
        cid: {"visit_count": 0, "lifetime_value_cents": 0, "last_visit_at": None}
        for cid in ids
    }
    for ticket in tickets:
        entry = stats[ticket.customer_id]
        entry["visit_count"] += 1
        if ticket.status != WalkInStatus.DONE.value or ticket.completed_at is None:
            continue
        entry["lifetime_value_cents"] += sum(
            prices.get(name, 0) for name in split_service_names(ticket.service_name)
        )
        if entry["last_visit_at"] is None or ticket.completed_at > entry["last_visit_at"]:
            entry["last_visit_at"] = ticket.completed_at

    for entry in stats.values():
        last = entry["last_visit_at"]
        days = (now - last).days if last else None
        entry["days_since_last_visit"] = days
        entry["needs_reminder"] = days is not None and days > reminder_days

    return stats


def _with_stats(customer: Customer, stats: dict) -> dict:
    data = customer.to_dict()
    data.update(stats)
    data["last_visit_at"] = to_utc_z(stats["last_visit_at"])
    return data


def lookup_customer(raw_phone) -> dict:
    phone = normalize_phone(raw_phone)
    customer = db.session.query(Customer).filter_by(phone=phone).first()
    if customer is None:
        raise NotFoundError("Customer not found")

    recent = (
        db.session.query(WalkIn)
        .filter_by(customer_id=customer.id)
        .order_by(WalkIn.created_at.desc(), WalkIn.id.desc())
        .limit(50)
        .all()
    )
    data = _with_stats(customer, _visit_stats([customer])[customer.id])
    data["walk_ins"] = [
        {
            "id": w.id,
            "service_name": w.service_name,
            "status": w.status,
            "completed_at": to_utc_z(w.completed_at),
        }
        for w in recent
    ]
    return data


def list_customers(
    *,
    page: int = 1,
    limit: int = 50,
    search: str | None = None,
    sort_by: str = "name",
    sort_order: str = "asc",
) -> dict:
    """
    Paginated customer list with visit stats.

    name / phone / created_at sort in the database; visits, ltv and
    last_visit are computed, so they sort the current page in memory.
    """
    if sort_by not in CUSTOMER_SORT_FIELDS:
        raise ValidationError(f"sort_by must be one of: {', '.join(sorted(CUSTOMER_SORT_FIELDS))}")
    if sort_order not in ("asc", "desc"):
        raise ValidationError("sort_order must be 'asc' or 'desc'")

    page = max(page or 1, 1)
    limit = min(max(limit or 50, 1), MAX_PAGE_SIZE)
    descending = sort_order == "desc"

    q = db.session.query(Customer)
    if search:
        term = search.strip().lower()
        q = q.filter(or_(
            func.lower(Customer.name).contains(term, autoescape=True),
            Customer.phone.contains(term, autoescape=True),
        ))

    total = q.count()

    if sort_by in ("name", "phone", "created_at"):
        column = getattr(Customer, sort_by)
        q = q.order_by(column.desc() if descending else column.asc(), Customer.id.asc())
    else:
        q = q.order_by(Customer.name.asc(), Customer.id.asc())

    customers = q.offset((page - 1) * limit).limit(limit).all()
    stats = _visit_stats(customers)
    items = [_with_stats(c, stats[c.id]) for c in customers]

    computed_keys = {
        "visits": lambda item: item["visit_count"],
        "ltv": lambda item: item["lifetime_value_cents"],
        "last_visit": lambda item: item["last_visit_at"] or "",
    }
    if sort_by in computed_keys:
        items.sort(key=computed_keys[sort_by], reverse=descending)

    total_pages = (total + limit - 1) // limit if total else 0
    return {
        "customers": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_more": (page - 1) * limit + len(items) < total,
        },
    }


def backfill_customers() -> tuple[int, int]:
    """
    Link tickets that predate customer tracking to placeholder customers.

    One placeholder per distinct customer_name, with a reserved phone
    (<country>000000NNNN) that no real number can collide with.
    Returns (customers_created, tickets_linked).
    """
    orphans = (
        db.session.query(WalkIn)
        .filter(WalkIn.customer_id.is_(None))
        .order_by(WalkIn.id.asc())
        .all()
    )
    if not orphans:
        return 0, 0

    country_code = current_app.config.get("PHONE_COUNTRY_CODE", "+91")
    used = {
        phone for (phone,) in
        db.session.query(Customer.phone).filter(Customer.phone.like(f"{country_code}000000%")).all()
    }

    by_name: dict[str, Customer] = {}
    created = 0
    seq = 0
    for ticket in orphans:
        key = ticket.customer_name.strip()
        customer = by_name.get(key)
        if customer is None:
            while True:
                seq += 1
                phone = f"{country_code}000000{seq:04d}"
                if phone not in used:
                    break
            customer = Customer(phone=phone, name=key)
            db.session.add(customer)
            db.session.flush()
            by_name[key] = customer
            used.add(phone)
            created += 1
        ticket.customer_id = customer.id

    db.session.commit()
    current_app.logger.info("Backfilled %d customers for %d walk-ins", created, len(orphans))
    return created, len(orphans)
