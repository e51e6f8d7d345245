from __future__ import annotations
from datetime import datetime
from walkin.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: 9,999.99 (999,999 cents), same ceiling as the booking forms
MAX_PRICE_CENTS = 999_999

MIN_SERVICE_DURATION = 5
MAX_SERVICE_DURATION = 480


class DomainError(Exception):
    """
    Base for errors a caller must surface verbatim.

    status_code is the HTTP status the route layer answers with;
    details is merged into the JSON body.
    """
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": str(self)}
        body.update(self.details)
        return body


class ValidationError(DomainError, ValueError):
    """400-level input problem."""
    status_code = 400


class TransitionError(ValidationError):
    """Requested walk-in status is not reachable from the current one."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot move walk-in from '{current}' to '{requested}'",
            details={"current": current, "requested": requested},
        )


class NotFoundError(DomainError, LookupError):
    """404-level missing reference."""
    status_code = 404


class ConflictError(DomainError, ValueError):
    """409-level business rule conflict (e.g., duplicate name or SKU)."""
    status_code = 409


class GuardViolation(DomainError):
    """
    403-level refusal of a destructive operation on an in-use resource.

    Always carries the number of records blocking the operation, under
    count_key in the response body (the key the frontend reads) and as
    blocking_count.
    """
    status_code = 403

    def __init__(self, message: str, blocking_count: int, count_key: str = "blocking_count"):
        details = {"blocking_count": blocking_count}
        details[count_key] = blocking_count
        super().__init__(message, details=details)
        self.blocking_count = blocking_count


class InsufficientStock(DomainError):
    """Requested quantity exceeds the stock on hand."""
    status_code = 400

    def __init__(self, available: int, requested: int):
        super().__init__(
            "Insufficient stock",
            details={"available": available, "requested": requested},
        )
        self.available = available
        self.requested = requested


class InactiveProductError(DomainError):
    status_code = 400

    def __init__(self, message: str = "Product is not active"):
        super().__init__(message)


class StoreUnavailable(DomainError):
    """The durable store could not be reached; safe for the caller to retry."""
    status_code = 503

    def __init__(self, message: str = "Database temporarily unavailable"):
        super().__init__(message, details={"retryable": True})


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - extra_fields: accepted keys that are not model columns (e.g. staff_ids);
      passed through untouched for the route to handle
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    extra_fields: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    # Booleans are strict: "false" must not silently become True
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    extra = policy.extra_fields or set()

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k in extra:
            continue
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in extra:
            patch[k] = raw
            continue

        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_price(patch: dict, field: str) -> None:
    if field in patch and patch[field] is not None:
        price = patch[field]
        if price < 0:
            raise ValidationError(f"{field} must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS} ({MAX_PRICE_CENTS / 100:,.2f})")


def _check_non_negative(patch: dict, field: str) -> None:
    if field in patch and patch[field] is not None and patch[field] < 0:
        raise ValidationError(f"{field} must be >= 0")


def enforce_rules_service(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_price(patch, "price_cents")
    if "duration_minutes" in patch and patch["duration_minutes"] is not None:
        duration = patch["duration_minutes"]
        if duration < MIN_SERVICE_DURATION or duration > MAX_SERVICE_DURATION:
            raise ValidationError(
                f"duration_minutes must be between {MIN_SERVICE_DURATION} and {MAX_SERVICE_DURATION}"
            )
    if "staff_ids" in patch:
        require_id_list(patch["staff_ids"], "staff_ids")


def enforce_rules_product(patch: dict) -> None:
    _check_price(patch, "price_cents")
    _check_price(patch, "cost_cents")
    _check_non_negative(patch, "stock_quantity")
    _check_non_negative(patch, "low_stock_threshold")


def enforce_rules_ordered(patch: dict) -> None:
    """Staff and categories share the display_order rule."""
    _check_non_negative(patch, "display_order")


def require_id_list(value: Any, field: str) -> list[int]:
    if not isinstance(value, list):
        raise ValidationError(f"{field} must be a list of ids")
    ids = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int):
            raise ValidationError(f"{field} must contain integer ids")
        ids.append(item)
    return ids


def require_text(value: Any, field: str, max_length: int | None = None) -> str:
    """Required, trimmed, non-blank string."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    text = value.strip()
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def optional_text(value: Any, field: str, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    text = value.strip()
    if not text:
        return None
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def require_positive_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value < 1:
        raise ValidationError(f"{field} must be at least 1")
    return value


def optional_id(value: Any, field: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer id")
    return value
