# Overview: Flask API routes for staff members; parses input and returns JSON responses.

# backend/walkin/routes/staff.py
from flask import Blueprint, current_app, jsonify, request

from ..models import Staff
from ..services import catalog_service
from ..validation import (
    DomainError,
    ModelValidationPolicy,
    enforce_rules_ordered,
    optional_id,
    require_id_list,
    validate_payload,
)

STAFF_POLICY = ModelValidationPolicy(
    writable_fields={"name", "title", "email", "phone", "image_url", "bio", "display_order", "is_active"},
    required_on_create={"name"},
)

staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


@staff_bp.get("")
def list_staff_route():
    try:
        members = catalog_service.list_staff()
        return jsonify({"staff": members, "count": len(members)}), 200
    except Exception:
        current_app.logger.exception("Failed to list staff")
        return jsonify({"error": "Internal server error"}), 500


@staff_bp.post("")
def create_staff_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Staff, payload=payload, policy=STAFF_POLICY, partial=False)
        enforce_rules_ordered(patch)

        member = catalog_service.create_staff(patch=patch)
        return jsonify({"staff": member.to_dict()}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create staff member")
        return jsonify({"error": "Internal server error"}), 500


@staff_bp.get("/<int:staff_id>")
def get_staff_route(staff_id: int):
    """Staff member with services and currently active walk-ins."""
    try:
        return jsonify({"staff": catalog_service.get_staff_detail(staff_id)}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load staff member")
        return jsonify({"error": "Internal server error"}), 500


@staff_bp.patch("/<int:staff_id>")
def update_staff_route(staff_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Staff, payload=payload, policy=STAFF_POLICY, partial=True)
        enforce_rules_ordered(patch)

        member = catalog_service.update_staff(staff_id=staff_id, patch=patch)
        return jsonify({"staff": member.to_dict(include_services=True)}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update staff member")
        return jsonify({"error": "Internal server error"}), 500


@staff_bp.delete("/<int:staff_id>")
def delete_staff_route(staff_id: int):
    try:
        catalog_service.delete_staff(staff_id)
        return jsonify({"ok": True}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete staff member")
        return jsonify({"error": "Internal server error"}), 500


@staff_bp.get("/<int:staff_id>/services")
def list_staff_services_route(staff_id: int):
    try:
        assignments = catalog_service.list_staff_services(staff_id)
        return jsonify({"services": [a.to_dict() for a in assignments]}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list staff services")
        return jsonify({"error": "Internal server error"}), 500


@staff_bp.post("/<int:staff_id>/services")
def assign_staff_services_route(staff_id: int):
    """Body: {"service_ids": [int, ...], "primary_service_id": int | null} - replaces all pairings."""
    try:
        data = request.get_json(silent=True) or {}
        service_ids = require_id_list(data.get("service_ids"), "service_ids")
        primary_service_id = optional_id(data.get("primary_service_id"), "primary_service_id")

        assignments = catalog_service.assign_services(
            staff_id=staff_id,
            service_ids=service_ids,
            primary_service_id=primary_service_id,
        )
        return jsonify({"services": [a.to_dict() for a in assignments]}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to assign staff services")
        return jsonify({"error": "Internal server error"}), 500
