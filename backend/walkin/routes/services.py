# Overview: Flask API routes for the service catalog; parses input and returns JSON responses.

# backend/walkin/routes/services.py
"""
Service catalog routes.

DELETE is guarded: a service referenced by waiting or in-progress walk-ins
answers 403 with inUseCount.
"""
from flask import Blueprint, current_app, jsonify, request

from ..models import Service
from ..services import catalog_service
from ..validation import (
    DomainError,
    ModelValidationPolicy,
    enforce_rules_service,
    require_id_list,
    validate_payload,
    ValidationError,
)

SERVICE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "price_cents", "duration_minutes", "is_active",
        "category_id", "image_url", "thumbnail_url", "image_alt",
    },
    required_on_create={"name", "price_cents", "duration_minutes"},
    extra_fields={"staff_ids"},
)

services_bp = Blueprint("services", __name__, url_prefix="/api/services")


@services_bp.get("")
def list_services_route():
    try:
        services = catalog_service.list_services()
        return jsonify({"services": services, "count": len(services)}), 200
    except Exception:
        current_app.logger.exception("Failed to list services")
        return jsonify({"error": "Internal server error"}), 500


@services_bp.get("/active")
def list_active_services_route():
    """Active services in alphabetical order (walk-in form)."""
    try:
        services = catalog_service.list_active_services()
        return jsonify({"services": services, "count": len(services)}), 200
    except Exception:
        current_app.logger.exception("Failed to list active services")
        return jsonify({"error": "Internal server error"}), 500


@services_bp.post("")
def create_service_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Service, payload=payload, policy=SERVICE_POLICY, partial=False)
        enforce_rules_service(patch)

        service = catalog_service.create_service(patch=patch)
        return jsonify({"service": service.to_dict(include_staff=True)}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create service")
        return jsonify({"error": "Internal server error"}), 500


@services_bp.patch("/<int:service_id>")
def update_service_route(service_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Service, payload=payload, policy=SERVICE_POLICY, partial=True)
        enforce_rules_service(patch)

        service = catalog_service.update_service(service_id=service_id, patch=patch)
        return jsonify({"service": service.to_dict(include_staff=True)}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update service")
        return jsonify({"error": "Internal server error"}), 500


@services_bp.delete("/<int:service_id>")
def delete_service_route(service_id: int):
    try:
        catalog_service.delete_service(service_id)
        return jsonify({"ok": True}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete service")
        return jsonify({"error": "Internal server error"}), 500


@services_bp.post("/staff")
def assign_service_staff_route():
    """Body: {"service_id": int, "staff_ids": [int, ...]} - replaces the service's staff."""
    try:
        data = request.get_json(silent=True) or {}
        service_id = data.get("service_id")
        if isinstance(service_id, bool) or not isinstance(service_id, int):
            raise ValidationError("service_id is required")
        staff_ids = require_id_list(data.get("staff_ids"), "staff_ids")

        service = catalog_service.assign_staff_to_service(service_id=service_id, staff_ids=staff_ids)
        return jsonify({"service": service.to_dict(include_staff=True)}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to assign staff to service")
        return jsonify({"error": "Internal server error"}), 500
