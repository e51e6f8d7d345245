# Overview: Flask API routes for service categories; parses input and returns JSON responses.

# backend/walkin/routes/categories.py
from flask import Blueprint, current_app, jsonify, request

from ..models import Category
from ..services import catalog_service
from ..validation import DomainError, ModelValidationPolicy, enforce_rules_ordered, validate_payload

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "icon", "display_order", "is_active"},
    required_on_create={"name"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
def list_categories_route():
    try:
        categories = catalog_service.list_categories()
        return jsonify({"categories": categories, "count": len(categories)}), 200
    except Exception:
        current_app.logger.exception("Failed to list categories")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.post("")
def create_category_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        enforce_rules_ordered(patch)

        category = catalog_service.create_category(patch=patch)
        return jsonify({"category": category.to_dict(service_count=0)}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.get("/<int:category_id>")
def get_category_route(category_id: int):
    try:
        return jsonify({"category": catalog_service.get_category_detail(category_id)}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.patch("/<int:category_id>")
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
        enforce_rules_ordered(patch)

        category = catalog_service.update_category(category_id=category_id, patch=patch)
        return jsonify({"category": category.to_dict()}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.delete("/<int:category_id>")
def delete_category_route(category_id: int):
    """Services in the category are kept; serviceCount says how many were detached."""
    try:
        detached = catalog_service.delete_category(category_id)
        return jsonify({"ok": True, "serviceCount": detached}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return jsonify({"error": "Internal server error"}), 500
