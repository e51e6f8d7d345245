# Overview: Flask API routes for products, product sales and inventory reports; parses input and returns JSON responses.

# backend/walkin/routes/products.py
"""
Product and inventory routes.

Time semantics:
- start / end filters accept ISO-8601 datetimes with Z/offsets; they are
  normalized to UTC-naive and compared inclusively against sold_at.

Stock failures on POST /sales answer 400 with available and requested.
"""
from flask import Blueprint, current_app, jsonify, request

from ..models import Product
from ..services import inventory_service
from walkin.time_utils import parse_iso_datetime
from ..validation import (
    DomainError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "sku", "price_cents", "cost_cents", "stock_quantity",
        "low_stock_threshold", "unit", "image_url", "thumbnail_url", "is_active",
    },
    required_on_create={"name", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _date_arg(name: str):
    raw = request.args.get(name)
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")


@products_bp.get("")
def list_products_route():
    """Query params: active_only (optional) - "true" hides deactivated products"""
    try:
        active_only = request.args.get("active_only", "false").lower() == "true"
        items = inventory_service.list_products(include_inactive=not active_only)
        return jsonify({"products": items, "count": len(items)}), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)

        product = inventory_service.create_product(patch=patch)
        return jsonify({"product": product.to_dict()}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return jsonify({"product": inventory_service.get_product_detail(product_id)}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)

        product = inventory_service.update_product(product_id=product_id, patch=patch)
        return jsonify({"product": product.to_dict()}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    """Deletes the product, or deactivates it when it has sales history."""
    try:
        outcome = inventory_service.archive_or_delete(product_id)
        return jsonify(outcome.to_dict()), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/sales")
def list_sales_route():
    """
    Query params (all optional):
    - product_id, walk_in_id: int filters
    - start, end: ISO-8601 bounds on sold_at
    """
    try:
        result = inventory_service.list_sales(
            product_id=request.args.get("product_id", type=int),
            walk_in_id=request.args.get("walk_in_id", type=int),
            start=_date_arg("start"),
            end=_date_arg("end"),
        )
        return jsonify(result), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/sales")
def record_sale_route():
    """Body: {"product_id", "quantity", "unit_price_cents"?, "walk_in_id"?, "notes"?}"""
    try:
        data = request.get_json(silent=True) or {}
        if data.get("product_id") is None or data.get("quantity") is None:
            raise ValidationError("product_id and quantity required")

        sale = inventory_service.record_sale(
            data.get("product_id"),
            data.get("quantity"),
            unit_price_cents=data.get("unit_price_cents"),
            walk_in_id=data.get("walk_in_id"),
            notes=data.get("notes"),
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/inventory")
def inventory_report_route():
    """Query params: type - summary (default) | low-stock | sales-report; start / end for sales-report"""
    try:
        report = inventory_service.inventory_report(
            request.args.get("type", "summary"),
            start=_date_arg("start"),
            end=_date_arg("end"),
        )
        return jsonify(report), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build inventory report")
        return jsonify({"error": "Internal server error"}), 500
