# Overview: Flask API routes for customers; parses input and returns JSON responses.

# backend/walkin/routes/customers.py
from flask import Blueprint, current_app, jsonify, request

from ..services import customer_service
from ..validation import DomainError

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers_route():
    """
    Customer lookup or listing.

    Query params:
    - phone: if present, returns that one customer with visit stats (404 if unknown)
    - page, limit: pagination (limit max 200)
    - search: substring of name or phone
    - sort_by: name | phone | created_at | visits | ltv | last_visit
    - sort_order: asc | desc
    """
    try:
        phone = request.args.get("phone")
        if phone is not None:
            return jsonify({"customer": customer_service.lookup_customer(phone)}), 200

        result = customer_service.list_customers(
            page=request.args.get("page", 1, type=int),
            limit=request.args.get("limit", 50, type=int),
            search=request.args.get("search"),
            sort_by=request.args.get("sort_by", "name"),
            sort_order=request.args.get("sort_order", "asc"),
        )
        return jsonify(result), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load customers")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.post("")
def create_customer_route():
    try:
        data = request.get_json(silent=True) or {}
        customer = customer_service.create_customer(
            phone=data.get("phone"),
            name=data.get("name"),
            email=data.get("email"),
        )
        return jsonify({"customer": customer.to_dict()}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.patch("/<int:customer_id>")
def rename_customer_route(customer_id: int):
    try:
        data = request.get_json(silent=True) or {}
        customer = customer_service.rename_customer(customer_id, data.get("name"))
        return jsonify({"customer": customer.to_dict()}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500
