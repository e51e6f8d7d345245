# Overview: Flask API routes for the walk-in queue; parses input and returns JSON responses.

# backend/walkin/routes/walkins.py
"""
Walk-in queue routes.

PATCH semantics:
- body with "status" moves the ticket (optionally also setting staff_id /
  service in the same unit of work)
- body without "status" only assigns staff and/or picks the service
"""
from flask import Blueprint, current_app, jsonify, request

from ..services import queue_service
from ..validation import DomainError, ValidationError

walkins_bp = Blueprint("walkins", __name__, url_prefix="/api/walkins")


@walkins_bp.get("")
def list_walkins_route():
    """Query params: status (optional) - waiting | in-progress | done"""
    try:
        walkins = queue_service.list_walkins(request.args.get("status"))
        return jsonify({"walkins": [w.to_dict() for w in walkins], "count": len(walkins)}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list walk-ins")
        return jsonify({"error": "Internal server error"}), 500


@walkins_bp.post("")
def create_walkin_route():
    try:
        data = request.get_json(silent=True) or {}

        walkin = queue_service.create_walkin(
            data.get("phone"),
            data.get("name"),
            service=data.get("service"),
            notes=data.get("notes"),
            staff_id=data.get("staff_id"),
        )
        return jsonify({"walkin": walkin.to_dict()}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create walk-in")
        return jsonify({"error": "Internal server error"}), 500


@walkins_bp.patch("/<int:walkin_id>")
def update_walkin_route(walkin_id: int):
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        staff_id = data.get("staff_id")
        service = data.get("service")

        if status is not None:
            walkin, details = queue_service.advance_status(
                walkin_id, status, staff_id=staff_id, service=service
            )
            body = {"walkin": walkin.to_dict()}
            if details is not None:
                body["service_details"] = details
            return jsonify(body), 200

        if staff_id is None and service is None:
            raise ValidationError("Provide status, staff_id or service")

        walkin = None
        if staff_id is not None:
            walkin = queue_service.assign_staff(walkin_id, staff_id)
        if service is not None:
            walkin = queue_service.select_service(walkin_id, service)
        return jsonify({"walkin": walkin.to_dict()}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update walk-in")
        return jsonify({"error": "Internal server error"}), 500


@walkins_bp.delete("/<int:walkin_id>")
def delete_walkin_route(walkin_id: int):
    try:
        queue_service.delete_walkin(walkin_id)
        return jsonify({"ok": True}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete walk-in")
        return jsonify({"error": "Internal server error"}), 500
