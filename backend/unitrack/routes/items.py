# Overview: Flask API routes for serialized items; lookups, status transitions and stock intake.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, error_response
from ..errors import InventoryError, ValidationError
from ..services import item_service
from ..validation import require_fields


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.get("")
@require_actor
def list_items_route():
    """GET /api/items?product_id=<id>[&status=<status>]"""
    try:
        product_id = request.args.get("product_id")
        if not product_id:
            raise ValidationError("product_id is required")
        items = item_service.list_items(product_id=product_id, status=request.args.get("status"))
        return jsonify({"items": [item.to_dict() for item in items]}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list items")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.get("/<serial_id>")
@require_actor
def get_item_route(serial_id: str):
    try:
        item = item_service.get_item(serial_id)
        return jsonify({"item": item.to_dict()}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load item %s", serial_id)
        return jsonify({"error": "Internal server error"}), 500


@items_bp.post("/<serial_id>/transition")
@require_actor
def transition_item_route(serial_id: str):
    """
    Move an item to a new status (operator transitions only; sold units
    change through orders and refunds).

    Request body:
    {
        "target_status": "available" | "unavailable" | "in_repair",
        "reason": str (required when target_status is "unavailable"),
        "expected_status": str (optional; 409 conflict if the item moved on)
    }

    Error responses:
        400: missing reason / malformed body
        403: actor lacks items:update
        404: unknown serial
        409: transition not allowed, or concurrent modification (retryable)
    """
    try:
        data = require_fields(request.get_json(silent=True), {"target_status"})
        item = item_service.transition_item(
            serial_id=serial_id,
            target_status=data["target_status"],
            actor_id=g.actor_id,
            reason=data.get("reason"),
            expected_status=data.get("expected_status"),
        )
        return jsonify({"item": item.to_dict()}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to transition item %s", serial_id)
        return jsonify({"error": "Internal server error"}), 500


@items_bp.post("/transition")
@require_actor
def transition_items_route():
    """
    Move several items to one status in a single all-or-nothing step.

    Request body:
    {
        "serial_ids": [str, ...],
        "target_status": "available" | "unavailable" | "in_repair",
        "reason": str (required when target_status is "unavailable")
    }
    """
    try:
        data = require_fields(request.get_json(silent=True), {"serial_ids", "target_status"})
        items = item_service.transition_items(
            serial_ids=data["serial_ids"],
            target_status=data["target_status"],
            actor_id=g.actor_id,
            reason=data.get("reason"),
        )
        return jsonify({"items": [item.to_dict() for item in items]}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to transition items")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.post("/stock")
@require_actor
def add_stock_route():
    """
    Add new units of a product.

    Request body:
    {
        "product_id": str,
        "quantity": int,
        "notes": str (optional)
    }
    """
    try:
        data = require_fields(request.get_json(silent=True), {"product_id", "quantity"})
        items = item_service.add_stock(
            product_id=data["product_id"],
            quantity=data["quantity"],
            actor_id=g.actor_id,
            notes=data.get("notes"),
        )
        return jsonify({
            "items": [item.to_dict() for item in items],
            "message": f"Added {len(items)} units",
        }), 201
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add stock")
        return jsonify({"error": "Internal server error"}), 500
