# Overview: Flask API routes for refund requests; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, error_response
from ..errors import InventoryError
from ..services import refund_service
from ..services.permission_service import require_permission
from ..validation import require_fields


refunds_bp = Blueprint("refunds", __name__, url_prefix="/api/refunds")


@refunds_bp.post("")
@require_actor
def create_refund_route():
    """
    File a refund request for a delivered order owned by the actor.

    Request body:
    {
        "order_id": str,
        "description": str,
        "photo_url": str (optional)
    }
    """
    try:
        data = require_fields(request.get_json(silent=True), {"order_id", "description"})
        refund = refund_service.create_refund_request(
            order_id=data["order_id"],
            user_id=g.actor_id,
            description=data["description"],
            photo_url=data.get("photo_url"),
        )
        return jsonify({"refund_request": refund.to_dict()}), 201
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create refund request")
        return jsonify({"error": "Internal server error"}), 500


@refunds_bp.post("/<refund_request_id>/approve")
@require_actor
def approve_refund_route(refund_request_id: str):
    """Request body (optional): {"notes": str}"""
    try:
        data = request.get_json(silent=True) or {}
        refund = refund_service.process_refund(
            refund_request_id=refund_request_id,
            actor_id=g.actor_id,
            notes=data.get("notes"),
        )
        return jsonify({"refund_request": refund.to_dict()}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to approve refund request %s", refund_request_id)
        return jsonify({"error": "Internal server error"}), 500


@refunds_bp.post("/<refund_request_id>/reject")
@require_actor
def reject_refund_route(refund_request_id: str):
    """Request body: {"notes": str}"""
    try:
        data = require_fields(request.get_json(silent=True), {"notes"})
        refund = refund_service.reject_refund(
            refund_request_id=refund_request_id,
            actor_id=g.actor_id,
            notes=data["notes"],
        )
        return jsonify({"refund_request": refund.to_dict()}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reject refund request %s", refund_request_id)
        return jsonify({"error": "Internal server error"}), 500


@refunds_bp.get("")
@require_actor
def list_refunds_route():
    """GET /api/refunds[?status=pending][&order_id=...] (reviewers only)"""
    try:
        require_permission(g.actor_id, "refunds", "approve")
        refunds = refund_service.list_refund_requests(
            status=request.args.get("status") or None,
            order_id=request.args.get("order_id") or None,
        )
        return jsonify({"refund_requests": [r.to_dict() for r in refunds]}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list refund requests")
        return jsonify({"error": "Internal server error"}), 500
