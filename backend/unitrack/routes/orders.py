# backend/unitrack/routes/orders.py
"""
Order API routes.

- POST /api/orders              - Place an order (customer, or staff on behalf of one)
- GET  /api/orders              - Own orders (all orders for staff)
- GET  /api/orders/:id          - Order with its allocated serials (owner or staff)
- POST /api/orders/:id/accept   - pending -> delivered
- POST /api/orders/:id/reject   - pending -> rejected, items -> unavailable

The acting user always comes from the X-Actor-Id header, never the body.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, error_response
from ..errors import InventoryError, ValidationError
from ..services import order_service
from ..validation import require_fields


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_actor
def create_order_route():
    """
    Request body:
    {
        "user_id": str (optional; defaults to the actor),
        "lines": [{"product_id": str, "quantity": int, "price": "12.50"}, ...]
    }

    Returns:
        201: {"order": {...}} with allocated lines
        409: insufficient stock (nothing was allocated)
    """
    try:
        data = require_fields(request.get_json(silent=True), {"lines"})
        if not isinstance(data["lines"], list):
            raise ValidationError("lines must be a list")

        order_id = order_service.process_order(
            user_id=data.get("user_id") or g.actor_id,
            lines=data["lines"],
            actor_id=g.actor_id,
        )
        order = order_service.get_order(order_id)
        return jsonify({"order": order.to_dict(include_lines=True)}), 201
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<order_id>")
@require_actor
def get_order_route(order_id: str):
    try:
        order = order_service.get_order_for_actor(order_id, g.actor_id)
        return jsonify({"order": order.to_dict(include_lines=True)}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<order_id>/accept")
@require_actor
def accept_order_route(order_id: str):
    try:
        order = order_service.complete_order(order_id=order_id, actor_id=g.actor_id)
        return jsonify({
            "order": order.to_dict(include_lines=True),
            "message": f"Order {order.order_number} accepted",
        }), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to accept order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<order_id>/reject")
@require_actor
def reject_order_route(order_id: str):
    """Request body: {"reason": str}"""
    try:
        data = require_fields(request.get_json(silent=True), {"reason"})
        order = order_service.reject_order(order_id=order_id, actor_id=g.actor_id, reason=data["reason"])
        return jsonify({
            "order": order.to_dict(include_lines=True),
            "message": f"Order {order.order_number} rejected",
        }), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reject order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
@require_actor
def list_orders_route():
    """
    GET /api/orders[?status=pending]

    Staff who may accept orders see every order; everyone else sees their own.
    """
    try:
        user_id = None if order_service.can_view_all_orders(g.actor_id) else g.actor_id
        orders = order_service.list_orders(user_id=user_id, status=request.args.get("status") or None)
        return jsonify({"orders": [order.to_dict() for order in orders]}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500
