# Overview: Read-only stock projection endpoints.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, error_response
from ..errors import InventoryError, ValidationError
from ..services import stock_service
from ..services.permission_service import require_permission


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("/products")
@require_actor
def inventory_overview_route():
    try:
        require_permission(g.actor_id, "inventory", "view")
        return jsonify({"products": stock_service.get_inventory_overview()}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build inventory overview")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.get("/products/<product_id>")
@require_actor
def product_stock_route(product_id: str):
    try:
        require_permission(g.actor_id, "inventory", "view")
        return jsonify({"product": stock_service.get_product_stock(product_id)}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load stock for product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.get("/shelves")
@require_actor
def shelf_occupancy_route():
    try:
        require_permission(g.actor_id, "inventory", "view")
        return jsonify({"shelves": stock_service.get_shelf_occupancy()}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build shelf occupancy")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.get("/low")
@require_actor
def low_stock_route():
    """GET /api/stock/low[?threshold=N] (defaults to LOW_STOCK_THRESHOLD)"""
    try:
        require_permission(g.actor_id, "inventory", "view")
        raw = request.args.get("threshold")
        threshold = None
        if raw is not None:
            if not raw.isdigit():
                raise ValidationError("threshold must be a non-negative integer")
            threshold = int(raw)

        products = stock_service.get_low_stock_products(threshold)
        return jsonify({
            "threshold": threshold if threshold is not None else current_app.config["LOW_STOCK_THRESHOLD"],
            "products": products,
        }), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list low stock products")
        return jsonify({"error": "Internal server error"}), 500
