# Overview: Flask API route for relocating a product's units between storage slots.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, error_response
from ..errors import InventoryError
from ..services import location_service
from ..validation import require_fields


locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")


@locations_bp.post("/relocate")
@require_actor
def relocate_route():
    """
    Move every unit of a product to one slot.

    Request body, either form:
    {"product_id": str, "shelf_number": "A1", "slot_number": "01"}
    {"product_id": str, "location": "A1-01"}

    Returns:
        200: {"moved": int, "location": "A1-01"}
    """
    try:
        data = require_fields(request.get_json(silent=True), {"product_id"})
        if data.get("location"):
            shelf, slot = location_service.parse_location_code(data["location"])
        else:
            data = require_fields(data, {"shelf_number", "slot_number"})
            shelf, slot = data["shelf_number"], data["slot_number"]

        moved = location_service.relocate(
            product_id=data["product_id"],
            target_shelf=shelf,
            target_slot=slot,
            actor_id=g.actor_id,
        )
        location = location_service.get_location(shelf, slot)
        return jsonify({"moved": moved, "location": location.code}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to relocate product")
        return jsonify({"error": "Internal server error"}), 500
