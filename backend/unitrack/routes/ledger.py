# Overview: Flask API route for reading the item ledger.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, error_response
from ..errors import InventoryError
from ..services import ledger_service
from ..services.permission_service import require_permission
from ..validation import parse_optional_datetime

"""
Time semantics:
- since/until accept ISO-8601 datetimes with Z/offsets; normalized to UTC-naive.
- both bounds are inclusive.
"""

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("")
@require_actor
def list_ledger_route():
    """GET /api/ledger?item=&order=&actor=&since=&until=&limit="""
    try:
        require_permission(g.actor_id, "transactions", "view")

        limit = request.args.get("limit", default=200, type=int)
        limit = max(1, min(limit, 1000))

        entries = ledger_service.list_transactions(
            item_serial=request.args.get("item") or None,
            order_id=request.args.get("order") or None,
            user_id=request.args.get("actor") or None,
            since=parse_optional_datetime(request.args.get("since"), "since"),
            until=parse_optional_datetime(request.args.get("until"), "until"),
            limit=limit,
        )
        return jsonify({"items": entries, "limit": limit}), 200
    except InventoryError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list ledger entries")
        return jsonify({"error": "Internal server error"}), 500
