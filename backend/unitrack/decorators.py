# Overview: Request decorators and error rendering shared by the API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import InventoryError

ACTOR_HEADER = "X-Actor-Id"


def require_actor(f):
    """
    Require an acting user on the request.

    Identity is established upstream (gateway / session layer) and forwarded
    in the X-Actor-Id header. The id is stored on g.actor_id; authorization
    happens in the service layer against that id.

    Returns 401 when the header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor_id = (request.headers.get(ACTOR_HEADER) or "").strip()
        if not actor_id:
            return jsonify({
                "error": "Authentication required",
                "code": "unauthenticated",
                "retryable": False,
            }), 401

        g.actor_id = actor_id
        return f(*args, **kwargs)

    return decorated_function


def error_response(exc: InventoryError):
    """Render a service error as {"error", "code", "retryable"} with its HTTP status."""
    return jsonify(exc.to_dict()), exc.http_status
