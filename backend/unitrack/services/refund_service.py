"""
Refund Processing Service

Refund requests are filed by the customer against a delivered order and
resolved by staff.

DESIGN PRINCIPLES:
- Approval routes every unit of the order sold -> in_repair; returned goods
  are inspected before they can be sold again, never made available directly.
- Approval also moves the order delivered -> refunded.
- Rejection only records the decision on the request.
- A request is resolved once; a second decision raises AlreadyResolved.

LIFECYCLE:
1. Create request (pending) - customer
2. Approve (approved) or reject (rejected) - reviewer
"""

from __future__ import annotations

from ..extensions import db
from ..errors import AlreadyResolved, InvalidTransition, InventoryError, NotFound, Unauthorized
from ..models import ItemStatus, Order, OrderStatus, RefundRequest, RefundStatus, TransactionType
from ..validation import optional_text, require_text
from .concurrency import compare_and_set, unit_of_work
from .item_service import _transition_item_inner
from .notification_service import notify_failure, notify_success
from .order_service import get_order
from .permission_service import require_permission
from unitrack.time_utils import utcnow


def get_refund_request(refund_request_id: str) -> RefundRequest:
    request = db.session.get(RefundRequest, refund_request_id)
    if request is None:
        raise NotFound(f"Refund request {refund_request_id} not found")
    return request


def list_refund_requests(*, status: str | None = None, order_id: str | None = None) -> list[RefundRequest]:
    q = db.session.query(RefundRequest)
    if status is not None:
        q = q.filter(RefundRequest.status == status)
    if order_id is not None:
        q = q.filter(RefundRequest.order_id == order_id)
    return q.order_by(RefundRequest.created_at.desc()).all()


def create_refund_request(
    *,
    order_id: str,
    user_id: str,
    description: str,
    photo_url: str | None = None,
) -> RefundRequest:
    """
    File a refund request (status: pending).

    Raises:
        Unauthorized: requester lacks the permission or does not own the order
        OrderNotFound: unknown order
        InvalidTransition: order not delivered, or a pending request already exists
    """
    try:
        require_permission(user_id, "refunds", "create")
        description = require_text(description, "description")

        with unit_of_work():
            order = get_order(order_id)
            if order.user_id != user_id:
                raise Unauthorized("Refunds can only be requested by the customer who placed the order")
            if order.status != OrderStatus.DELIVERED:
                raise InvalidTransition(f"Refunds can only be requested for delivered orders; order is {order.status}")

            open_request = db.session.query(RefundRequest).filter_by(
                order_id=order_id, status=RefundStatus.PENDING
            ).first()
            if open_request is not None:
                raise InvalidTransition(f"Order {order.order_number} already has a pending refund request")

            request = RefundRequest(
                order_id=order_id,
                user_id=user_id,
                description=description,
                photo_url=optional_text(photo_url),
                status=RefundStatus.PENDING,
            )
            db.session.add(request)
    except InventoryError as exc:
        notify_failure(f"Refund request for order {order_id} failed: {exc.message}")
        raise

    notify_success(f"Refund request submitted for order {order.order_number}")
    return request


def _pending_request(refund_request_id: str) -> RefundRequest:
    request = get_refund_request(refund_request_id)
    if request.status != RefundStatus.PENDING:
        raise AlreadyResolved(f"Refund request {refund_request_id} is already {request.status}")
    return request


def process_refund(*, refund_request_id: str, actor_id: str, notes: str | None = None) -> RefundRequest:
    """
    Approve a refund request.

    In one unit of work: request pending -> approved (reviewer, timestamp,
    notes), order delivered -> refunded, and every item on the order
    sold -> in_repair with a refund ledger row each.
    """
    try:
        require_permission(actor_id, "refunds", "approve")
        notes = optional_text(notes)

        with unit_of_work():
            request = _pending_request(refund_request_id)
            order = get_order(request.order_id)
            if order.status != OrderStatus.DELIVERED:
                raise InvalidTransition(f"Only delivered orders can be refunded; order is {order.status}")

            compare_and_set(
                RefundRequest, RefundRequest.id, request.id, RefundRequest.status, RefundStatus.PENDING,
                {
                    "status": RefundStatus.APPROVED,
                    "reviewed_by": actor_id,
                    "reviewed_at": utcnow(),
                    "admin_notes": notes,
                },
            )
            compare_and_set(Order, Order.id, order.id, Order.status, OrderStatus.DELIVERED,
                            {"status": OrderStatus.REFUNDED})

            for line in order.lines:
                _transition_item_inner(
                    serial_id=line.item_serial,
                    target_status=ItemStatus.IN_REPAIR,
                    actor_id=actor_id,
                    reason=f"Refund approved for order {order.order_number}" + (f": {notes}" if notes else ""),
                    expected_status=ItemStatus.SOLD,
                    order_id=order.id,
                    transaction_type=TransactionType.REFUND,
                )
    except InventoryError as exc:
        notify_failure(f"Could not approve refund request {refund_request_id}: {exc.message}")
        raise

    notify_success(f"Refund approved for order {order.order_number}; items sent to repair")
    return request


def reject_refund(*, refund_request_id: str, actor_id: str, notes: str) -> RefundRequest:
    """Reject a refund request. Items and order status are left untouched."""
    try:
        require_permission(actor_id, "refunds", "reject")
        notes = require_text(notes, "notes")

        with unit_of_work():
            request = _pending_request(refund_request_id)
            compare_and_set(
                RefundRequest, RefundRequest.id, request.id, RefundRequest.status, RefundStatus.PENDING,
                {
                    "status": RefundStatus.REJECTED,
                    "reviewed_by": actor_id,
                    "reviewed_at": utcnow(),
                    "admin_notes": notes,
                },
            )
    except InventoryError as exc:
        notify_failure(f"Could not reject refund request {refund_request_id}: {exc.message}")
        raise

    notify_success(f"Refund request {refund_request_id} rejected")
    return request
