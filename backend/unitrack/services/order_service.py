# backend/unitrack/services/order_service.py
"""
Order Fulfillment Pipeline.

Orders allocate concrete serialized units at placement time; there is no
reservation step.

LIFECYCLE:
1. PENDING: order placed, allocated items already 'sold'
2. DELIVERED: accepted by staff (items untouched)
3. REJECTED: refused by staff; every allocated item -> 'unavailable'
4. REFUNDED: approved refund (see refund_service); items -> 'in_repair'

Rejected stock never returns to 'available' automatically; an operator
moves it back after inspection.
"""
from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from decimal import Decimal

from ..extensions import db
from ..errors import (
    InsufficientStock, InvalidTransition, InventoryError, NotFound, OrderNotFound, Unauthorized, ValidationError,
)
from ..models import Item, ItemStatus, Order, OrderItem, OrderStatus, Product, Profile, TransactionType
from ..validation import parse_amount, parse_positive_int, require_text
from .concurrency import compare_and_set, lock_for_update, unit_of_work
from .item_service import _transition_item_inner
from .notification_service import notify_failure, notify_success
from .permission_service import has_permission, require_permission


@dataclass(frozen=True)
class OrderLine:
    product_id: str
    quantity: int
    price: Decimal

    @classmethod
    def coerce(cls, raw) -> "OrderLine":
        """Accept an OrderLine, a mapping with product_id/quantity/price, or a 3-tuple."""
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, dict):
            product_id, quantity, price = raw.get("product_id"), raw.get("quantity"), raw.get("price")
        elif isinstance(raw, (tuple, list)) and len(raw) == 3:
            product_id, quantity, price = raw
        else:
            raise ValidationError("each order line needs product_id, quantity and price")
        return cls(
            product_id=require_text(product_id, "product_id"),
            quantity=parse_positive_int(quantity, "quantity"),
            price=parse_amount(price, "price"),
        )


def generate_order_number() -> str:
    """ORD-<epoch millis>-<9 random chars>; uniqueness is enforced by the table."""
    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(5)[:9].upper()}"


def get_order(order_id: str) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found")
    return order


def can_view_all_orders(actor_id: str) -> bool:
    """Staff who may accept orders see every customer's orders."""
    return has_permission(actor_id, "orders", "approve")


def get_order_for_actor(order_id: str, actor_id: str) -> Order:
    """get_order() limited to the order's customer and order staff."""
    order = get_order(order_id)
    if order.user_id != actor_id and not can_view_all_orders(actor_id):
        raise Unauthorized(f"Order {order_id} belongs to another customer")
    return order


def list_orders(*, user_id: str | None = None, status: str | None = None, limit: int = 200) -> list[Order]:
    q = db.session.query(Order)
    if user_id is not None:
        q = q.filter(Order.user_id == user_id)
    if status is not None:
        q = q.filter(Order.status == status)
    return q.order_by(Order.created_at.desc()).limit(limit).all()


def _allocate(product: Product, quantity: int) -> list[Item]:
    """The `quantity` lowest-serial available items of a product, locked."""
    items = (
        lock_for_update(
            db.session.query(Item).filter(
                Item.product_id == product.id,
                Item.status == ItemStatus.AVAILABLE,
            )
        )
        .order_by(Item.serial_id.asc())
        .limit(quantity)
        .all()
    )
    if len(items) < quantity:
        raise InsufficientStock(product.id, available=len(items), requested=quantity, product_name=product.name)
    return items


def process_order(*, user_id: str, lines, actor_id: str | None = None) -> str:
    """
    Place an order for `user_id` and return the new order id.

    For each line the N lowest-serial available items of the product are
    moved available -> sold and bound to the order at the line's agreed
    price. Order row, order lines, item transitions and ledger rows commit
    together; any shortfall raises InsufficientStock and nothing persists.

    `actor_id` defaults to the customer. Placing an order for someone else
    needs orders:create_for_others; customers can only order for themselves.
    """
    actor_id = actor_id or user_id
    try:
        if actor_id == user_id:
            require_permission(actor_id, "orders", "create")
        else:
            require_permission(actor_id, "orders", "create_for_others")

        if not lines:
            raise ValidationError("an order needs at least one line")
        order_lines = [OrderLine.coerce(raw) for raw in lines]

        with unit_of_work():
            if db.session.get(Profile, user_id) is None:
                raise NotFound(f"User {user_id} not found")

            total = sum((line.price * line.quantity for line in order_lines), Decimal("0.00"))
            order = Order(
                order_number=generate_order_number(),
                user_id=user_id,
                status=OrderStatus.PENDING,
                total_amount=total,
            )
            db.session.add(order)
            db.session.flush()

            allocated = 0
            for line in order_lines:
                product = db.session.get(Product, line.product_id)
                if product is None:
                    raise NotFound(f"Product {line.product_id} not found")

                for item in _allocate(product, line.quantity):
                    _transition_item_inner(
                        serial_id=item.serial_id,
                        target_status=ItemStatus.SOLD,
                        actor_id=actor_id,
                        reason=f"Sold on order {order.order_number}",
                        expected_status=ItemStatus.AVAILABLE,
                        order_id=order.id,
                        transaction_type=TransactionType.SALE,
                    )
                    db.session.add(OrderItem(order_id=order.id, item_serial=item.serial_id, price=line.price))
                    allocated += 1
    except InventoryError as exc:
        notify_failure(f"Order could not be placed: {exc.message}")
        raise

    notify_success(f"Order {order.order_number} placed with {allocated} items")
    return order.id


def complete_order(*, order_id: str, actor_id: str) -> Order:
    """Accept a pending order (pending -> delivered). Item statuses are untouched."""
    try:
        require_permission(actor_id, "orders", "approve")

        with unit_of_work():
            order = get_order(order_id)
            if order.status != OrderStatus.PENDING:
                raise InvalidTransition(f"Only pending orders can be accepted; order is {order.status}")
            compare_and_set(Order, Order.id, order.id, Order.status, OrderStatus.PENDING,
                            {"status": OrderStatus.DELIVERED})
    except InventoryError as exc:
        notify_failure(f"Could not accept order {order_id}: {exc.message}")
        raise

    notify_success(f"Order {order.order_number} accepted")
    return order


def reject_order(*, order_id: str, actor_id: str, reason: str) -> Order:
    """
    Reject a pending order.

    The order is claimed first (pending -> rejected), then every allocated
    item moves sold -> unavailable with a rejection ledger row referencing
    the order. A racing accept/reject on the same order loses with Conflict.
    """
    try:
        require_permission(actor_id, "orders", "reject")
        reason = require_text(reason, "reason")

        with unit_of_work():
            order = get_order(order_id)
            if order.status != OrderStatus.PENDING:
                raise InvalidTransition(f"Only pending orders can be rejected; order is {order.status}")
            compare_and_set(Order, Order.id, order.id, Order.status, OrderStatus.PENDING,
                            {"status": OrderStatus.REJECTED})

            for line in order.lines:
                _transition_item_inner(
                    serial_id=line.item_serial,
                    target_status=ItemStatus.UNAVAILABLE,
                    actor_id=actor_id,
                    reason=f"Order {order.order_number} rejected: {reason}",
                    expected_status=ItemStatus.SOLD,
                    order_id=order.id,
                    transaction_type=TransactionType.REJECTION,
                )
    except InventoryError as exc:
        notify_failure(f"Could not reject order {order_id}: {exc.message}")
        raise

    notify_success(f"Order {order.order_number} rejected")
    return order
