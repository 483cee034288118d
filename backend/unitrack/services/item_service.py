# Overview: Service-layer operations for serialized items; the item state machine and stock intake.
"""
Item State Machine (authoritative)

    available   -> sold                      order allocation
    sold        -> unavailable | in_repair   order rejection | approved refund
    damaged     -> in_repair | unavailable   operator
    in_repair   -> available | unavailable   operator
    unavailable -> available                 operator

Every other (source, target) pair, including source == target, is an
InvalidTransition. The machine keeps no history beyond the current status.

Operators (transition_item, transition_items) only get the operator rows.
Moves into or out of 'sold' belong to the order and refund pipelines, which
drive _transition_item_inner with the full table.

Each transition:
- is applied with a conditional UPDATE keyed on the status that was read
  (a concurrent writer makes it match zero rows -> Conflict);
- appends exactly one ledger row in the same unit of work;
- requires a reason when the target is 'unavailable'.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import Conflict, InvalidTransition, InventoryError, NotFound, ValidationError
from ..models import Item, ItemStatus, Product, TransactionType
from ..validation import optional_text, parse_positive_int
from .concurrency import compare_and_set, lock_for_update, unit_of_work
from .ledger_service import append_transaction
from .notification_service import notify_failure, notify_success
from .permission_service import require_permission
from .pricing_service import get_active_price
from .stock_service import sync_cached_quantity


ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    ItemStatus.AVAILABLE: frozenset({ItemStatus.SOLD}),
    ItemStatus.SOLD: frozenset({ItemStatus.UNAVAILABLE, ItemStatus.IN_REPAIR}),
    ItemStatus.DAMAGED: frozenset({ItemStatus.IN_REPAIR, ItemStatus.UNAVAILABLE}),
    ItemStatus.IN_REPAIR: frozenset({ItemStatus.AVAILABLE, ItemStatus.UNAVAILABLE}),
    ItemStatus.UNAVAILABLE: frozenset({ItemStatus.AVAILABLE}),
}

# Operator subset: nothing enters or leaves 'sold' outside an order.
MANUAL_TRANSITIONS: dict[str, frozenset[str]] = {
    ItemStatus.DAMAGED: frozenset({ItemStatus.IN_REPAIR, ItemStatus.UNAVAILABLE}),
    ItemStatus.IN_REPAIR: frozenset({ItemStatus.AVAILABLE, ItemStatus.UNAVAILABLE}),
    ItemStatus.UNAVAILABLE: frozenset({ItemStatus.AVAILABLE}),
}

REASON_REQUIRED = frozenset({ItemStatus.UNAVAILABLE})

SERIAL_NUMBER_WIDTH = 2


def can_transition(source: str, target: str, transitions=ALLOWED_TRANSITIONS) -> bool:
    return target in transitions.get(source, frozenset())


def transaction_type_for(source: str, target: str) -> str:
    if source == ItemStatus.AVAILABLE and target == ItemStatus.SOLD:
        return TransactionType.SALE
    if target == ItemStatus.IN_REPAIR:
        return TransactionType.REPAIR
    return TransactionType.STATUS_CHANGE


def get_item(serial_id: str) -> Item:
    item = db.session.get(Item, serial_id)
    if item is None:
        raise NotFound(f"Item {serial_id} not found")
    return item


def list_items(*, product_id: str, status: str | None = None) -> list[Item]:
    if status is not None and status not in ItemStatus.ALL:
        raise ValidationError(f"unknown item status: {status}")
    q = db.session.query(Item).filter(Item.product_id == product_id)
    if status is not None:
        q = q.filter(Item.status == status)
    return q.order_by(Item.serial_id.asc()).all()


def _transition_item_inner(
    *,
    serial_id: str,
    target_status: str,
    actor_id: str,
    reason: str | None = None,
    expected_status: str | None = None,
    order_id: str | None = None,
    transaction_type: str | None = None,
    transitions: dict[str, frozenset[str]] = ALLOWED_TRANSITIONS,
) -> Item:
    """Core transition without permission check, notification, or commit.

    Called by the operator entry points with MANUAL_TRANSITIONS and by the
    order/refund pipelines with the full table; both batch their
    transitions into a single unit of work.
    """
    if target_status not in ItemStatus.ALL:
        raise InvalidTransition(f"Unknown item status '{target_status}'")

    item = db.session.get(Item, serial_id)
    if item is None:
        raise NotFound(f"Item {serial_id} not found")

    current = item.status
    if expected_status is not None and current != expected_status:
        raise Conflict(
            f"Item {serial_id} is '{current}', expected '{expected_status}'; re-read and retry"
        )

    if not can_transition(current, target_status, transitions):
        if can_transition(current, target_status):
            raise InvalidTransition(
                f"Item {serial_id} can only move from '{current}' to '{target_status}' through an order"
            )
        raise InvalidTransition(
            f"Item {serial_id} cannot move from '{current}' to '{target_status}'"
        )

    if target_status in REASON_REQUIRED and not reason:
        raise ValidationError(f"A reason is required to mark an item {target_status}")

    compare_and_set(
        Item,
        Item.serial_id,
        serial_id,
        Item.status,
        current,
        {"status": target_status, "performed_by_user_id": actor_id},
    )

    append_transaction(
        item_serial=serial_id,
        user_id=actor_id,
        transaction_type=transaction_type or transaction_type_for(current, target_status),
        notes=reason or f"Status changed from {current} to {target_status}",
        order_id=order_id,
    )

    if ItemStatus.UNAVAILABLE in (current, target_status):
        sync_cached_quantity(item.product_id)

    return item


def transition_item(
    *,
    serial_id: str,
    target_status: str,
    actor_id: str,
    reason: str | None = None,
    expected_status: str | None = None,
) -> Item:
    """
    Operator move of one item to `target_status` on behalf of `actor_id`.

    Only MANUAL_TRANSITIONS apply here; sold units and sales are handled by
    order_service and refund_service.

    `expected_status` lets a caller pin the status it last displayed; if the
    item has moved on since, the call fails with Conflict instead of applying
    a transition the operator never saw.

    Raises NotFound, InvalidTransition, Conflict, ValidationError, Unauthorized.
    """
    try:
        require_permission(actor_id, "items", "update")
        with unit_of_work():
            item = _transition_item_inner(
                serial_id=serial_id,
                target_status=target_status,
                actor_id=actor_id,
                reason=optional_text(reason),
                expected_status=expected_status,
                transitions=MANUAL_TRANSITIONS,
            )
    except InventoryError as exc:
        notify_failure(f"Could not update item {serial_id}: {exc.message}")
        raise

    notify_success(f"Item {serial_id} is now {target_status}")
    return item


def transition_items(
    *,
    serial_ids,
    target_status: str,
    actor_id: str,
    reason: str | None = None,
) -> list[Item]:
    """
    Operator move of several items to the same status, all or nothing.

    Every serial goes through the same checks as transition_item; the first
    failure rolls the whole batch back. Duplicate serials are applied once.
    """
    try:
        require_permission(actor_id, "items", "update")
        if not isinstance(serial_ids, (list, tuple)) or not serial_ids:
            raise ValidationError("serial_ids must be a non-empty list")
        serials = list(dict.fromkeys(serial_ids))

        with unit_of_work():
            items = [
                _transition_item_inner(
                    serial_id=serial_id,
                    target_status=target_status,
                    actor_id=actor_id,
                    reason=optional_text(reason),
                    transitions=MANUAL_TRANSITIONS,
                )
                for serial_id in serials
            ]
    except InventoryError as exc:
        notify_failure(f"Could not update items: {exc.message}")
        raise

    notify_success(f"{len(items)} items are now {target_status}")
    return items


# =============================================================================
# STOCK INTAKE
# =============================================================================

def _initials(text: str) -> str:
    letters = "".join(word[0].upper() for word in text.strip().split() if word)
    return letters.ljust(2, "X")[:2]


def serial_prefix(product_name: str, category: str) -> str:
    """'Laptop Pro' in 'Home Electronics' -> 'LP-HE'."""
    return f"{_initials(product_name)}-{_initials(category)}"


def _next_serial_number(prefix: str) -> int:
    rows = (
        db.session.query(Item.serial_id)
        .filter(Item.serial_id.startswith(f"{prefix}-", autoescape=True))
        .all()
    )
    highest = 0
    for (serial,) in rows:
        suffix = serial[len(prefix) + 1:]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest + 1


def _current_location_id(product_id: str) -> str | None:
    row = (
        db.session.query(Item.location_id)
        .filter(Item.product_id == product_id, Item.location_id.isnot(None))
        .first()
    )
    return row[0] if row else None


def add_stock(
    *,
    product_id: str,
    quantity,
    actor_id: str,
    notes: str | None = None,
) -> list[Item]:
    """
    Create `quantity` new available units of a product.

    Serials continue after the highest existing number for the product's
    prefix. New units join the product's current slot (all units of a product
    share one location) and reference its active price. One
    inventory_addition ledger row per unit.
    """
    try:
        require_permission(actor_id, "inventory", "create")
        count = parse_positive_int(quantity, "quantity")

        with unit_of_work():
            product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
            if product is None:
                raise NotFound(f"Product {product_id} not found")
            if not product.is_active:
                raise ValidationError(f"Product {product.name} is inactive")

            prefix = serial_prefix(product.name, product.category)
            start = _next_serial_number(prefix)
            location_id = _current_location_id(product.id)
            price = get_active_price(product.id)
            note = optional_text(notes) or f"New stock added to inventory: {product.name}"

            items = []
            for offset in range(count):
                item = Item(
                    serial_id=f"{prefix}-{str(start + offset).zfill(SERIAL_NUMBER_WIDTH)}",
                    product_id=product.id,
                    status=ItemStatus.AVAILABLE,
                    location_id=location_id,
                    price_id=price.id if price else None,
                    performed_by_user_id=actor_id,
                )
                db.session.add(item)
                items.append(item)
            db.session.flush()

            for item in items:
                append_transaction(
                    item_serial=item.serial_id,
                    user_id=actor_id,
                    transaction_type=TransactionType.INVENTORY_ADDITION,
                    notes=note,
                    destination_location_id=location_id,
                )

            sync_cached_quantity(product.id)
    except InventoryError as exc:
        notify_failure(f"Could not add stock to product {product_id}: {exc.message}")
        raise

    current_app.logger.info("Added %d units to product %s (%s..)", count, product_id, prefix)
    notify_success(f"Added {count} units of {product.name} to inventory")
    return items
