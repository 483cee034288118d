# Overview: Storage slots and whole-product relocation.

"""
Location Transfer Coordinator

All units of a product share one slot, so relocation is a group operation:
every item of the product moves to the target slot, or none does.

LIFECYCLE:
1. Resolve the target slot (fetch, or create on first use; a lost creation
   race falls back to fetching the winner's row).
2. Lock the product's items and move those not already in the slot.
3. One location_change ledger row per moved item (source -> destination).
4. Commit once.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import InventoryError, NotFound, ValidationError
from ..models import Item, Location, Product, TransactionType
from ..validation import require_text
from .concurrency import lock_for_update, unit_of_work
from .ledger_service import append_transaction
from .notification_service import notify_failure, notify_success
from .permission_service import require_permission


def normalize_slot(shelf_number: str, slot_number: str) -> tuple[str, str]:
    shelf = require_text(shelf_number, "shelf_number").upper()
    slot = require_text(slot_number, "slot_number").upper()
    return shelf, slot


def parse_location_code(code: str) -> tuple[str, str]:
    """'A1-01' -> ('A1', '01')."""
    shelf, sep, slot = require_text(code, "location").partition("-")
    if not sep or not shelf or not slot:
        raise ValidationError(f"location must look like SHELF-SLOT, got {code!r}")
    return normalize_slot(shelf, slot)


def get_location(shelf_number: str, slot_number: str) -> Location | None:
    shelf, slot = normalize_slot(shelf_number, slot_number)
    return db.session.query(Location).filter_by(shelf_number=shelf, slot_number=slot).first()


def resolve_location(shelf_number: str, slot_number: str, *, capacity: int | None = None) -> Location:
    """
    Fetch the slot, creating it when it does not exist yet.

    Must be the first write of the surrounding unit of work: when another
    request creates the same slot concurrently, the unique constraint fires
    and the session transaction is rolled back before re-fetching.
    """
    shelf, slot = normalize_slot(shelf_number, slot_number)

    location = db.session.query(Location).filter_by(shelf_number=shelf, slot_number=slot).first()
    if location is not None:
        return location

    location = Location(
        shelf_number=shelf,
        slot_number=slot,
        capacity=capacity if capacity is not None else current_app.config["DEFAULT_LOCATION_CAPACITY"],
        is_active=True,
    )
    db.session.add(location)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        location = db.session.query(Location).filter_by(shelf_number=shelf, slot_number=slot).first()
        if location is None:
            raise
    return location


def relocate(*, product_id: str, target_shelf: str, target_slot: str, actor_id: str) -> int:
    """
    Move every unit of `product_id` to slot `target_shelf`-`target_slot`.

    Returns the number of items whose location changed (0 when the whole
    batch already sits in the target slot).

    Raises NotFound (unknown product, or product without items),
    ValidationError (bad slot, inactive slot), Unauthorized.
    """
    try:
        require_permission(actor_id, "locations", "update")

        with unit_of_work():
            target = resolve_location(target_shelf, target_slot)
            if not target.is_active:
                raise ValidationError(f"Location {target.code} is inactive")

            product = db.session.get(Product, product_id)
            if product is None:
                raise NotFound(f"Product {product_id} not found")

            items = (
                lock_for_update(db.session.query(Item).filter(Item.product_id == product_id))
                .order_by(Item.serial_id.asc())
                .all()
            )
            if not items:
                raise NotFound(f"Product {product.name} has no items to relocate")

            moved = 0
            for item in items:
                if item.location_id == target.id:
                    continue
                source_id = item.location_id
                item.location_id = target.id
                item.performed_by_user_id = actor_id
                append_transaction(
                    item_serial=item.serial_id,
                    user_id=actor_id,
                    transaction_type=TransactionType.LOCATION_CHANGE,
                    notes=f"Moved to {target.code}",
                    source_location_id=source_id,
                    destination_location_id=target.id,
                )
                moved += 1
    except InventoryError as exc:
        notify_failure(f"Could not relocate product {product_id}: {exc.message}")
        raise

    notify_success(f"Moved {moved} units of {product.name} to {target.code}")
    return moved
