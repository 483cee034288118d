# Overview: Service-layer operations for the item ledger; append path and enriched reads.
"""
Ledger Invariants (authoritative)

- Append-only record of every item status and location change.
- Entries are flushed inside the caller's unit of work and never committed
  here; if the surrounding transaction rolls back, the entry goes with it.
- No update or delete path exists (ORM listeners reject both).
- Reads are newest first. Display fields are joined at read time:
  performed_by_* is the acting user; customer_* is the owner of the attached
  order, which can differ from the actor (e.g. staff rejecting an order).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import aliased

from ..extensions import db
from ..models import Item, LedgerEntry, Order, Product, Profile


def append_transaction(
    *,
    item_serial: str,
    user_id: str,
    transaction_type: str,
    notes: str | None = None,
    order_id: str | None = None,
    source_location_id: str | None = None,
    destination_location_id: str | None = None,
) -> LedgerEntry:
    entry = LedgerEntry(
        item_serial=item_serial,
        user_id=user_id,
        transaction_type=transaction_type,
        notes=notes,
        order_id=order_id,
        source_location_id=source_location_id,
        destination_location_id=destination_location_id,
    )
    db.session.add(entry)
    db.session.flush()  # ensures entry.id is assigned without committing
    return entry


def list_transactions(
    *,
    item_serial: str | None = None,
    order_id: str | None = None,
    user_id: str | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int = 200,
) -> list[dict]:
    """
    Ledger rows matching every supplied filter, newest first, enriched with
    actor, customer, product and order display fields. `since`/`until` are
    inclusive bounds on created_at.
    """
    actor = aliased(Profile)
    customer = aliased(Profile)

    q = (
        db.session.query(LedgerEntry, actor, Order, customer, Product)
        .outerjoin(actor, actor.id == LedgerEntry.user_id)
        .outerjoin(Order, Order.id == LedgerEntry.order_id)
        .outerjoin(customer, customer.id == Order.user_id)
        .outerjoin(Item, Item.serial_id == LedgerEntry.item_serial)
        .outerjoin(Product, Product.id == Item.product_id)
    )
    if item_serial is not None:
        q = q.filter(LedgerEntry.item_serial == item_serial)
    if order_id is not None:
        q = q.filter(LedgerEntry.order_id == order_id)
    if user_id is not None:
        q = q.filter(LedgerEntry.user_id == user_id)
    if since is not None:
        q = q.filter(LedgerEntry.created_at >= since)
    if until is not None:
        q = q.filter(LedgerEntry.created_at <= until)

    rows = q.order_by(LedgerEntry.created_at.desc()).limit(limit).all()
    return [_enrich(entry, performer, order, owner, product) for entry, performer, order, owner, product in rows]


def _enrich(entry: LedgerEntry, performer, order, owner, product) -> dict:
    data = entry.to_dict()
    data.update({
        "performed_by_name": performer.display_name if performer else f"User {entry.user_id[:8]}...",
        "performed_by_role": performer.role if performer else None,
        "product_id": product.id if product else None,
        "product_name": product.name if product else None,
        "order_number": order.order_number if order else None,
        "customer_id": order.user_id if order else None,
        "customer_name": None,
        "customer_email": None,
    })
    if order is not None:
        data["customer_name"] = owner.display_name if owner else f"User {order.user_id[:8]}..."
        data["customer_email"] = owner.email if owner else None
    return data
