# Overview: Versioned product prices (one active row per product).

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..errors import InventoryError, NotFound
from ..models import Price, Product
from ..validation import parse_amount
from .concurrency import lock_for_update, unit_of_work
from .notification_service import notify_failure, notify_success
from .permission_service import require_permission
from unitrack.time_utils import utcnow


def get_active_price(product_id: str) -> Price | None:
    """The active price row; the latest effective_from wins if legacy data has several."""
    return (
        db.session.query(Price)
        .filter(Price.product_id == product_id, Price.is_active.is_(True))
        .order_by(Price.effective_from.desc())
        .first()
    )


def list_prices(product_id: str) -> list[Price]:
    return (
        db.session.query(Price)
        .filter(Price.product_id == product_id)
        .order_by(Price.effective_from.desc())
        .all()
    )


def set_price(
    *,
    product_id: str,
    amount,
    actor_id: str,
    effective_from: datetime | None = None,
) -> Price:
    """
    Replace the product's active price.

    Every currently active row is closed (status=False, effective_to=now)
    and the new row is inserted as active, in one unit of work.
    """
    try:
        require_permission(actor_id, "inventory", "update")
        value = parse_amount(amount, "amount")

        with unit_of_work():
            product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
            if product is None:
                raise NotFound(f"Product {product_id} not found")

            now = utcnow()
            for previous in db.session.query(Price).filter(
                Price.product_id == product_id, Price.is_active.is_(True)
            ).all():
                previous.is_active = False
                previous.effective_to = now

            price = Price(
                product_id=product_id,
                amount=value,
                effective_from=effective_from or now,
                is_active=True,
            )
            db.session.add(price)
    except InventoryError as exc:
        notify_failure(f"Could not update price for product {product_id}: {exc.message}")
        raise

    notify_success(f"Price for {product.name} set to {value}")
    return price
