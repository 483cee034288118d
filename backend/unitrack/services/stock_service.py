# Overview: Read-side stock projection recomputed from item rows.
"""
Stock Projection (authoritative)

- Every figure here is aggregated from current item rows at read time.
  inventory.quantity is a cache refreshed by sync_cached_quantity and is
  never consulted for allocation or reporting.
- Reads see whatever snapshot the database isolation level provides; they
  are not linearized with in-flight writes.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import NotFound, ValidationError
from ..models import Item, ItemStatus, Location, Product


def _zero_counts() -> dict[str, int]:
    return {status: 0 for status in ItemStatus.ALL}


def sync_cached_quantity(product_id: str) -> int:
    """
    Rewrite inventory.quantity as the number of live units (every status
    except 'unavailable'). Runs inside the caller's unit of work.
    """
    live = (
        db.session.query(func.count(Item.serial_id))
        .filter(Item.product_id == product_id, Item.status != ItemStatus.UNAVAILABLE)
        .scalar()
    )
    product = db.session.get(Product, product_id)
    if product is not None and product.quantity != live:
        product.quantity = live
        db.session.flush()
    return int(live or 0)


def _counts_by_product(product_ids: list[str] | None = None) -> dict[str, dict[str, int]]:
    q = db.session.query(Item.product_id, Item.status, func.count(Item.serial_id)).group_by(
        Item.product_id, Item.status
    )
    if product_ids is not None:
        q = q.filter(Item.product_id.in_(product_ids))

    counts: dict[str, dict[str, int]] = {}
    for product_id, status, n in q.all():
        counts.setdefault(product_id, _zero_counts())[status] = int(n)
    return counts


def get_status_counts(product_id: str) -> dict[str, int]:
    """Counts per status for one product, every status present (zero-filled)."""
    if db.session.get(Product, product_id) is None:
        raise NotFound(f"Product {product_id} not found")
    return _counts_by_product([product_id]).get(product_id, _zero_counts())


def _summary(product: Product, counts: dict[str, int]) -> dict:
    return {
        "product_id": product.id,
        "name": product.name,
        "category": product.category,
        "cached_quantity": product.quantity,
        "counts": counts,
        "total_items": sum(counts.values()),
        "available": counts[ItemStatus.AVAILABLE],
    }


def get_product_stock(product_id: str) -> dict:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound(f"Product {product_id} not found")

    counts = _counts_by_product([product_id]).get(product_id, _zero_counts())
    summary = _summary(product, counts)

    location = (
        db.session.query(Location)
        .join(Item, Item.location_id == Location.id)
        .filter(Item.product_id == product_id)
        .first()
    )
    summary["location"] = location.to_dict() if location else None
    return summary


def get_inventory_overview() -> list[dict]:
    """Per-product status counts for every product, ordered by name."""
    products = db.session.query(Product).order_by(Product.name.asc()).all()
    counts = _counts_by_product()
    return [_summary(p, counts.get(p.id, _zero_counts())) for p in products]


def get_shelf_occupancy() -> list[dict]:
    """
    Units per slot grouped by product:

        [{"shelf_number": "A1", "slots": [
            {"slot_number": "01", "location_id": ..., "capacity": 100,
             "item_count": 12, "products": [{"product_id": ..., "name": ..., "item_count": 12}]}
        ]}]
    """
    rows = (
        db.session.query(Location, Product.id, Product.name, func.count(Item.serial_id))
        .join(Item, Item.location_id == Location.id)
        .join(Product, Product.id == Item.product_id)
        .group_by(Location.id, Product.id, Product.name)
        .order_by(Location.shelf_number, Location.slot_number, Product.name)
        .all()
    )

    shelves: dict[str, dict[str, dict]] = {}
    for location, product_id, name, n in rows:
        slot = shelves.setdefault(location.shelf_number, {}).setdefault(
            location.slot_number,
            {
                "slot_number": location.slot_number,
                "location_id": location.id,
                "capacity": location.capacity,
                "item_count": 0,
                "products": [],
            },
        )
        slot["item_count"] += int(n)
        slot["products"].append({"product_id": product_id, "name": name, "item_count": int(n)})

    return [
        {"shelf_number": shelf, "slots": list(slots.values())}
        for shelf, slots in shelves.items()
    ]


def get_low_stock_products(threshold: int | None = None) -> list[dict]:
    """Active products whose available count is at or below `threshold`, lowest first."""
    if threshold is None:
        threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 0:
        raise ValidationError("threshold must be a non-negative integer")

    products = db.session.query(Product).filter(Product.is_active.is_(True)).all()
    counts = _counts_by_product()

    low = [
        _summary(p, counts.get(p.id, _zero_counts()))
        for p in products
        if counts.get(p.id, _zero_counts())[ItemStatus.AVAILABLE] <= threshold
    ]
    low.sort(key=lambda s: (s["available"], s["name"]))
    return low
