from __future__ import annotations

import uuid

from ..extensions import db
from unitrack.time_utils import to_utc_z, utcnow


class ProductType(db.Model):
    """Category taxonomy row. Managed elsewhere; read here for display and serial prefixes."""
    __tablename__ = "product_types"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    tax_type = db.Column(db.Numeric(6, 4), nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
        }


class Product(db.Model):
    """
    Catalog entry (stored in the legacy ``inventory`` table).

    QUANTITY:
    ``quantity`` is a denormalized cache of live item rows (status other than
    'unavailable'). It is rewritten by stock_service.sync_cached_quantity in
    the same unit of work as every change that affects it. Allocation and the
    stock projection never read it.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.Index("ix_inventory_name", "name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    product_type_id = db.Column(db.String(36), db.ForeignKey("product_types.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column("status", db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    product_type = db.relationship("ProductType", backref=db.backref("products", lazy=True))

    @property
    def category(self) -> str:
        return self.product_type.name if self.product_type else "Uncategorized"

    def __repr__(self) -> str:
        return f"<Product id={self.id!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "quantity": self.quantity,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Price(db.Model):
    """
    Point-in-time unit price for a product.

    At most one row per product has status=True; pricing_service.set_price
    closes the previous active row (status=False, effective_to=now) before
    inserting the replacement.
    """
    __tablename__ = "price"
    __table_args__ = (
        db.Index("ix_price_inventory_status", "inventory_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    product_id = db.Column("inventory_id", db.String(36), db.ForeignKey("inventory.id"), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    effective_from = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    effective_to = db.Column(db.DateTime(timezone=True), nullable=True)
    is_active = db.Column("status", db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product", backref=db.backref("prices", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "amount": str(self.amount),
            "effective_from": to_utc_z(self.effective_from),
            "effective_to": to_utc_z(self.effective_to),
            "is_active": self.is_active,
        }
