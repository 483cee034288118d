from __future__ import annotations

import uuid

from ..extensions import db
from unitrack.time_utils import to_utc_z, utcnow


class ItemStatus:
    """Persisted lifecycle states of a serialized unit."""
    AVAILABLE = "available"
    SOLD = "sold"
    DAMAGED = "damaged"
    IN_REPAIR = "in_repair"
    UNAVAILABLE = "unavailable"

    ALL = (AVAILABLE, SOLD, DAMAGED, IN_REPAIR, UNAVAILABLE)


class Location(db.Model):
    """Storage slot. A slot holds the whole batch of one product's units."""
    __tablename__ = "locations"
    __table_args__ = (
        db.UniqueConstraint("shelf_number", "slot_number", name="uq_locations_shelf_slot"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    shelf_number = db.Column(db.String(32), nullable=False)
    slot_number = db.Column(db.String(32), nullable=False)
    capacity = db.Column(db.Integer, nullable=True)
    is_active = db.Column("status", db.Boolean, nullable=False, default=True)

    @property
    def code(self) -> str:
        return f"{self.shelf_number}-{self.slot_number}"

    def __repr__(self) -> str:
        return f"<Location {self.code}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shelf_number": self.shelf_number,
            "slot_number": self.slot_number,
            "code": self.code,
            "capacity": self.capacity,
            "is_active": self.is_active,
        }


class Item(db.Model):
    """
    One serialized unit of a product.

    INVARIANTS:
    - product_id never changes after insert.
    - serial_id is never reused; rows are never deleted ('unavailable' retires a unit).
    - status only changes through item_service, via a conditional UPDATE keyed
      on the expected current status, alongside exactly one ledger row.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.Index("ix_items_inventory_status_serial", "inventory_id", "status", "serial_id"),
    )

    serial_id = db.Column(db.String(64), primary_key=True)
    product_id = db.Column("inventory_id", db.String(36), db.ForeignKey("inventory.id"), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=ItemStatus.AVAILABLE, index=True)
    location_id = db.Column(db.String(36), db.ForeignKey("locations.id"), nullable=True, index=True)
    price_id = db.Column(db.String(36), db.ForeignKey("price.id"), nullable=True)
    performed_by_user_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    product = db.relationship("Product", backref=db.backref("items", lazy=True))
    location = db.relationship("Location", backref=db.backref("items", lazy=True))
    price = db.relationship("Price")

    def __repr__(self) -> str:
        return f"<Item serial={self.serial_id!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "serial_id": self.serial_id,
            "product_id": self.product_id,
            "status": self.status,
            "location_id": self.location_id,
            "location": self.location.code if self.location else None,
            "price_id": self.price_id,
            "performed_by_user_id": self.performed_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
