from __future__ import annotations

import uuid

from ..extensions import db
from unitrack.time_utils import to_utc_z, utcnow


class OrderStatus:
    PENDING = "pending"
    DELIVERED = "delivered"
    REJECTED = "rejected"
    REFUNDED = "refunded"

    ALL = (PENDING, DELIVERED, REJECTED, REFUNDED)


class RefundStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Order(db.Model):
    """
    Customer order. Created together with its allocated items; status only
    moves through order_service / refund_service:

        pending -> delivered -> refunded
        pending -> rejected
    """
    __tablename__ = "orders"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_number = db.Column(db.String(64), nullable=False, unique=True)
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=OrderStatus.PENDING, index=True)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship("Profile", foreign_keys=[user_id])
    lines = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        order_by="OrderItem.item_serial",
    )

    def __repr__(self) -> str:
        return f"<Order {self.order_number} status={self.status}>"

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "status": self.status,
            "total_amount": str(self.total_amount),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class OrderItem(db.Model):
    """Binds one concrete serial to a sale price on an order."""
    __tablename__ = "order_items"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id"), nullable=False, index=True)
    item_serial = db.Column(db.String(64), db.ForeignKey("items.serial_id"), nullable=False, index=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)

    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "item_serial": self.item_serial,
            "price": str(self.price),
        }


class RefundRequest(db.Model):
    """Customer request to return a delivered order."""
    __tablename__ = "refund_requests"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id"), nullable=False, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    photo_url = db.Column(db.String(1024), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=RefundStatus.PENDING, index=True)

    admin_notes = db.Column(db.Text, nullable=True)
    reviewed_by = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    order = db.relationship("Order", backref=db.backref("refund_requests", lazy=True))
    requester = db.relationship("Profile", foreign_keys=[user_id])
    reviewer = db.relationship("Profile", foreign_keys=[reviewed_by])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "user_id": self.user_id,
            "description": self.description,
            "photo_url": self.photo_url,
            "status": self.status,
            "admin_notes": self.admin_notes,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": to_utc_z(self.reviewed_at),
            "created_at": to_utc_z(self.created_at),
        }
