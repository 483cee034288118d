"""
Ledger entry model.

INVARIANTS:
- Append-only. Rows are inserted by ledger_service.append_transaction inside
  the unit of work of the change they record, and are never updated or
  deleted through the ORM (listeners below raise LedgerImmutableError).
- Display data (actor name, customer) is not stored; it is joined at read time.
"""
from __future__ import annotations

import uuid

from sqlalchemy import event

from ..extensions import db
from ..errors import LedgerImmutableError
from unitrack.time_utils import to_utc_z, utcnow


class TransactionType:
    INVENTORY_ADDITION = "inventory_addition"
    SALE = "sale"
    STATUS_CHANGE = "status_change"
    LOCATION_CHANGE = "location_change"
    REFUND = "refund"
    REJECTION = "rejection"
    REPAIR = "repair"


class LedgerEntry(db.Model):
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_item_created", "item_serial", "created_at"),
        db.Index("ix_transactions_user_created", "user_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    item_serial = db.Column(db.String(64), db.ForeignKey("items.serial_id"), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=False)
    transaction_type = db.Column(db.String(32), nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id"), nullable=True, index=True)
    source_location_id = db.Column(db.String(36), db.ForeignKey("locations.id"), nullable=True)
    destination_location_id = db.Column(db.String(36), db.ForeignKey("locations.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<LedgerEntry {self.transaction_type} serial={self.item_serial!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_serial": self.item_serial,
            "user_id": self.user_id,
            "transaction_type": self.transaction_type,
            "notes": self.notes,
            "order_id": self.order_id,
            "source_location_id": self.source_location_id,
            "destination_location_id": self.destination_location_id,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(LedgerEntry, "before_update")
def prevent_ledger_update(mapper, connection, target):
    raise LedgerImmutableError(f"Ledger entries are immutable - cannot modify {target.id}")


@event.listens_for(LedgerEntry, "before_delete")
def prevent_ledger_delete(mapper, connection, target):
    raise LedgerImmutableError(f"Ledger entries are immutable - cannot delete {target.id}")
