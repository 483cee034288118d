from __future__ import annotations

import uuid

from ..extensions import db
from unitrack.time_utils import to_utc_z, utcnow


class Profile(db.Model):
    """
    Actor profile. Authentication lives upstream; this row provides the
    display name and role used for permission lookups and ledger enrichment.
    """
    __tablename__ = "profiles"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True, unique=True)
    role = db.Column(db.String(32), nullable=True, default="customer")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def display_name(self) -> str:
        return self.name or f"User {self.id[:8]}..."

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
        }


class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(64), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description}


class Permission(db.Model):
    """A (resource, action) pair, e.g. ("orders", "reject")."""
    __tablename__ = "permissions"
    __table_args__ = (
        db.UniqueConstraint("resource", "action", name="uq_permissions_resource_action"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    resource = db.Column(db.String(64), nullable=False)
    action = db.Column(db.String(64), nullable=False)
    description = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "resource": self.resource,
            "action": self.action,
            "description": self.description,
        }


class RolePermission(db.Model):
    __tablename__ = "role_permissions"

    role_id = db.Column(db.String(36), db.ForeignKey("roles.id"), primary_key=True)
    permission_id = db.Column(db.String(36), db.ForeignKey("permissions.id"), primary_key=True)

    role = db.relationship("Role", backref=db.backref("role_permissions", lazy=True))
    permission = db.relationship("Permission")
