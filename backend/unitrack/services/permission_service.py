# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission collaborator.

The core asks one question before any mutation:
    has_permission(actor_id, resource, action) -> bool

The answer comes from app.config["PERMISSION_CHECKER"] when set (an external
RBAC service), otherwise from the local role tables:
    profiles.role -> roles.name -> role_permissions -> permissions(resource, action)

DESIGN PRINCIPLES:
- Fail closed: any exception from the checker is logged and treated as a denial.
- Actor identity is always an explicit argument; there is no ambient session user.
"""

from flask import current_app

from ..extensions import db
from ..errors import Unauthorized
from ..models import Permission, Profile, Role, RolePermission
from ..permissions import DEFAULT_ROLES, DEFAULT_ROLE_PERMISSIONS, PERMISSION_DEFINITIONS, get_permission_definition


def role_permission_checker(actor_id: str, resource: str, action: str) -> bool:
    """Built-in checker backed by the role tables."""
    profile = db.session.get(Profile, actor_id)
    if profile is None or not profile.role:
        return False

    match = (
        db.session.query(RolePermission)
        .join(Role, Role.id == RolePermission.role_id)
        .join(Permission, Permission.id == RolePermission.permission_id)
        .filter(
            Role.name == profile.role,
            Permission.resource == resource,
            Permission.action == action,
        )
        .first()
    )
    return match is not None


def has_permission(actor_id: str | None, resource: str, action: str) -> bool:
    if not actor_id:
        return False

    checker = current_app.config.get("PERMISSION_CHECKER") or role_permission_checker
    try:
        return bool(checker(actor_id, resource, action))
    except Exception:
        current_app.logger.exception(
            "Permission check failed for actor=%s resource=%s action=%s; denying",
            actor_id, resource, action,
        )
        db.session.rollback()
        return False


def require_permission(actor_id: str | None, resource: str, action: str) -> None:
    """
    Raise Unauthorized unless the actor may perform `action` on `resource`.

    Usage:
        require_permission(actor_id, "orders", "reject")
    """
    if not has_permission(actor_id, resource, action):
        current_app.logger.warning(
            "Permission denied: actor=%s resource=%s action=%s", actor_id, resource, action
        )
        definition = get_permission_definition(resource, action)
        required = f"{resource}:{action}"
        if definition:
            required = f"{required} ({definition['description']})"
        raise Unauthorized(f"Permission denied: {required}")


def get_actor_permissions(actor_id: str) -> list[tuple[str, str]]:
    """All (resource, action) pairs granted to the actor's role by the role tables."""
    profile = db.session.get(Profile, actor_id)
    if profile is None or not profile.role:
        return []

    rows = (
        db.session.query(Permission.resource, Permission.action)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(Role, Role.id == RolePermission.role_id)
        .filter(Role.name == profile.role)
        .order_by(Permission.resource, Permission.action)
        .all()
    )
    return [(resource, action) for resource, action in rows]


def create_default_roles() -> int:
    """Create the default roles. Idempotent."""
    created_count = 0
    for name, description in DEFAULT_ROLES.items():
        if not db.session.query(Role).filter_by(name=name).first():
            db.session.add(Role(name=name, description=description))
            created_count += 1
    db.session.commit()
    return created_count


def initialize_permissions() -> int:
    """
    Create Permission records for every entry in PERMISSION_DEFINITIONS.
    Idempotent: Safe to run multiple times.
    """
    created_count = 0

    for resource, action, description in PERMISSION_DEFINITIONS:
        existing = db.session.query(Permission).filter_by(resource=resource, action=action).first()
        if not existing:
            db.session.add(Permission(resource=resource, action=action, description=description))
            created_count += 1

    db.session.commit()
    return created_count


def assign_default_role_permissions() -> int:
    """
    Link roles to their DEFAULT_ROLE_PERMISSIONS grants.
    Idempotent: Safe to run multiple times (skips existing).
    """
    created_count = 0

    for role_name, grants in DEFAULT_ROLE_PERMISSIONS.items():
        role = db.session.query(Role).filter_by(name=role_name).first()
        if not role:
            continue  # Role doesn't exist, skip

        for resource, action in grants:
            permission = db.session.query(Permission).filter_by(resource=resource, action=action).first()
            if not permission:
                continue

            existing = db.session.query(RolePermission).filter_by(
                role_id=role.id,
                permission_id=permission.id,
            ).first()
            if not existing:
                db.session.add(RolePermission(role_id=role.id, permission_id=permission.id))
                created_count += 1

    db.session.commit()
    return created_count
