"""
Permission Constants and Definitions

Centralized (resource, action) definitions and default role grants.
Roles mirror the profile roles: admin, warehouse, customer, analyst.
"""

# =============================================================================
# PERMISSION DEFINITIONS
# =============================================================================

# Each permission is defined as: (resource, action, description)
PERMISSION_DEFINITIONS = [
    # INVENTORY
    ("inventory", "view", "View products, stock counts and shelf occupancy"),
    ("inventory", "create", "Add serialized stock to a product"),
    ("inventory", "update", "Change product prices"),

    # ITEMS
    ("items", "update", "Change the status of a serialized unit"),

    # LOCATIONS
    ("locations", "update", "Relocate a product's units to another slot"),

    # ORDERS
    ("orders", "create", "Place orders"),
    ("orders", "create_for_others", "Place orders on behalf of another customer"),
    ("orders", "approve", "Accept pending orders"),
    ("orders", "reject", "Reject pending orders"),

    # REFUNDS
    ("refunds", "create", "File refund requests against own orders"),
    ("refunds", "approve", "Approve refund requests"),
    ("refunds", "reject", "Reject refund requests"),

    # LEDGER
    ("transactions", "view", "View the item ledger"),
]


# =============================================================================
# DEFAULT ROLE PERMISSIONS
# =============================================================================

DEFAULT_ROLES = {
    "admin": "Full access",
    "warehouse": "Stock, fulfilment and refund handling",
    "customer": "Places orders and files refund requests",
    "analyst": "Read-only stock and ledger access",
}

DEFAULT_ROLE_PERMISSIONS = {
    "admin": [(resource, action) for resource, action, _ in PERMISSION_DEFINITIONS],

    "warehouse": [
        ("inventory", "view"),
        ("inventory", "create"),
        ("items", "update"),
        ("locations", "update"),
        ("orders", "create_for_others"),
        ("orders", "approve"),
        ("orders", "reject"),
        ("refunds", "approve"),
        ("refunds", "reject"),
        ("transactions", "view"),
    ],

    "customer": [
        ("orders", "create"),
        ("refunds", "create"),
    ],

    "analyst": [
        ("inventory", "view"),
        ("transactions", "view"),
    ],
}


def get_permission_definition(resource, action):
    """Get full definition for a (resource, action) pair."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == resource and perm[1] == action:
            return {"resource": perm[0], "action": perm[1], "description": perm[2]}
    return None
