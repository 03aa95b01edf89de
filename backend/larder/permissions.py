"""
Role and permission definitions.

Roles are a fixed set; the mapping below is the single source of truth for
what each role may do through the API. Services additionally gate a few
sensitive operations on role (see ELEVATED_ROLES).
"""

# =============================================================================
# ROLES
# =============================================================================

ADMIN = "ADMIN"
MANAGER = "MANAGER"
STAFF = "STAFF"

ROLES = (ADMIN, MANAGER, STAFF)

# Roles allowed to create/submit/approve purchase orders and edit items
ELEVATED_ROLES = frozenset({ADMIN, MANAGER})


# =============================================================================
# PERMISSION CODES
# =============================================================================

PERMISSIONS = (
    "inventory:read",
    "inventory:create",
    "inventory:update",
    "inventory:delete",
    "inventory:adjust_stock",
    "suppliers:read",
    "suppliers:create",
    "suppliers:update",
    "suppliers:delete",
    "orders:read",
    "orders:create",
    "orders:approve",
    "orders:receive",
    "waste:read",
    "waste:create",
    "locations:manage",
    "users:manage",
)


# =============================================================================
# DEFAULT ROLE MAPPINGS
# =============================================================================

_MANAGER_EXCLUDED = {
    "inventory:delete",
    "suppliers:delete",
    "locations:manage",
    "users:manage",
}

ROLE_PERMISSIONS = {
    ADMIN: frozenset(PERMISSIONS),
    MANAGER: frozenset(p for p in PERMISSIONS if p not in _MANAGER_EXCLUDED),
    STAFF: frozenset({
        "inventory:read",
        "inventory:adjust_stock",
        "suppliers:read",
        "orders:read",
        "orders:receive",
        "waste:read",
        "waste:create",
    }),
}


def has_permission(role: str, permission_code: str) -> bool:
    return permission_code in ROLE_PERMISSIONS.get(role, frozenset())


def is_elevated(role: str) -> bool:
    return role in ELEVATED_ROLES
