"""
RBAC Policy

Roles form a closed set and each role maps to a fixed permission set.
``permissions_for`` is the only place that mapping is read; every permission
check in the API is a set-membership test against its result.

Roles:
- admin: Full access, including user management and deletions
- manager: Catalog maintenance, stock movements, analytics, audit logs
- pharmacist: Supply maintenance, stock movements, analytics
- nurse: Stock movements and alerts
- technician: Stock movements and inventory upkeep
- viewer: Read-only access
"""

from enum import Enum
from typing import Dict, FrozenSet


class Role(str, Enum):
    """User roles."""

    ADMIN = "admin"
    MANAGER = "manager"
    PHARMACIST = "pharmacist"
    NURSE = "nurse"
    TECHNICIAN = "technician"
    VIEWER = "viewer"


class Permission(str, Enum):
    """Available permissions in the system."""

    # Catalog
    CREATE_SUPPLIES = "create_supplies"
    UPDATE_SUPPLIES = "update_supplies"
    DELETE_SUPPLIES = "delete_supplies"
    CREATE_CATEGORIES = "create_categories"
    UPDATE_CATEGORIES = "update_categories"
    DELETE_CATEGORIES = "delete_categories"
    CREATE_SUPPLIERS = "create_suppliers"
    UPDATE_SUPPLIERS = "update_suppliers"
    DELETE_SUPPLIERS = "delete_suppliers"

    # Inventory
    STOCK_MOVEMENTS = "stock_movements"
    VIEW_SUPPLIES = "view_supplies"
    UPDATE_INVENTORY = "update_inventory"
    CREATE_ALERTS = "create_alerts"

    # Reporting
    VIEW_ANALYTICS = "view_analytics"
    VIEW_AUDIT_LOGS = "view_audit_logs"
    MANAGE_ORDERS = "manage_orders"

    # Administration
    MANAGE_USERS = "manage_users"
    SYSTEM_SETTINGS = "system_settings"


# Role to permissions mapping
ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.MANAGER: frozenset({
        Permission.CREATE_SUPPLIES, Permission.UPDATE_SUPPLIES,
        Permission.CREATE_CATEGORIES, Permission.UPDATE_CATEGORIES,
        Permission.CREATE_SUPPLIERS, Permission.UPDATE_SUPPLIERS,
        Permission.VIEW_ANALYTICS, Permission.MANAGE_ORDERS, Permission.VIEW_AUDIT_LOGS,
        Permission.STOCK_MOVEMENTS, Permission.CREATE_ALERTS, Permission.VIEW_SUPPLIES,
    }),
    Role.PHARMACIST: frozenset({
        Permission.CREATE_SUPPLIES, Permission.UPDATE_SUPPLIES,
        Permission.STOCK_MOVEMENTS, Permission.VIEW_ANALYTICS, Permission.MANAGE_ORDERS,
    }),
    Role.NURSE: frozenset({
        Permission.STOCK_MOVEMENTS, Permission.VIEW_SUPPLIES, Permission.CREATE_ALERTS,
    }),
    Role.TECHNICIAN: frozenset({
        Permission.STOCK_MOVEMENTS, Permission.VIEW_SUPPLIES, Permission.UPDATE_INVENTORY,
    }),
    Role.VIEWER: frozenset({
        Permission.VIEW_SUPPLIES, Permission.VIEW_ANALYTICS,
    }),
}


def permissions_for(role: Role) -> FrozenSet[Permission]:
    """Get the permission set of a role."""
    return ROLE_PERMISSIONS[Role(role)]


def permission_list(role: Role) -> list[str]:
    """Sorted permission names of a role, as stored on the role record."""
    return sorted(p.value for p in permissions_for(role))
