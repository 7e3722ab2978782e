"""
Permission System Constants and Role Mapping

Every route names the permission it needs; ROLE_PERMISSIONS is the single
place that decides which roles hold it. authorize() is the one check used
by the decorators before the sale engine or the reports run.
"""

from .errors import UnauthorizedError


class PermissionCategory:
    """Permission categories for organization."""
    SALES = "SALES"
    REPORTS = "REPORTS"
    INVENTORY = "INVENTORY"


# Each permission is defined as: (code, name, description, category)
PERMISSION_DEFINITIONS = [
    (
        "CREATE_SALE",
        "Create Sale",
        "Ring up a sale and decrement stock",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_SALES",
        "View Sales",
        "List sales and open a single sale or receipt",
        PermissionCategory.SALES,
    ),
    (
        "VOID_SALE",
        "Void Sale",
        "Void a sale and restore its stock (also needs the supervisor code)",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_REPORTS",
        "View Reports",
        "Sales, inventory, top products and revenue trend reports",
        PermissionCategory.REPORTS,
    ),
    (
        "VIEW_PRODUCTS",
        "View Products",
        "List products, stock levels and pricing history",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create, edit, reprice and archive products",
        PermissionCategory.INVENTORY,
    ),
    (
        "RECORD_DELIVERY",
        "Record Delivery",
        "Record supplier deliveries (stock additions)",
        PermissionCategory.INVENTORY,
    ),
]

PERMISSION_CODES = {code for code, _, _, _ in PERMISSION_DEFINITIONS}


ROLE_PERMISSIONS: dict[str, set[str]] = {
    "admin": set(PERMISSION_CODES),
    "staff": {
        "CREATE_SALE",
        "VIEW_SALES",
        "VOID_SALE",
        "VIEW_PRODUCTS",
    },
    "supplier": {
        "CREATE_SALE",
        "VIEW_SALES",
        "VIEW_PRODUCTS",
        "RECORD_DELIVERY",
    },
}


def get_role_permissions(role: str) -> set[str]:
    return ROLE_PERMISSIONS.get(role, set())


def has_permission(user, permission_code: str) -> bool:
    if user is None or not user.is_active:
        return False
    return permission_code in get_role_permissions(user.role)


def authorize(user, permission_code: str) -> None:
    """Raise UnauthorizedError unless user's role holds permission_code."""
    if permission_code not in PERMISSION_CODES:
        raise ValueError(f"Unknown permission: {permission_code}")
    if not has_permission(user, permission_code):
        raise UnauthorizedError(
            f"Permission denied: {permission_code}",
            details={"required_permission": permission_code, "role": getattr(user, "role", None)},
        )
