"""
Permission vocabulary shared by profiles and API keys.

Names are `<resource>.<action>`; `admin` and `system.admin` grant everything.
A `.read` requirement is also satisfied by `.write` on the same resource.
"""
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

PERMISSION_ADMIN = "admin"
PERMISSION_SYSTEM_ADMIN = "system.admin"
ADMIN_PERMISSIONS: FrozenSet[str] = frozenset({PERMISSION_ADMIN, PERMISSION_SYSTEM_ADMIN})

CRUD_RESOURCES: Tuple[str, ...] = (
    "clients",
    "collaborators",
    "users",
    "permissions",
    "tasks",
    "purchases",
    "service_orders",
    "quotes",
    "email",
    "whatsapp",
    "settings",
    "logs",
)
CRUD_ACTIONS: Tuple[str, ...] = ("read", "write", "delete")

HELPDESK_VIEW = "helpdesk.view"
HELPDESK_MANAGE = "helpdesk.manage"

DESCRIPTIONS: Dict[str, str] = {
    "read": "View {resource}",
    "write": "Create and edit {resource}",
    "delete": "Delete {resource}",
}


def _build_vocabulary() -> List[str]:
    names = [PERMISSION_ADMIN, PERMISSION_SYSTEM_ADMIN]
    for resource in CRUD_RESOURCES:
        for action in CRUD_ACTIONS:
            names.append(f"{resource}.{action}")
    names.extend([HELPDESK_VIEW, HELPDESK_MANAGE])
    return names


ALL_PERMISSIONS: Tuple[str, ...] = tuple(_build_vocabulary())
_ALL_SET: FrozenSet[str] = frozenset(ALL_PERMISSIONS)


def is_known(name: str) -> bool:
    return name in _ALL_SET


def split_name(name: str) -> Tuple[str, str]:
    """Split `clients.read` into ("clients", "read"); bare names map to ("<name>", "all")."""
    if "." in name:
        resource, action = name.split(".", 1)
        return resource, action
    return name, "all"


def describe(name: str) -> str:
    resource, action = split_name(name)
    if name in ADMIN_PERMISSIONS:
        return "Full access"
    template = DESCRIPTIONS.get(action)
    if template:
        return template.format(resource=resource.replace("_", " "))
    return f"{action.capitalize()} {resource}"


def is_admin(granted: Iterable[str]) -> bool:
    return bool(ADMIN_PERMISSIONS.intersection(granted or ()))


def has_permission(granted: Iterable[str], required: str) -> bool:
    granted_set = set(granted or ())
    if ADMIN_PERMISSIONS.intersection(granted_set):
        return True
    if required in granted_set:
        return True
    resource, action = split_name(required)
    if action == "read" and f"{resource}.write" in granted_set:
        return True
    return False


def has_any(granted: Iterable[str], required: Iterable[str]) -> bool:
    return any(has_permission(granted, r) for r in required)


# Route prefix to resource. Order matters: longest prefixes first.
ENDPOINT_RESOURCES: Tuple[Tuple[str, str], ...] = (
    ("/api-keys", PERMISSION_ADMIN),
    ("/webhooks", PERMISSION_ADMIN),
    ("/audits", PERMISSION_ADMIN),
    ("/clients", "clients"),
    ("/collaborators", "collaborators"),
    ("/groups", "collaborators"),
    ("/users", "users"),
    ("/permissions", "permissions"),
    ("/profiles", "permissions"),
    ("/recurrences", "tasks"),
    ("/tasks", "tasks"),
    ("/helpdesk", "helpdesk"),
    ("/purchases", "purchases"),
    ("/cost-centers", "purchases"),
    ("/products", "purchases"),
    ("/service-orders", "service_orders"),
    ("/quotes", "quotes"),
    ("/email", "email"),
    ("/whatsapp", "whatsapp"),
    ("/settings", "settings"),
    ("/modules", "settings"),
    ("/logs", "logs"),
)

_METHOD_ACTIONS = {
    "GET": "read",
    "HEAD": "read",
    "POST": "write",
    "PUT": "write",
    "PATCH": "write",
    "DELETE": "delete",
}


def required_permission(method: str, path: str) -> Optional[str]:
    """Return the permission an API key needs for `method path`, or None if unmapped."""
    for prefix, resource in ENDPOINT_RESOURCES:
        if path == prefix or path.startswith(prefix + "/"):
            if resource == PERMISSION_ADMIN:
                return PERMISSION_ADMIN
            action = _METHOD_ACTIONS.get(method.upper(), "read")
            if resource == "helpdesk":
                return HELPDESK_VIEW if action == "read" else HELPDESK_MANAGE
            return f"{resource}.{action}"
    return None
