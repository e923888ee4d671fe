"""System modules and the route prefixes they own."""
from typing import Dict, List, Optional, Tuple

CORE_MODULES = ("dashboard", "clients", "collaborators", "settings")

DEFAULT_MODULES: List[Dict] = [
    {"name": "dashboard", "title": "Dashboard", "is_core": True, "icon": "home", "order": 0, "route": "/", "category": "core"},
    {"name": "clients", "title": "Clients", "is_core": True, "icon": "users", "order": 1, "route": "/clients", "category": "crm", "permission": "clients.read"},
    {"name": "collaborators", "title": "Collaborators", "is_core": True, "icon": "id-card", "order": 2, "route": "/collaborators", "category": "core", "permission": "collaborators.read"},
    {"name": "tasks", "title": "Tasks", "icon": "check-square", "order": 3, "route": "/tasks", "category": "productivity", "permission": "tasks.read"},
    {"name": "helpdesk", "title": "Helpdesk", "icon": "life-buoy", "order": 4, "route": "/helpdesk", "category": "support", "permission": "helpdesk.view"},
    {"name": "service_orders", "title": "Service orders", "icon": "tool", "order": 5, "route": "/service-orders", "category": "erp", "permission": "service_orders.read"},
    {"name": "quotes", "title": "Quotes", "icon": "file-text", "order": 6, "route": "/quotes", "category": "erp", "permission": "quotes.read"},
    {"name": "purchases", "title": "Purchases", "icon": "shopping-cart", "order": 7, "route": "/purchases", "category": "erp", "permission": "purchases.read"},
    {"name": "webmail", "title": "Webmail", "icon": "mail", "order": 8, "route": "/email", "category": "communication", "permission": "email.read"},
    {"name": "whatsapp", "title": "WhatsApp", "icon": "message-circle", "order": 9, "route": "/whatsapp", "category": "communication", "permission": "whatsapp.read"},
    {"name": "settings", "title": "Settings", "is_core": True, "icon": "settings", "order": 10, "route": "/settings", "category": "core", "permission": "settings.read"},
]

ROUTE_MODULES: Tuple[Tuple[str, str], ...] = (
    ("/email", "webmail"),
    ("/helpdesk", "helpdesk"),
    ("/whatsapp", "whatsapp"),
    ("/recurrences", "tasks"),
    ("/tasks", "tasks"),
    ("/quotes", "quotes"),
    ("/service-orders", "service_orders"),
    ("/purchases", "purchases"),
    ("/cost-centers", "purchases"),
    ("/products", "purchases"),
)


def module_for_path(path: str) -> Optional[str]:
    for prefix, name in ROUTE_MODULES:
        if path == prefix or path.startswith(prefix + "/"):
            return name
    return None


def is_core(name: str) -> bool:
    return name in CORE_MODULES
