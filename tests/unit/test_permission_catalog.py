import pytest

from bizhub.utils import module_catalog, permission_catalog as pc


def test_vocabulary_contains_crud_and_helpdesk_permissions():
    assert "admin" in pc.ALL_PERMISSIONS
    assert "system.admin" in pc.ALL_PERMISSIONS
    assert "clients.read" in pc.ALL_PERMISSIONS
    assert "logs.delete" in pc.ALL_PERMISSIONS
    assert "helpdesk.view" in pc.ALL_PERMISSIONS
    assert len(pc.ALL_PERMISSIONS) == len(set(pc.ALL_PERMISSIONS))
    assert pc.is_known("tasks.write")
    assert not pc.is_known("tasks.fly")


def test_split_and_describe():
    assert pc.split_name("service_orders.read") == ("service_orders", "read")
    assert pc.split_name("admin") == ("admin", "all")
    assert pc.describe("admin") == "Full access"
    assert pc.describe("service_orders.write") == "Create and edit service orders"
    assert pc.describe("helpdesk.view") == "View helpdesk"


def test_has_permission_rules():
    assert pc.has_permission({"admin"}, "clients.delete")
    assert pc.has_permission({"system.admin"}, "anything.read")
    assert pc.has_permission({"clients.read"}, "clients.read")
    assert pc.has_permission({"clients.write"}, "clients.read")
    assert not pc.has_permission({"clients.read"}, "clients.write")
    assert not pc.has_permission({"clients.write"}, "clients.delete")
    assert not pc.has_permission(set(), "clients.read")
    assert pc.has_any({"tasks.read"}, ["clients.read", "tasks.read"])
    assert pc.is_admin(["admin"]) and not pc.is_admin(["clients.read"])


@pytest.mark.parametrize(
    "method,path,expected",
    [
        ("GET", "/clients", "clients.read"),
        ("POST", "/clients", "clients.write"),
        ("DELETE", "/clients/123", "clients.delete"),
        ("PUT", "/tasks/1", "tasks.write"),
        ("GET", "/recurrences/stats", "tasks.read"),
        ("GET", "/helpdesk/tickets", "helpdesk.view"),
        ("POST", "/helpdesk/tickets", "helpdesk.manage"),
        ("GET", "/api-keys", "admin"),
        ("POST", "/webhooks/1/test", "admin"),
        ("GET", "/cost-centers", "purchases.read"),
        ("GET", "/health", None),
        ("GET", "/clientsX", None),
    ],
)
def test_required_permission_for_routes(method, path, expected):
    assert pc.required_permission(method, path) == expected


def test_module_for_path():
    assert module_catalog.module_for_path("/email/messages") == "webmail"
    assert module_catalog.module_for_path("/recurrences") == "tasks"
    assert module_catalog.module_for_path("/clients") is None
    assert module_catalog.is_core("settings")
    assert not module_catalog.is_core("helpdesk")
    names = [m["name"] for m in module_catalog.DEFAULT_MODULES]
    assert len(names) == len(set(names))
