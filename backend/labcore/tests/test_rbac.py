import uuid
from types import SimpleNamespace

import pytest

from labcore.rbac import (
    ROLE_PERMISSIONS,
    SCOPE_ALL,
    SCOPE_OWN_ONLY,
    SCOPE_OWN_TENANT,
    PermissionEntry,
    PermissionResolver,
    Principal,
)

T1 = uuid.uuid4()
T2 = uuid.uuid4()


def principal(role, company_id=T1, user_id=None):
    user = SimpleNamespace(id=user_id or uuid.uuid4(), company_id=company_id, role=role)
    return Principal.from_user(user)


def item(user_id, company_id):
    return SimpleNamespace(user_id=user_id, company_id=company_id)


@pytest.fixture
def resolver():
    return PermissionResolver()


def test_manage_subsumes_every_action(resolver):
    for action in ("create", "read", "update", "cancel", "delete"):
        assert resolver.has_permission("researcher", "reservation", action)
        assert resolver.resolve_scope("researcher", "reservation", action) == SCOPE_OWN_ONLY


def test_absent_entry_is_denied(resolver):
    assert not resolver.has_permission("researcher", "billing", "read")
    assert resolver.resolve_scope("researcher", "billing", "read") is None
    assert not resolver.has_permission("lab_manager", "settings", "update")
    assert not resolver.has_permission("unknown_role", "equipment", "read")


def test_supplier_has_no_permissions(resolver):
    assert ROLE_PERMISSIONS["supplier"] == ()
    for resource in ("reservation", "equipment", "billing", "users", "projects", "audit", "settings"):
        assert not resolver.has_permission("supplier", resource, "read")


def test_role_categories():
    assert principal("facility_director").is_facility
    assert principal("lab_manager").is_facility
    assert principal("project_manager").role_category == "tenant"
    assert principal("supplier").role_category == "external"


def test_lab_manager_reads_but_does_not_manage_billing(resolver):
    assert resolver.resolve_scope("lab_manager", "billing", "read") == SCOPE_ALL
    assert not resolver.has_permission("lab_manager", "billing", "update")
    assert not resolver.has_permission("lab_manager", "users", "delete")


def test_broadest_matching_scope_wins():
    table = {
        "mixed": (
            PermissionEntry("reservation", "read", SCOPE_OWN_ONLY),
            PermissionEntry("reservation", "manage", SCOPE_OWN_TENANT),
        )
    }
    resolver = PermissionResolver(table)
    assert resolver.resolve_scope("mixed", "reservation", "read") == SCOPE_OWN_TENANT
    assert resolver.resolve_scope("mixed", "reservation", "cancel") == SCOPE_OWN_TENANT


def test_can_access_by_scope(resolver):
    researcher = principal("researcher")
    assert resolver.can_access(researcher, "reservation", "read", researcher.id, T1)
    assert not resolver.can_access(researcher, "reservation", "read", uuid.uuid4(), T1)

    manager = principal("project_manager")
    assert resolver.can_access(manager, "reservation", "cancel", uuid.uuid4(), T1)
    assert not resolver.can_access(manager, "reservation", "cancel", uuid.uuid4(), T2)

    tenantless = principal("project_manager", company_id=None)
    assert not resolver.can_access(tenantless, "reservation", "read", uuid.uuid4(), None)

    director = principal("facility_director")
    assert resolver.can_access(director, "reservation", "read", uuid.uuid4(), T2)


def test_filter_by_scope_over_two_tenants(resolver):
    owner = uuid.uuid4()
    items = [item(owner, T1), item(uuid.uuid4(), T1), item(uuid.uuid4(), T2)]

    assert resolver.filter(principal("researcher", T1, owner), "reservation", "read", items) == [items[0]]
    assert resolver.filter(principal("project_manager", T1), "reservation", "read", items) == items[:2]
    assert resolver.filter(principal("lab_manager", T1), "reservation", "read", items) == items
    assert resolver.filter(principal("supplier", T1), "reservation", "read", items) == []


def test_filter_without_entry_returns_empty(resolver):
    items = [item(uuid.uuid4(), T1)]
    assert resolver.filter(principal("researcher"), "billing", "read", items) == []
