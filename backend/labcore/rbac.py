from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Protocol, TypeVar
from uuid import UUID

from fastapi import Request

# purpose: single source of truth for role permissions and tenant scoped filtering
# status: active

SCOPE_ALL = "all"
SCOPE_OWN_TENANT = "own_tenant"
SCOPE_OWN_ONLY = "own_only"

# broader scopes rank higher when several entries match one check
_SCOPE_RANK: dict[str, int] = {
    SCOPE_OWN_ONLY: 10,
    SCOPE_OWN_TENANT: 20,
    SCOPE_ALL: 30,
}

MANAGE = "manage"

FACILITY_DIRECTOR = "facility_director"
LAB_MANAGER = "lab_manager"
PROJECT_MANAGER = "project_manager"
RESEARCHER = "researcher"
SUPPLIER = "supplier"

CATEGORY_FACILITY = "facility"
CATEGORY_TENANT = "tenant"
CATEGORY_EXTERNAL = "external"

ROLE_CATEGORIES: Mapping[str, str] = MappingProxyType(
    {
        FACILITY_DIRECTOR: CATEGORY_FACILITY,
        LAB_MANAGER: CATEGORY_FACILITY,
        PROJECT_MANAGER: CATEGORY_TENANT,
        RESEARCHER: CATEGORY_TENANT,
        SUPPLIER: CATEGORY_EXTERNAL,
    }
)


@dataclass(frozen=True)
class PermissionEntry:
    resource: str
    action: str
    scope: str


@dataclass(frozen=True)
class Principal:
    """The authenticated actor of a single request."""

    id: UUID
    company_id: UUID | None
    role: str
    role_category: str

    @classmethod
    def from_user(cls, user) -> "Principal":
        role = user.role or RESEARCHER
        return cls(
            id=user.id,
            company_id=user.company_id,
            role=role,
            role_category=ROLE_CATEGORIES.get(role, CATEGORY_EXTERNAL),
        )

    @property
    def is_facility(self) -> bool:
        return self.role_category == CATEGORY_FACILITY


def _entries(*rows: tuple[str, str, str]) -> tuple[PermissionEntry, ...]:
    return tuple(PermissionEntry(resource, action, scope) for resource, action, scope in rows)


ROLE_PERMISSIONS: Mapping[str, tuple[PermissionEntry, ...]] = MappingProxyType(
    {
        FACILITY_DIRECTOR: _entries(
            ("reservation", MANAGE, SCOPE_ALL),
            ("equipment", MANAGE, SCOPE_ALL),
            ("billing", MANAGE, SCOPE_ALL),
            ("users", MANAGE, SCOPE_ALL),
            ("projects", MANAGE, SCOPE_ALL),
            ("audit", "read", SCOPE_ALL),
            ("settings", MANAGE, SCOPE_ALL),
        ),
        # day to day operations; invoices and settings are read only, users cannot be deleted
        LAB_MANAGER: _entries(
            ("reservation", MANAGE, SCOPE_ALL),
            ("equipment", MANAGE, SCOPE_ALL),
            ("billing", "read", SCOPE_ALL),
            ("users", "create", SCOPE_ALL),
            ("users", "read", SCOPE_ALL),
            ("users", "update", SCOPE_ALL),
            ("projects", "read", SCOPE_ALL),
            ("audit", "read", SCOPE_ALL),
            ("settings", "read", SCOPE_ALL),
        ),
        PROJECT_MANAGER: _entries(
            ("reservation", MANAGE, SCOPE_OWN_TENANT),
            ("equipment", "read", SCOPE_ALL),
            ("billing", "read", SCOPE_OWN_TENANT),
            ("users", MANAGE, SCOPE_OWN_TENANT),
            ("projects", MANAGE, SCOPE_OWN_TENANT),
        ),
        RESEARCHER: _entries(
            ("reservation", MANAGE, SCOPE_OWN_ONLY),
            ("equipment", "read", SCOPE_ALL),
            ("projects", "read", SCOPE_OWN_TENANT),
        ),
        SUPPLIER: (),
    }
)


class ScopedItem(Protocol):
    user_id: UUID | None
    company_id: UUID | None


T = TypeVar("T", bound=ScopedItem)


class PermissionResolver:
    """Answer permission and scope questions from a static role table.

    Absence of a matching entry is a denial. ``manage`` subsumes every action
    on its resource kind.
    """

    def __init__(self, table: Mapping[str, Iterable[PermissionEntry]] = ROLE_PERMISSIONS) -> None:
        self._table: Mapping[str, tuple[PermissionEntry, ...]] = MappingProxyType(
            {role: tuple(entries) for role, entries in table.items()}
        )

    def _matching(self, role: str, resource: str, action: str) -> list[PermissionEntry]:
        return [
            entry
            for entry in self._table.get(role, ())
            if entry.resource == resource and entry.action in (action, MANAGE)
        ]

    def has_permission(self, role: str, resource: str, action: str) -> bool:
        return bool(self._matching(role, resource, action))

    def resolve_scope(self, role: str, resource: str, action: str) -> str | None:
        matches = self._matching(role, resource, action)
        if not matches:
            return None
        return max(matches, key=lambda entry: _SCOPE_RANK.get(entry.scope, 0)).scope

    def can_access(
        self,
        principal: Principal,
        resource: str,
        action: str,
        owner_id: UUID | None,
        tenant_id: UUID | None,
    ) -> bool:
        scope = self.resolve_scope(principal.role, resource, action)
        if scope == SCOPE_ALL:
            return True
        if scope == SCOPE_OWN_TENANT:
            return principal.company_id is not None and tenant_id == principal.company_id
        if scope == SCOPE_OWN_ONLY:
            return owner_id is not None and owner_id == principal.id
        return False

    def filter(
        self,
        principal: Principal,
        resource: str,
        action: str,
        items: Iterable[T],
    ) -> list[T]:
        """Return the subset of ``items`` visible to the principal."""

        scope = self.resolve_scope(principal.role, resource, action)
        if scope is None:
            return []
        if scope == SCOPE_ALL:
            return list(items)
        return [
            item
            for item in items
            if self.can_access(principal, resource, action, item.user_id, item.company_id)
        ]


def get_permission_resolver(request: Request) -> PermissionResolver:
    resolver = getattr(request.app.state, "permission_resolver", None)
    if resolver is None:
        resolver = PermissionResolver()
        request.app.state.permission_resolver = resolver
    return resolver
