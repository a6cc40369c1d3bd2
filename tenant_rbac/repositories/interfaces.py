"""
Repository contracts.

Each entity family has one Protocol, implemented once per backend
(``repositories.postgres`` and ``repositories.sqlite``) with identical
behaviour. Every tenant-scoped operation takes ``org_id`` explicitly, even on
the row-security backend, so call sites do not depend on the backend.

All operations return a ``Result``. Reads of a missing entity return
``Success(None)``; store errors come back as ``Failure`` with a normalized
``RepositoryError``.
"""
from dataclasses import dataclass
from typing import List, Optional, Protocol

from tenant_rbac.core.result import Result
from tenant_rbac.core.schemas import Connection, PaginationInput, Property, PropertyInput
from tenant_rbac.features.organizations.schemas import (
    CreateOrganizationInput,
    Organization,
    OrganizationFilter,
    UpdateOrganizationInput,
)
from tenant_rbac.features.permissions.schemas import (
    EffectivePermission,
    PermissionsByResource,
    RolePermission,
    UserPermission,
)
from tenant_rbac.features.resources.schemas import (
    CreateResourceInput,
    Resource,
    ResourceFilter,
    UpdateResourceInput,
)
from tenant_rbac.features.roles.schemas import CreateRoleInput, Role, RoleFilter, UpdateRoleInput
from tenant_rbac.features.users.schemas import CreateUserInput, UpdateUserInput, User, UserFilter


class OrganizationRepository(Protocol):
    """Organizations are global; ``org_id`` here is the organization's own id."""

    async def create(self, input: CreateOrganizationInput) -> Result[Organization]: ...

    async def get_by_id(self, org_id: str) -> Result[Optional[Organization]]: ...

    async def list(
        self,
        filter: Optional[OrganizationFilter] = None,
        pagination: Optional[PaginationInput] = None,
    ) -> Result[Connection[Organization]]: ...

    async def update(self, org_id: str, input: UpdateOrganizationInput) -> Result[Organization]: ...

    async def delete(self, org_id: str) -> Result[bool]: ...

    async def get_properties(self, org_id: str, include_hidden: bool = True) -> Result[List[Property]]: ...

    async def get_property(self, org_id: str, name: str) -> Result[Optional[Property]]: ...

    async def set_property(self, org_id: str, property: PropertyInput) -> Result[Property]: ...

    async def delete_property(self, org_id: str, name: str) -> Result[bool]: ...


class UserRepository(Protocol):

    async def create(self, org_id: str, input: CreateUserInput) -> Result[User]: ...

    async def get_by_id(self, org_id: str, user_id: str) -> Result[Optional[User]]: ...

    async def get_by_identity(
        self, org_id: str, identity_provider: str, identity_provider_user_id: str
    ) -> Result[Optional[User]]: ...

    async def list_by_identity(
        self, identity_provider: str, identity_provider_user_id: str
    ) -> Result[List[User]]: ...

    async def list(
        self,
        org_id: str,
        filter: Optional[UserFilter] = None,
        pagination: Optional[PaginationInput] = None,
    ) -> Result[Connection[User]]: ...

    async def list_by_org(self, org_id: str, pagination: Optional[PaginationInput] = None) -> Result[Connection[User]]: ...

    async def update(self, org_id: str, user_id: str, input: UpdateUserInput) -> Result[User]: ...

    async def delete(self, org_id: str, user_id: str) -> Result[bool]: ...

    async def assign_role(self, org_id: str, user_id: str, role_id: str) -> Result[None]: ...

    async def unassign_role(self, org_id: str, user_id: str, role_id: str) -> Result[None]: ...

    async def get_role_ids(self, org_id: str, user_id: str) -> Result[List[str]]: ...

    async def get_properties(self, org_id: str, user_id: str, include_hidden: bool = True) -> Result[List[Property]]: ...

    async def get_property(self, org_id: str, user_id: str, name: str) -> Result[Optional[Property]]: ...

    async def set_property(self, org_id: str, user_id: str, property: PropertyInput) -> Result[Property]: ...

    async def delete_property(self, org_id: str, user_id: str, name: str) -> Result[bool]: ...


class RoleRepository(Protocol):

    async def create(self, org_id: str, input: CreateRoleInput) -> Result[Role]: ...

    async def get_by_id(self, org_id: str, role_id: str) -> Result[Optional[Role]]: ...

    async def list(
        self,
        org_id: str,
        filter: Optional[RoleFilter] = None,
        pagination: Optional[PaginationInput] = None,
    ) -> Result[Connection[Role]]: ...

    async def list_by_org(self, org_id: str, pagination: Optional[PaginationInput] = None) -> Result[Connection[Role]]: ...

    async def update(self, org_id: str, role_id: str, input: UpdateRoleInput) -> Result[Role]: ...

    async def delete(self, org_id: str, role_id: str) -> Result[bool]: ...

    async def get_user_ids(self, org_id: str, role_id: str) -> Result[List[str]]: ...

    async def get_properties(self, org_id: str, role_id: str, include_hidden: bool = True) -> Result[List[Property]]: ...

    async def get_property(self, org_id: str, role_id: str, name: str) -> Result[Optional[Property]]: ...

    async def set_property(self, org_id: str, role_id: str, property: PropertyInput) -> Result[Property]: ...

    async def delete_property(self, org_id: str, role_id: str, name: str) -> Result[bool]: ...


class ResourceRepository(Protocol):

    async def create(self, org_id: str, input: CreateResourceInput) -> Result[Resource]: ...

    async def get_by_id(self, org_id: str, resource_id: str) -> Result[Optional[Resource]]: ...

    async def list(
        self,
        org_id: str,
        filter: Optional[ResourceFilter] = None,
        pagination: Optional[PaginationInput] = None,
    ) -> Result[Connection[Resource]]: ...

    async def list_by_org(
        self, org_id: str, pagination: Optional[PaginationInput] = None
    ) -> Result[Connection[Resource]]: ...

    async def list_by_id_prefix(self, org_id: str, id_prefix: str) -> Result[List[Resource]]: ...

    async def update(self, org_id: str, resource_id: str, input: UpdateResourceInput) -> Result[Resource]: ...

    async def delete(self, org_id: str, resource_id: str) -> Result[bool]: ...

    async def delete_by_id_prefix(self, org_id: str, id_prefix: str) -> Result[int]: ...


class PermissionRepository(Protocol):

    async def grant_user_permission(
        self, org_id: str, user_id: str, resource_id: str, action: str
    ) -> Result[UserPermission]: ...

    async def revoke_user_permission(
        self, org_id: str, user_id: str, resource_id: str, action: str
    ) -> Result[bool]: ...

    async def get_user_permissions(self, org_id: str, user_id: str) -> Result[List[UserPermission]]: ...

    async def grant_role_permission(
        self, org_id: str, role_id: str, resource_id: str, action: str
    ) -> Result[RolePermission]: ...

    async def revoke_role_permission(
        self, org_id: str, role_id: str, resource_id: str, action: str
    ) -> Result[bool]: ...

    async def get_role_permissions(self, org_id: str, role_id: str) -> Result[List[RolePermission]]: ...

    async def get_permissions_by_resource(self, org_id: str, resource_id: str) -> Result[PermissionsByResource]: ...

    async def get_effective_permissions(
        self,
        org_id: str,
        user_id: str,
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Result[List[EffectivePermission]]: ...

    async def has_permission(self, org_id: str, user_id: str, resource_id: str, action: str) -> Result[bool]: ...

    async def get_effective_permissions_by_prefix(
        self,
        org_id: str,
        user_id: str,
        resource_id_prefix: str,
        action: Optional[str] = None,
    ) -> Result[List[EffectivePermission]]: ...


@dataclass(frozen=True)
class Repositories:
    """One repository per entity family, all bound to the same database context."""
    organization: OrganizationRepository
    user: UserRepository
    role: RoleRepository
    resource: ResourceRepository
    permission: PermissionRepository
