"""
Permission repository, PostgreSQL backend.

Effective permissions are the union of a user's direct grants and the grants
of every role the user holds. Resource and action matching run inside the
query (see ``postgres.sql``), following the rules in
``features.permissions.matching``.
"""
from typing import List, Optional
from sqlalchemy import String, Table, and_, delete, literal_column, or_, select, union_all

from tenant_rbac.core.database.base import utcnow
from tenant_rbac.core.database.interface import Database
from tenant_rbac.core.result import Result, Success
from tenant_rbac.features.permissions.models import role_permissions, user_permissions
from tenant_rbac.features.permissions.schemas import (
    EffectivePermission,
    PermissionsByResource,
    RolePermission,
    UserPermission,
)
from tenant_rbac.features.roles.models import user_roles
from tenant_rbac.repositories.common import fail, guard_org
from tenant_rbac.repositories.postgres.sql import action_matches, insert, resource_matches, within_subtree
from tenant_rbac.utils import get_logger


log = get_logger(__name__)

ENTITY = "permission"


def _user_grants(org_id: str, user_id: str):
    return (
        select(
            user_permissions.c.resource_id,
            user_permissions.c.action,
            literal_column("'user'", String).label("source"),
            user_permissions.c.user_id.label("source_id"),
            user_permissions.c.created_at,
        )
        .where(user_permissions.c.org_id == org_id, user_permissions.c.user_id == user_id)
    )


def _role_grants(org_id: str, user_id: str):
    return (
        select(
            role_permissions.c.resource_id,
            role_permissions.c.action,
            literal_column("'role'", String).label("source"),
            role_permissions.c.role_id.label("source_id"),
            role_permissions.c.created_at,
        )
        .select_from(
            role_permissions.join(
                user_roles,
                and_(
                    user_roles.c.role_id == role_permissions.c.role_id,
                    user_roles.c.org_id == role_permissions.c.org_id,
                ),
            )
        )
        .where(user_roles.c.org_id == org_id, user_roles.c.user_id == user_id)
    )


def _grant_filters(table: Table, resource_id: Optional[str], action: Optional[str], prefix: Optional[str] = None):
    clauses = []
    if resource_id is not None:
        clauses.append(resource_matches(table.c.resource_id, resource_id))
    if prefix is not None:
        clauses.append(within_subtree(table.c.resource_id, prefix))
    if action is not None:
        clauses.append(action_matches(table.c.action, action))
    return clauses


class PostgresPermissionRepository:

    def __init__(self, db: Database):
        self.db = db

    async def _grant(self, table: Table, principal: str, principal_id: str, org_id: str, resource_id: str, action: str):
        statement = insert(table).values(
            **{principal: principal_id},
            org_id=org_id,
            resource_id=resource_id,
            action=action,
            created_at=utcnow(),
        )
        statement = statement.on_conflict_do_update(
            index_elements=list(table.primary_key.columns),
            set_={"created_at": statement.excluded.created_at},
        )
        return await self.db.one(statement.returning(*table.c))

    async def _revoke(self, table: Table, principal: str, principal_id: str, org_id: str, resource_id: str, action: str) -> bool:
        deleted = await self.db.result(
            delete(table).where(
                table.c[principal] == principal_id,
                table.c.org_id == org_id,
                table.c.resource_id == resource_id,
                table.c.action == action,
            )
        )
        return deleted > 0

    async def grant_user_permission(
        self, org_id: str, user_id: str, resource_id: str, action: str
    ) -> Result[UserPermission]:
        """Grant ``action`` on ``resource_id`` to a user. Re-granting refreshes created_at."""
        guard_org(self.db, org_id)
        try:
            row = await self._grant(user_permissions, "user_id", user_id, org_id, resource_id, action)
            return Success(UserPermission.model_validate(dict(row)))
        except Exception as exc:
            return fail(
                log, "Failed to grant user permission", exc, ENTITY,
                org_id=org_id, user_id=user_id, resource_id=resource_id, action=action,
            )

    async def revoke_user_permission(
        self, org_id: str, user_id: str, resource_id: str, action: str
    ) -> Result[bool]:
        guard_org(self.db, org_id)
        try:
            return Success(await self._revoke(user_permissions, "user_id", user_id, org_id, resource_id, action))
        except Exception as exc:
            return fail(
                log, "Failed to revoke user permission", exc, ENTITY,
                org_id=org_id, user_id=user_id, resource_id=resource_id, action=action,
            )

    async def get_user_permissions(self, org_id: str, user_id: str) -> Result[List[UserPermission]]:
        guard_org(self.db, org_id)
        try:
            rows = await self.db.many_or_none(
                select(user_permissions)
                .where(user_permissions.c.org_id == org_id, user_permissions.c.user_id == user_id)
                .order_by(user_permissions.c.resource_id, user_permissions.c.action)
            )
            return Success([UserPermission.model_validate(dict(row)) for row in rows])
        except Exception as exc:
            return fail(log, "Failed to get user permissions", exc, ENTITY, org_id=org_id, user_id=user_id)

    async def grant_role_permission(
        self, org_id: str, role_id: str, resource_id: str, action: str
    ) -> Result[RolePermission]:
        """Grant ``action`` on ``resource_id`` to a role. Re-granting refreshes created_at."""
        guard_org(self.db, org_id)
        try:
            row = await self._grant(role_permissions, "role_id", role_id, org_id, resource_id, action)
            return Success(RolePermission.model_validate(dict(row)))
        except Exception as exc:
            return fail(
                log, "Failed to grant role permission", exc, ENTITY,
                org_id=org_id, role_id=role_id, resource_id=resource_id, action=action,
            )

    async def revoke_role_permission(
        self, org_id: str, role_id: str, resource_id: str, action: str
    ) -> Result[bool]:
        guard_org(self.db, org_id)
        try:
            return Success(await self._revoke(role_permissions, "role_id", role_id, org_id, resource_id, action))
        except Exception as exc:
            return fail(
                log, "Failed to revoke role permission", exc, ENTITY,
                org_id=org_id, role_id=role_id, resource_id=resource_id, action=action,
            )

    async def get_role_permissions(self, org_id: str, role_id: str) -> Result[List[RolePermission]]:
        guard_org(self.db, org_id)
        try:
            rows = await self.db.many_or_none(
                select(role_permissions)
                .where(role_permissions.c.org_id == org_id, role_permissions.c.role_id == role_id)
                .order_by(role_permissions.c.resource_id, role_permissions.c.action)
            )
            return Success([RolePermission.model_validate(dict(row)) for row in rows])
        except Exception as exc:
            return fail(log, "Failed to get role permissions", exc, ENTITY, org_id=org_id, role_id=role_id)

    async def get_permissions_by_resource(self, org_id: str, resource_id: str) -> Result[PermissionsByResource]:
        """Grants stored on exactly ``resource_id``. Wildcards are not resolved."""
        guard_org(self.db, org_id)
        try:
            user_rows = await self.db.many_or_none(
                select(user_permissions)
                .where(user_permissions.c.org_id == org_id, user_permissions.c.resource_id == resource_id)
                .order_by(user_permissions.c.user_id, user_permissions.c.action)
            )
            role_rows = await self.db.many_or_none(
                select(role_permissions)
                .where(role_permissions.c.org_id == org_id, role_permissions.c.resource_id == resource_id)
                .order_by(role_permissions.c.role_id, role_permissions.c.action)
            )
            return Success(PermissionsByResource(
                user_permissions=[UserPermission.model_validate(dict(row)) for row in user_rows],
                role_permissions=[RolePermission.model_validate(dict(row)) for row in role_rows],
            ))
        except Exception as exc:
            return fail(log, "Failed to get permissions by resource", exc, ENTITY, org_id=org_id, resource_id=resource_id)

    async def _effective(
        self,
        org_id: str,
        user_id: str,
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
        prefix: Optional[str] = None,
    ) -> List[EffectivePermission]:
        direct = _user_grants(org_id, user_id).where(
            *_grant_filters(user_permissions, resource_id, action, prefix)
        )
        inherited = _role_grants(org_id, user_id).where(
            *_grant_filters(role_permissions, resource_id, action, prefix)
        )
        grants = union_all(direct, inherited).subquery()
        rows = await self.db.many_or_none(
            select(grants).order_by(
                grants.c.source.desc(), grants.c.source_id, grants.c.resource_id, grants.c.action
            )
        )
        return [EffectivePermission.model_validate(dict(row)) for row in rows]

    async def get_effective_permissions(
        self,
        org_id: str,
        user_id: str,
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Result[List[EffectivePermission]]:
        """
        Direct and role-inherited grants that apply to a user.

        Args:
            org_id: Organization the user belongs to
            user_id: User to resolve
            resource_id: Concrete resource; only grants whose pattern covers it
            action: Only grants on this action (or on ``*``)
        """
        guard_org(self.db, org_id)
        try:
            return Success(await self._effective(org_id, user_id, resource_id, action))
        except Exception as exc:
            return fail(log, "Failed to get effective permissions", exc, ENTITY, org_id=org_id, user_id=user_id)

    async def has_permission(self, org_id: str, user_id: str, resource_id: str, action: str) -> Result[bool]:
        guard_org(self.db, org_id)
        try:
            direct = _user_grants(org_id, user_id).where(
                *_grant_filters(user_permissions, resource_id, action)
            )
            inherited = _role_grants(org_id, user_id).where(
                *_grant_filters(role_permissions, resource_id, action)
            )
            row = await self.db.one(select(or_(direct.exists(), inherited.exists()).label("allowed")))
            return Success(bool(row["allowed"]))
        except Exception as exc:
            return fail(
                log, "Failed to check permission", exc, ENTITY,
                org_id=org_id, user_id=user_id, resource_id=resource_id, action=action,
            )

    async def get_effective_permissions_by_prefix(
        self,
        org_id: str,
        user_id: str,
        resource_id_prefix: str,
        action: Optional[str] = None,
    ) -> Result[List[EffectivePermission]]:
        """Grants inside the subtree under ``resource_id_prefix`` or covering it."""
        guard_org(self.db, org_id)
        try:
            return Success(await self._effective(org_id, user_id, action=action, prefix=resource_id_prefix))
        except Exception as exc:
            return fail(
                log, "Failed to get effective permissions by prefix", exc, ENTITY,
                org_id=org_id, user_id=user_id, resource_id=resource_id_prefix,
            )
