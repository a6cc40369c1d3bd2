"""
Role repository, SQLite backend.
"""
from typing import List, Optional
from sqlalchemy import delete, select, update

from tenant_rbac.core.database.base import utcnow
from tenant_rbac.core.database.interface import Database
from tenant_rbac.core.errors import NotFoundError
from tenant_rbac.core.result import Failure, Result, Success
from tenant_rbac.core.schemas import Connection, PaginationInput, Property, PropertyInput
from tenant_rbac.features.permissions.models import role_permissions
from tenant_rbac.features.roles.models import role_properties, roles, user_roles
from tenant_rbac.features.roles.schemas import CreateRoleInput, Role, RoleFilter, UpdateRoleInput
from tenant_rbac.repositories import properties
from tenant_rbac.repositories.common import build_connection, count_statement, fail, guard_org, paginate
from tenant_rbac.repositories.sqlite.sql import insert, json_equals
from tenant_rbac.utils import get_logger


log = get_logger(__name__)

ENTITY = "role"


def _select_by_id(org_id: str, role_id: str):
    return select(roles).where(roles.c.org_id == org_id, roles.c.id == role_id)


def _to_role(row) -> Role:
    return Role.model_validate(dict(row))


class SqliteRoleRepository:

    def __init__(self, db: Database):
        self.db = db

    async def create(self, org_id: str, input: CreateRoleInput) -> Result[Role]:
        guard_org(self.db, org_id)
        try:
            now = utcnow()
            async with self.db.tx() as t:
                await t.none(
                    roles.insert().values(
                        id=input.id,
                        org_id=org_id,
                        name=input.name,
                        description=input.description,
                        created_at=now,
                        updated_at=now,
                    )
                )
                await properties.insert_properties(t, role_properties, input.id, input.properties, now, org_id)
                row = await t.one(_select_by_id(org_id, input.id))
            return Success(_to_role(row))
        except Exception as exc:
            return fail(log, "Failed to create role", exc, ENTITY, org_id=org_id, role_id=input.id)

    async def get_by_id(self, org_id: str, role_id: str) -> Result[Optional[Role]]:
        guard_org(self.db, org_id)
        try:
            row = await self.db.one_or_none(_select_by_id(org_id, role_id))
            return Success(_to_role(row) if row else None)
        except Exception as exc:
            return fail(log, "Failed to get role", exc, ENTITY, org_id=org_id, role_id=role_id)

    async def list(
        self,
        org_id: str,
        filter: Optional[RoleFilter] = None,
        pagination: Optional[PaginationInput] = None,
    ) -> Result[Connection[Role]]:
        guard_org(self.db, org_id)
        try:
            clauses = [roles.c.org_id == org_id]
            if filter is not None:
                if filter.ids is not None:
                    clauses.append(roles.c.id.in_(filter.ids))
                if filter.name is not None:
                    clauses.append(roles.c.name == filter.name)
                if filter.properties:
                    clauses.append(roles.c.id.in_(
                        properties.parents_matching_all(role_properties, filter.properties, json_equals, org_id)
                    ))

            total = await self.db.one(count_statement(roles, clauses))
            rows = await self.db.many_or_none(paginate(select(roles).where(*clauses), roles.c.id, pagination))
            nodes = [_to_role(row) for row in rows]
            return Success(build_connection(nodes, total["total"], pagination, lambda r: r.id))
        except Exception as exc:
            return fail(log, "Failed to list roles", exc, ENTITY, org_id=org_id)

    async def list_by_org(self, org_id: str, pagination: Optional[PaginationInput] = None) -> Result[Connection[Role]]:
        return await self.list(org_id, None, pagination)

    async def update(self, org_id: str, role_id: str, input: UpdateRoleInput) -> Result[Role]:
        guard_org(self.db, org_id)
        try:
            values = input.model_dump(exclude_unset=True)
            async with self.db.tx() as t:
                updated = await t.result(
                    update(roles)
                    .where(roles.c.org_id == org_id, roles.c.id == role_id)
                    .values(**values, updated_at=utcnow())
                )
                if not updated:
                    return Failure(NotFoundError(ENTITY))
                row = await t.one(_select_by_id(org_id, role_id))
            return Success(_to_role(row))
        except Exception as exc:
            return fail(log, "Failed to update role", exc, ENTITY, org_id=org_id, role_id=role_id)

    async def delete(self, org_id: str, role_id: str) -> Result[bool]:
        """Delete a role along with its properties, grants and user assignments."""
        guard_org(self.db, org_id)
        try:
            async with self.db.tx() as t:
                await properties.delete_all_properties(t, role_properties, role_id, org_id)
                await t.none(
                    delete(role_permissions)
                    .where(role_permissions.c.org_id == org_id, role_permissions.c.role_id == role_id)
                )
                await t.none(delete(user_roles).where(user_roles.c.org_id == org_id, user_roles.c.role_id == role_id))
                deleted = await t.result(delete(roles).where(roles.c.org_id == org_id, roles.c.id == role_id))
            return Success(deleted > 0)
        except Exception as exc:
            return fail(log, "Failed to delete role", exc, ENTITY, org_id=org_id, role_id=role_id)

    async def get_user_ids(self, org_id: str, role_id: str) -> Result[List[str]]:
        guard_org(self.db, org_id)
        try:
            rows = await self.db.many_or_none(
                select(user_roles.c.user_id)
                .where(user_roles.c.org_id == org_id, user_roles.c.role_id == role_id)
                .order_by(user_roles.c.user_id)
            )
            return Success([row["user_id"] for row in rows])
        except Exception as exc:
            return fail(log, "Failed to get role users", exc, ENTITY, org_id=org_id, role_id=role_id)

    async def get_properties(self, org_id: str, role_id: str, include_hidden: bool = True) -> Result[List[Property]]:
        guard_org(self.db, org_id)
        try:
            return Success(await properties.get_properties(
                self.db, role_properties, role_id, org_id, include_hidden
            ))
        except Exception as exc:
            return fail(log, "Failed to get role properties", exc, ENTITY, org_id=org_id, role_id=role_id)

    async def get_property(self, org_id: str, role_id: str, name: str) -> Result[Optional[Property]]:
        guard_org(self.db, org_id)
        try:
            return Success(await properties.get_property(self.db, role_properties, role_id, name, org_id))
        except Exception as exc:
            return fail(log, "Failed to get role property", exc, ENTITY, org_id=org_id, role_id=role_id)

    async def set_property(self, org_id: str, role_id: str, property: PropertyInput) -> Result[Property]:
        guard_org(self.db, org_id)
        try:
            return Success(await properties.set_property(self.db, insert, role_properties, role_id, property, org_id))
        except Exception as exc:
            return fail(log, "Failed to set role property", exc, "role property", org_id=org_id, role_id=role_id)

    async def delete_property(self, org_id: str, role_id: str, name: str) -> Result[bool]:
        guard_org(self.db, org_id)
        try:
            return Success(await properties.delete_property(self.db, role_properties, role_id, name, org_id))
        except Exception as exc:
            return fail(log, "Failed to delete role property", exc, ENTITY, org_id=org_id, role_id=role_id)
