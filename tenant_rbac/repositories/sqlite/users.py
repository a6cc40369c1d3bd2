"""
User repository, SQLite backend.

Nothing in the store isolates tenants here: every statement below carries an
``org_id`` predicate (or value, for inserts).
"""
from typing import List, Optional
from sqlalchemy import delete, select, update

from tenant_rbac.core.database.base import utcnow
from tenant_rbac.core.database.interface import Database
from tenant_rbac.core.errors import NotFoundError
from tenant_rbac.core.result import Failure, Result, Success
from tenant_rbac.core.schemas import Connection, PaginationInput, Property, PropertyInput
from tenant_rbac.features.permissions.models import user_permissions
from tenant_rbac.features.roles.models import user_roles
from tenant_rbac.features.users.models import user_properties, users
from tenant_rbac.features.users.schemas import CreateUserInput, UpdateUserInput, User, UserFilter
from tenant_rbac.repositories import properties
from tenant_rbac.repositories.common import build_connection, count_statement, fail, guard_org, paginate
from tenant_rbac.repositories.sqlite.sql import insert, json_equals
from tenant_rbac.utils import get_logger


log = get_logger(__name__)

ENTITY = "user"


def _select_by_id(org_id: str, user_id: str):
    return select(users).where(users.c.org_id == org_id, users.c.id == user_id)


def _to_user(row) -> User:
    return User.model_validate(dict(row))


class SqliteUserRepository:

    def __init__(self, db: Database):
        self.db = db

    async def create(self, org_id: str, input: CreateUserInput) -> Result[User]:
        """Create a user with its initial properties and role assignments in one transaction."""
        guard_org(self.db, org_id)
        try:
            now = utcnow()
            async with self.db.tx() as t:
                await t.none(
                    users.insert().values(
                        id=input.id,
                        org_id=org_id,
                        identity_provider=input.identity_provider,
                        identity_provider_user_id=input.identity_provider_user_id,
                        created_at=now,
                        updated_at=now,
                    )
                )
                await properties.insert_properties(t, user_properties, input.id, input.properties, now, org_id)
                for role_id in input.role_ids:
                    await t.none(
                        user_roles.insert().values(user_id=input.id, role_id=role_id, org_id=org_id, created_at=now)
                    )
                row = await t.one(_select_by_id(org_id, input.id))
            return Success(_to_user(row))
        except Exception as exc:
            return fail(log, "Failed to create user", exc, ENTITY, org_id=org_id, user_id=input.id)

    async def get_by_id(self, org_id: str, user_id: str) -> Result[Optional[User]]:
        guard_org(self.db, org_id)
        try:
            row = await self.db.one_or_none(_select_by_id(org_id, user_id))
            return Success(_to_user(row) if row else None)
        except Exception as exc:
            return fail(log, "Failed to get user", exc, ENTITY, org_id=org_id, user_id=user_id)

    async def get_by_identity(
        self, org_id: str, identity_provider: str, identity_provider_user_id: str
    ) -> Result[Optional[User]]:
        guard_org(self.db, org_id)
        try:
            row = await self.db.one_or_none(
                select(users)
                .where(
                    users.c.org_id == org_id,
                    users.c.identity_provider == identity_provider,
                    users.c.identity_provider_user_id == identity_provider_user_id,
                )
                .order_by(users.c.id)
                .limit(1)
            )
            return Success(_to_user(row) if row else None)
        except Exception as exc:
            return fail(log, "Failed to get user by identity", exc, ENTITY, org_id=org_id)

    async def list_by_identity(
        self, identity_provider: str, identity_provider_user_id: str
    ) -> Result[List[User]]:
        """Every user, in any organization, linked to this identity-provider account."""
        try:
            root = self.db.upgrade_to_root(f"look up {identity_provider} identity across organizations")
            rows = await root.many_or_none(
                select(users)
                .where(
                    users.c.identity_provider == identity_provider,
                    users.c.identity_provider_user_id == identity_provider_user_id,
                )
                .order_by(users.c.org_id, users.c.id)
            )
            return Success([_to_user(row) for row in rows])
        except Exception as exc:
            return fail(log, "Failed to list users by identity", exc, ENTITY)

    async def list(
        self,
        org_id: str,
        filter: Optional[UserFilter] = None,
        pagination: Optional[PaginationInput] = None,
    ) -> Result[Connection[User]]:
        guard_org(self.db, org_id)
        try:
            clauses = [users.c.org_id == org_id]
            if filter is not None:
                if filter.ids is not None:
                    clauses.append(users.c.id.in_(filter.ids))
                if filter.identity_provider is not None:
                    clauses.append(users.c.identity_provider == filter.identity_provider)
                if filter.identity_provider_user_id is not None:
                    clauses.append(users.c.identity_provider_user_id == filter.identity_provider_user_id)
                if filter.properties:
                    clauses.append(users.c.id.in_(
                        properties.parents_matching_all(user_properties, filter.properties, json_equals, org_id)
                    ))

            total = await self.db.one(count_statement(users, clauses))
            rows = await self.db.many_or_none(paginate(select(users).where(*clauses), users.c.id, pagination))
            nodes = [_to_user(row) for row in rows]
            return Success(build_connection(nodes, total["total"], pagination, lambda u: u.id))
        except Exception as exc:
            return fail(log, "Failed to list users", exc, ENTITY, org_id=org_id)

    async def list_by_org(self, org_id: str, pagination: Optional[PaginationInput] = None) -> Result[Connection[User]]:
        return await self.list(org_id, None, pagination)

    async def update(self, org_id: str, user_id: str, input: UpdateUserInput) -> Result[User]:
        guard_org(self.db, org_id)
        try:
            values = input.model_dump(exclude_unset=True)
            async with self.db.tx() as t:
                updated = await t.result(
                    update(users)
                    .where(users.c.org_id == org_id, users.c.id == user_id)
                    .values(**values, updated_at=utcnow())
                )
                if not updated:
                    return Failure(NotFoundError(ENTITY))
                row = await t.one(_select_by_id(org_id, user_id))
            return Success(_to_user(row))
        except Exception as exc:
            return fail(log, "Failed to update user", exc, ENTITY, org_id=org_id, user_id=user_id)

    async def delete(self, org_id: str, user_id: str) -> Result[bool]:
        """Delete a user along with its properties, role assignments and direct grants."""
        guard_org(self.db, org_id)
        try:
            async with self.db.tx() as t:
                await properties.delete_all_properties(t, user_properties, user_id, org_id)
                await t.none(delete(user_roles).where(user_roles.c.org_id == org_id, user_roles.c.user_id == user_id))
                await t.none(
                    delete(user_permissions)
                    .where(user_permissions.c.org_id == org_id, user_permissions.c.user_id == user_id)
                )
                deleted = await t.result(delete(users).where(users.c.org_id == org_id, users.c.id == user_id))
            return Success(deleted > 0)
        except Exception as exc:
            return fail(log, "Failed to delete user", exc, ENTITY, org_id=org_id, user_id=user_id)

    async def assign_role(self, org_id: str, user_id: str, role_id: str) -> Result[None]:
        guard_org(self.db, org_id)
        try:
            statement = insert(user_roles).values(user_id=user_id, role_id=role_id, org_id=org_id, created_at=utcnow())
            await self.db.none(statement.on_conflict_do_nothing(index_elements=list(user_roles.primary_key.columns)))
            return Success(None)
        except Exception as exc:
            return fail(log, "Failed to assign role", exc, "user role", org_id=org_id, user_id=user_id, role_id=role_id)

    async def unassign_role(self, org_id: str, user_id: str, role_id: str) -> Result[None]:
        guard_org(self.db, org_id)
        try:
            await self.db.none(
                delete(user_roles).where(
                    user_roles.c.org_id == org_id,
                    user_roles.c.user_id == user_id,
                    user_roles.c.role_id == role_id,
                )
            )
            return Success(None)
        except Exception as exc:
            return fail(log, "Failed to unassign role", exc, "user role", org_id=org_id, user_id=user_id, role_id=role_id)

    async def get_role_ids(self, org_id: str, user_id: str) -> Result[List[str]]:
        guard_org(self.db, org_id)
        try:
            rows = await self.db.many_or_none(
                select(user_roles.c.role_id)
                .where(user_roles.c.org_id == org_id, user_roles.c.user_id == user_id)
                .order_by(user_roles.c.role_id)
            )
            return Success([row["role_id"] for row in rows])
        except Exception as exc:
            return fail(log, "Failed to get user roles", exc, ENTITY, org_id=org_id, user_id=user_id)

    async def get_properties(self, org_id: str, user_id: str, include_hidden: bool = True) -> Result[List[Property]]:
        guard_org(self.db, org_id)
        try:
            return Success(await properties.get_properties(
                self.db, user_properties, user_id, org_id, include_hidden
            ))
        except Exception as exc:
            return fail(log, "Failed to get user properties", exc, ENTITY, org_id=org_id, user_id=user_id)

    async def get_property(self, org_id: str, user_id: str, name: str) -> Result[Optional[Property]]:
        guard_org(self.db, org_id)
        try:
            return Success(await properties.get_property(self.db, user_properties, user_id, name, org_id))
        except Exception as exc:
            return fail(log, "Failed to get user property", exc, ENTITY, org_id=org_id, user_id=user_id)

    async def set_property(self, org_id: str, user_id: str, property: PropertyInput) -> Result[Property]:
        guard_org(self.db, org_id)
        try:
            return Success(await properties.set_property(self.db, insert, user_properties, user_id, property, org_id))
        except Exception as exc:
            return fail(log, "Failed to set user property", exc, "user property", org_id=org_id, user_id=user_id)

    async def delete_property(self, org_id: str, user_id: str, name: str) -> Result[bool]:
        guard_org(self.db, org_id)
        try:
            return Success(await properties.delete_property(self.db, user_properties, user_id, name, org_id))
        except Exception as exc:
            return fail(log, "Failed to delete user property", exc, ENTITY, org_id=org_id, user_id=user_id)
