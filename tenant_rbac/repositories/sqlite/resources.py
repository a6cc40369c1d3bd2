"""
Resource repository, SQLite backend.

Deleting a resource removes the grants stored on exactly its id. Wildcard
grants covering it are left in place.
"""
from typing import List, Optional
from sqlalchemy import delete, select, update

from tenant_rbac.core.database.base import utcnow
from tenant_rbac.core.database.interface import Database
from tenant_rbac.core.errors import NotFoundError
from tenant_rbac.core.result import Failure, Result, Success
from tenant_rbac.core.schemas import Connection, PaginationInput
from tenant_rbac.features.permissions.models import role_permissions, user_permissions
from tenant_rbac.features.resources.models import resources
from tenant_rbac.features.resources.schemas import (
    CreateResourceInput,
    Resource,
    ResourceFilter,
    UpdateResourceInput,
)
from tenant_rbac.repositories.common import build_connection, count_statement, fail, guard_org, paginate
from tenant_rbac.repositories.sqlite.sql import starts_with
from tenant_rbac.utils import get_logger


log = get_logger(__name__)

ENTITY = "resource"


def _select_by_id(org_id: str, resource_id: str):
    return select(resources).where(resources.c.org_id == org_id, resources.c.id == resource_id)


def _to_resource(row) -> Resource:
    return Resource.model_validate(dict(row))


class SqliteResourceRepository:

    def __init__(self, db: Database):
        self.db = db

    async def create(self, org_id: str, input: CreateResourceInput) -> Result[Resource]:
        guard_org(self.db, org_id)
        try:
            now = utcnow()
            async with self.db.tx() as t:
                await t.none(
                    resources.insert().values(
                        id=input.id,
                        org_id=org_id,
                        name=input.name,
                        description=input.description,
                        created_at=now,
                        updated_at=now,
                    )
                )
                row = await t.one(_select_by_id(org_id, input.id))
            return Success(_to_resource(row))
        except Exception as exc:
            return fail(log, "Failed to create resource", exc, ENTITY, org_id=org_id, resource_id=input.id)

    async def get_by_id(self, org_id: str, resource_id: str) -> Result[Optional[Resource]]:
        guard_org(self.db, org_id)
        try:
            row = await self.db.one_or_none(_select_by_id(org_id, resource_id))
            return Success(_to_resource(row) if row else None)
        except Exception as exc:
            return fail(log, "Failed to get resource", exc, ENTITY, org_id=org_id, resource_id=resource_id)

    async def list(
        self,
        org_id: str,
        filter: Optional[ResourceFilter] = None,
        pagination: Optional[PaginationInput] = None,
    ) -> Result[Connection[Resource]]:
        guard_org(self.db, org_id)
        try:
            clauses = [resources.c.org_id == org_id]
            if filter is not None and filter.id_prefix:
                clauses.append(starts_with(resources.c.id, filter.id_prefix))

            total = await self.db.one(count_statement(resources, clauses))
            rows = await self.db.many_or_none(
                paginate(select(resources).where(*clauses), resources.c.id, pagination)
            )
            nodes = [_to_resource(row) for row in rows]
            return Success(build_connection(nodes, total["total"], pagination, lambda r: r.id))
        except Exception as exc:
            return fail(log, "Failed to list resources", exc, ENTITY, org_id=org_id)

    async def list_by_org(
        self, org_id: str, pagination: Optional[PaginationInput] = None
    ) -> Result[Connection[Resource]]:
        return await self.list(org_id, None, pagination)

    async def list_by_id_prefix(self, org_id: str, id_prefix: str) -> Result[List[Resource]]:
        guard_org(self.db, org_id)
        try:
            rows = await self.db.many_or_none(
                select(resources)
                .where(resources.c.org_id == org_id, starts_with(resources.c.id, id_prefix))
                .order_by(resources.c.id)
            )
            return Success([_to_resource(row) for row in rows])
        except Exception as exc:
            return fail(log, "Failed to list resources by prefix", exc, ENTITY, org_id=org_id)

    async def update(self, org_id: str, resource_id: str, input: UpdateResourceInput) -> Result[Resource]:
        guard_org(self.db, org_id)
        try:
            values = input.model_dump(exclude_unset=True)
            async with self.db.tx() as t:
                updated = await t.result(
                    update(resources)
                    .where(resources.c.org_id == org_id, resources.c.id == resource_id)
                    .values(**values, updated_at=utcnow())
                )
                if not updated:
                    return Failure(NotFoundError(ENTITY))
                row = await t.one(_select_by_id(org_id, resource_id))
            return Success(_to_resource(row))
        except Exception as exc:
            return fail(log, "Failed to update resource", exc, ENTITY, org_id=org_id, resource_id=resource_id)

    async def delete(self, org_id: str, resource_id: str) -> Result[bool]:
        guard_org(self.db, org_id)
        try:
            async with self.db.tx() as t:
                for table in (user_permissions, role_permissions):
                    await t.none(delete(table).where(table.c.org_id == org_id, table.c.resource_id == resource_id))
                deleted = await t.result(
                    delete(resources).where(resources.c.org_id == org_id, resources.c.id == resource_id)
                )
            return Success(deleted > 0)
        except Exception as exc:
            return fail(log, "Failed to delete resource", exc, ENTITY, org_id=org_id, resource_id=resource_id)

    async def delete_by_id_prefix(self, org_id: str, id_prefix: str) -> Result[int]:
        """
        Delete every resource whose id starts with ``id_prefix``.

        Returns:
            Number of resource rows deleted
        """
        guard_org(self.db, org_id)
        try:
            async with self.db.tx() as t:
                rows = await t.many_or_none(
                    select(resources.c.id)
                    .where(resources.c.org_id == org_id, starts_with(resources.c.id, id_prefix))
                )
                ids = [row["id"] for row in rows]
                if not ids:
                    return Success(0)
                for table in (user_permissions, role_permissions):
                    await t.none(delete(table).where(table.c.org_id == org_id, table.c.resource_id.in_(ids)))
                deleted = await t.result(
                    delete(resources).where(resources.c.org_id == org_id, resources.c.id.in_(ids))
                )
            return Success(deleted)
        except Exception as exc:
            return fail(log, "Failed to delete resources by prefix", exc, ENTITY, org_id=org_id)
