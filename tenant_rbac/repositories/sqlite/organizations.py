"""
Organization repository, SQLite backend.

Organizations are not tenant-scoped. Creating, listing and deleting them are
cross-tenant operations and run on an escalated context; the remaining
operations refuse to touch an org other than the one the context is bound to.
"""
from typing import List, Optional
from sqlalchemy import delete, select, update

from tenant_rbac.core.database.base import utcnow
from tenant_rbac.core.database.interface import Database
from tenant_rbac.core.errors import NotFoundError
from tenant_rbac.core.result import Failure, Result, Success
from tenant_rbac.core.schemas import Connection, PaginationInput, Property, PropertyInput
from tenant_rbac.features.organizations.models import organization_properties, organizations
from tenant_rbac.features.organizations.schemas import (
    CreateOrganizationInput,
    Organization,
    OrganizationFilter,
    UpdateOrganizationInput,
)
from tenant_rbac.repositories import properties
from tenant_rbac.repositories.common import build_connection, count_statement, fail, guard_org, paginate
from tenant_rbac.repositories.sqlite.sql import insert, json_equals
from tenant_rbac.utils import get_logger


log = get_logger(__name__)

ENTITY = "organization"


def _select_by_id(org_id: str):
    return select(organizations).where(organizations.c.id == org_id)


def _to_organization(row) -> Organization:
    return Organization.model_validate(dict(row))


class SqliteOrganizationRepository:

    def __init__(self, db: Database):
        self.db = db

    async def create(self, input: CreateOrganizationInput) -> Result[Organization]:
        try:
            root = self.db.upgrade_to_root(f"create organization {input.id}")
            now = utcnow()
            async with root.tx() as t:
                await t.none(
                    organizations.insert().values(
                        id=input.id,
                        name=input.name,
                        description=input.description,
                        created_at=now,
                        updated_at=now,
                    )
                )
                await properties.insert_properties(t, organization_properties, input.id, input.properties, now)
                row = await t.one(_select_by_id(input.id))
            return Success(_to_organization(row))
        except Exception as exc:
            return fail(log, "Failed to create organization", exc, ENTITY, org_id=input.id)

    async def get_by_id(self, org_id: str) -> Result[Optional[Organization]]:
        try:
            row = await self.db.one_or_none(_select_by_id(org_id))
            return Success(_to_organization(row) if row else None)
        except Exception as exc:
            return fail(log, "Failed to get organization", exc, ENTITY, org_id=org_id)

    async def list(
        self,
        filter: Optional[OrganizationFilter] = None,
        pagination: Optional[PaginationInput] = None,
    ) -> Result[Connection[Organization]]:
        try:
            root = self.db.upgrade_to_root("list organizations")
            clauses = []
            if filter is not None:
                if filter.ids is not None:
                    clauses.append(organizations.c.id.in_(filter.ids))
                if filter.name is not None:
                    clauses.append(organizations.c.name == filter.name)
                if filter.properties:
                    clauses.append(organizations.c.id.in_(
                        properties.parents_matching_all(organization_properties, filter.properties, json_equals)
                    ))

            total = await root.one(count_statement(organizations, clauses))
            rows = await root.many_or_none(
                paginate(select(organizations).where(*clauses), organizations.c.id, pagination)
            )
            nodes = [_to_organization(row) for row in rows]
            return Success(build_connection(nodes, total["total"], pagination, lambda o: o.id))
        except Exception as exc:
            return fail(log, "Failed to list organizations", exc, ENTITY)

    async def update(self, org_id: str, input: UpdateOrganizationInput) -> Result[Organization]:
        guard_org(self.db, org_id)
        try:
            values = input.model_dump(exclude_unset=True)
            async with self.db.tx() as t:
                updated = await t.result(
                    update(organizations).where(organizations.c.id == org_id).values(**values, updated_at=utcnow())
                )
                if not updated:
                    return Failure(NotFoundError(ENTITY))
                row = await t.one(_select_by_id(org_id))
            return Success(_to_organization(row))
        except Exception as exc:
            return fail(log, "Failed to update organization", exc, ENTITY, org_id=org_id)

    async def delete(self, org_id: str) -> Result[bool]:
        """Delete an organization. Every tenant-scoped row under it goes with it (ON DELETE CASCADE)."""
        guard_org(self.db, org_id)
        try:
            root = self.db.upgrade_to_root(f"delete organization {org_id}")
            async with root.tx() as t:
                await properties.delete_all_properties(t, organization_properties, org_id)
                deleted = await t.result(delete(organizations).where(organizations.c.id == org_id))
            return Success(deleted > 0)
        except Exception as exc:
            return fail(log, "Failed to delete organization", exc, ENTITY, org_id=org_id)

    async def get_properties(self, org_id: str, include_hidden: bool = True) -> Result[List[Property]]:
        guard_org(self.db, org_id)
        try:
            return Success(await properties.get_properties(
                self.db, organization_properties, org_id, include_hidden=include_hidden
            ))
        except Exception as exc:
            return fail(log, "Failed to get organization properties", exc, ENTITY, org_id=org_id)

    async def get_property(self, org_id: str, name: str) -> Result[Optional[Property]]:
        guard_org(self.db, org_id)
        try:
            return Success(await properties.get_property(self.db, organization_properties, org_id, name))
        except Exception as exc:
            return fail(log, "Failed to get organization property", exc, ENTITY, org_id=org_id)

    async def set_property(self, org_id: str, property: PropertyInput) -> Result[Property]:
        guard_org(self.db, org_id)
        try:
            return Success(await properties.set_property(
                self.db, insert, organization_properties, org_id, property
            ))
        except Exception as exc:
            return fail(log, "Failed to set organization property", exc, "organization property", org_id=org_id)

    async def delete_property(self, org_id: str, name: str) -> Result[bool]:
        guard_org(self.db, org_id)
        try:
            return Success(await properties.delete_property(self.db, organization_properties, org_id, name))
        except Exception as exc:
            return fail(log, "Failed to delete organization property", exc, ENTITY, org_id=org_id)
