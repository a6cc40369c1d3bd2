"""
Property access functions, parameterized by property table.

Organizations, users and roles each have their own property table with the
same shape. These functions work on any of them; the backend passes its
dialect's ``insert`` (for the upsert) and JSON equality function.
``org_id`` is required for the tenant-scoped tables and ignored for
``organization_properties``, whose ``parent_id`` is the org id itself.
"""
from datetime import datetime
from typing import Any, Callable, Optional, Sequence
from sqlalchemy import Select, Table, delete, distinct, func, or_, and_, select
from sqlalchemy.sql import ColumnElement

from tenant_rbac.core.database.base import utcnow
from tenant_rbac.core.database.interface import Database
from tenant_rbac.core.schemas import Property, PropertyFilter, PropertyInput


JsonEquals = Callable[[ColumnElement, Any], ColumnElement]


def _is_tenant_scoped(table: Table) -> bool:
    return "org_id" in table.c


def _parent_clauses(table: Table, parent_id: str, org_id: Optional[str]) -> list[ColumnElement]:
    clauses = [table.c.parent_id == parent_id]
    if _is_tenant_scoped(table):
        clauses.append(table.c.org_id == org_id)
    return clauses


def _to_property(row) -> Property:
    return Property(name=row["name"], value=row["value"], hidden=row["hidden"], created_at=row["created_at"])


def property_row(
    table: Table,
    parent_id: str,
    prop: PropertyInput,
    now: datetime,
    org_id: Optional[str] = None,
) -> dict[str, Any]:
    row = {
        "parent_id": parent_id,
        "name": prop.name,
        "value": prop.value,
        "hidden": prop.hidden,
        "created_at": now,
    }
    if _is_tenant_scoped(table):
        row["org_id"] = org_id
    return row


async def insert_properties(
    db: Database,
    table: Table,
    parent_id: str,
    properties: Sequence[PropertyInput],
    now: datetime,
    org_id: Optional[str] = None,
):
    """Insert the initial properties of a new parent. Run inside its transaction."""
    for prop in properties:
        await db.none(table.insert().values(**property_row(table, parent_id, prop, now, org_id)))


async def get_properties(
    db: Database,
    table: Table,
    parent_id: str,
    org_id: Optional[str] = None,
    include_hidden: bool = True,
) -> list[Property]:
    statement = select(table).where(*_parent_clauses(table, parent_id, org_id))
    if not include_hidden:
        statement = statement.where(table.c.hidden.is_(False))
    rows = await db.many_or_none(statement.order_by(table.c.name))
    return [_to_property(row) for row in rows]


async def get_property(
    db: Database,
    table: Table,
    parent_id: str,
    name: str,
    org_id: Optional[str] = None,
) -> Optional[Property]:
    row = await db.one_or_none(
        select(table).where(*_parent_clauses(table, parent_id, org_id), table.c.name == name)
    )
    return _to_property(row) if row else None


async def set_property(
    db: Database,
    insert: Callable[[Table], Any],
    table: Table,
    parent_id: str,
    prop: PropertyInput,
    org_id: Optional[str] = None,
) -> Property:
    """Upsert by name. An existing property gets a new value, hidden flag and created_at."""
    now = utcnow()
    row = property_row(table, parent_id, prop, now, org_id)
    statement = insert(table).values(**row)
    statement = statement.on_conflict_do_update(
        index_elements=list(table.primary_key.columns),
        set_={
            "value": statement.excluded.value,
            "hidden": statement.excluded.hidden,
            "created_at": statement.excluded.created_at,
        },
    )
    await db.none(statement)
    return Property(name=prop.name, value=prop.value, hidden=prop.hidden, created_at=now)


async def delete_property(
    db: Database,
    table: Table,
    parent_id: str,
    name: str,
    org_id: Optional[str] = None,
) -> bool:
    deleted = await db.result(
        delete(table).where(*_parent_clauses(table, parent_id, org_id), table.c.name == name)
    )
    return deleted > 0


async def delete_all_properties(db: Database, table: Table, parent_id: str, org_id: Optional[str] = None):
    await db.none(delete(table).where(*_parent_clauses(table, parent_id, org_id)))


def parents_matching_all(
    table: Table,
    filters: Sequence[PropertyFilter],
    json_equals: JsonEquals,
    org_id: Optional[str] = None,
) -> Select:
    """
    Parent ids having every one of ``filters`` (name and value equal).
    
    One grouped query: rows matching any (name, value) pair are grouped by
    parent and only parents with N distinct matching names survive.
    """
    pairs = or_(*[
        and_(table.c.name == f.name, json_equals(table.c.value, f.value))
        for f in filters
    ])
    statement = select(table.c.parent_id).where(pairs)
    if _is_tenant_scoped(table):
        statement = statement.where(table.c.org_id == org_id)
    return statement.group_by(table.c.parent_id).having(
        func.count(distinct(table.c.name)) == len(filters)
    )
