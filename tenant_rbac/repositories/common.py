"""
Helpers shared by the repository implementations of both backends.
"""
import logging
from typing import Any, Callable, Optional, Sequence, TypeVar
from sqlalchemy import Select, func, select
from sqlalchemy.sql import ColumnElement

from tenant_rbac.core.database.interface import Database
from tenant_rbac.core.errors import ConfigurationError, TenantContextError, to_repository_error
from tenant_rbac.core.result import Failure
from tenant_rbac.core.schemas import Connection, PageInfo, PaginationInput


T = TypeVar("T")


def guard_org(db: Database, org_id: Optional[str]) -> str:
    """
    Validate the org id passed to a tenant-scoped operation.
    
    Raises:
        TenantContextError: when ``org_id`` is empty, or when the context is
            bound to a different organization
    """
    if not org_id:
        raise TenantContextError("org_id is required for tenant-scoped operations")
    if db.org_id is not None and db.org_id != org_id:
        raise TenantContextError(
            f"Context is bound to organization {db.org_id!r}, refusing to operate on {org_id!r}"
        )
    return org_id


def fail(log: logging.Logger, message: str, exc: Exception, entity: str, **context: Any) -> Failure:
    """
    Log a repository failure and wrap it in a ``Failure``.
    
    Configuration and tenant-context errors are programming errors and are
    re-raised instead of being returned.
    """
    if isinstance(exc, (ConfigurationError, TenantContextError)):
        raise exc
    error = to_repository_error(exc, entity)
    log.error("%s: %s", message, error, exc_info=exc, extra={"entity": entity, **context})
    return Failure(error)


def paginate(statement: Select, order_column: ColumnElement, pagination: Optional[PaginationInput]) -> Select:
    """Order by ``order_column`` and apply limit/offset."""
    descending = pagination is not None and pagination.sort_direction == "DESC"
    statement = statement.order_by(order_column.desc() if descending else order_column.asc())
    if pagination is not None and pagination.limit is not None:
        statement = statement.limit(pagination.limit)
    if pagination is not None and pagination.offset:
        statement = statement.offset(pagination.offset)
    return statement


def count_statement(table, clauses: Sequence[ColumnElement]) -> Select:
    return select(func.count().label("total")).select_from(table).where(*clauses)


def build_connection(
    nodes: list[T],
    total_count: int,
    pagination: Optional[PaginationInput],
    cursor: Callable[[T], str],
) -> Connection[T]:
    offset = (pagination.offset or 0) if pagination else 0
    return Connection(
        nodes=nodes,
        total_count=total_count,
        page_info=PageInfo(
            has_next_page=offset + len(nodes) < total_count,
            has_previous_page=offset > 0,
            start_cursor=cursor(nodes[0]) if nodes else None,
            end_cursor=cursor(nodes[-1]) if nodes else None,
        ),
    )
