"""
PostgreSQL-specific SQL building blocks.
"""
import json
from typing import Any
from sqlalchemy import String, and_, cast, func, literal, or_
from sqlalchemy.dialects.postgresql import JSONB, insert
from sqlalchemy.sql import ColumnElement

from tenant_rbac.features.permissions.matching import WILDCARD


__all__ = ["insert", "json_equals", "starts_with", "resource_matches", "action_matches", "within_subtree"]


def json_equals(column: ColumnElement, value: Any) -> ColumnElement:
    """jsonb equality, independent of key order and whitespace."""
    return column == cast(literal(json.dumps(value), String()), JSONB)


def starts_with(value, prefix) -> ColumnElement:
    return func.starts_with(value, prefix)


def resource_matches(pattern: ColumnElement, resource_id: str) -> ColumnElement:
    """SQL form of ``matching.matches_resource`` with the stored pattern as a column."""
    target = literal(resource_id, String())
    stripped = func.replace(pattern, WILDCARD, "")
    return or_(
        pattern == target,
        and_(
            func.strpos(pattern, WILDCARD) > 0,
            or_(starts_with(target, stripped), func.rtrim(stripped, "/") == target),
        ),
    )


def action_matches(granted: ColumnElement, action: str) -> ColumnElement:
    return or_(granted == action, granted == WILDCARD)


def within_subtree(pattern: ColumnElement, prefix: str) -> ColumnElement:
    """SQL form of ``matching.within_subtree``."""
    return or_(starts_with(pattern, literal(prefix, String())), resource_matches(pattern, prefix))
