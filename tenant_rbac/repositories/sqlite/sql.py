"""
SQLite-specific SQL building blocks.

Wildcard resolution is done in Python on org-filtered rows (see
``features.permissions.matching``); only plain prefix filters run in SQL.
"""
import json
from typing import Any
from sqlalchemy import String, func, literal
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.sql import ColumnElement


__all__ = ["insert", "json_equals", "starts_with"]


def json_equals(column: ColumnElement, value: Any) -> ColumnElement:
    """
    Compare minified JSON text on both sides.

    Values are written with sorted keys (see ``sqlite_engine``), so the filter
    value is serialized the same way.
    """
    return func.json(column) == func.json(literal(json.dumps(value, sort_keys=True), String()))


def starts_with(column: ColumnElement, prefix: str) -> ColumnElement:
    # substr instead of LIKE so "%" and "_" in resource ids are literal
    return func.substr(column, 1, len(prefix)) == prefix
