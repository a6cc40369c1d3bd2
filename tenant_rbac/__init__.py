"""
Multi-tenant role-based access control on PostgreSQL or SQLite.
"""
from tenant_rbac.context import DataContext, create_context
from tenant_rbac.core.config import Settings, load_settings
from tenant_rbac.core.result import Failure, Result, Success
from tenant_rbac.repositories.interfaces import Repositories


__all__ = [
    "DataContext",
    "Failure",
    "Repositories",
    "Result",
    "Settings",
    "Success",
    "create_context",
    "load_settings",
]
