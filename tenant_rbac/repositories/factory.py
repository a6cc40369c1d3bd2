"""
Repository bundle selection.
"""
from tenant_rbac.core.config import POSTGRES, SQLITE
from tenant_rbac.core.database.interface import Database
from tenant_rbac.core.errors import ConfigurationError
from tenant_rbac.repositories.interfaces import Repositories
from tenant_rbac.repositories.postgres import create_postgres_repositories
from tenant_rbac.repositories.sqlite import create_sqlite_repositories


def create_repositories(db: Database) -> Repositories:
    """Build the repository bundle matching the backend ``db`` runs on."""
    if db.backend == POSTGRES:
        return create_postgres_repositories(db)
    if db.backend == SQLITE:
        return create_sqlite_repositories(db)
    raise ConfigurationError(f"No repositories for database backend {db.backend!r}")
