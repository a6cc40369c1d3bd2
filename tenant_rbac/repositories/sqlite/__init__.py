"""
Repositories for the explicit-filtering (SQLite) backend.
"""
from tenant_rbac.core.database.interface import Database
from tenant_rbac.repositories.interfaces import Repositories
from tenant_rbac.repositories.sqlite.organizations import SqliteOrganizationRepository
from tenant_rbac.repositories.sqlite.permissions import SqlitePermissionRepository
from tenant_rbac.repositories.sqlite.resources import SqliteResourceRepository
from tenant_rbac.repositories.sqlite.roles import SqliteRoleRepository
from tenant_rbac.repositories.sqlite.users import SqliteUserRepository


def create_sqlite_repositories(db: Database) -> Repositories:
    return Repositories(
        organization=SqliteOrganizationRepository(db),
        user=SqliteUserRepository(db),
        role=SqliteRoleRepository(db),
        resource=SqliteResourceRepository(db),
        permission=SqlitePermissionRepository(db),
    )
