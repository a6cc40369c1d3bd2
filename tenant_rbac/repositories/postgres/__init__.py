"""
Repositories for the policy-enforced (PostgreSQL row-level security) backend.
"""
from tenant_rbac.core.database.interface import Database
from tenant_rbac.repositories.interfaces import Repositories
from tenant_rbac.repositories.postgres.organizations import PostgresOrganizationRepository
from tenant_rbac.repositories.postgres.permissions import PostgresPermissionRepository
from tenant_rbac.repositories.postgres.resources import PostgresResourceRepository
from tenant_rbac.repositories.postgres.roles import PostgresRoleRepository
from tenant_rbac.repositories.postgres.users import PostgresUserRepository


def create_postgres_repositories(db: Database) -> Repositories:
    return Repositories(
        organization=PostgresOrganizationRepository(db),
        user=PostgresUserRepository(db),
        role=PostgresRoleRepository(db),
        resource=PostgresResourceRepository(db),
        permission=PostgresPermissionRepository(db),
    )
