"""
Setup script to create the schema and, optionally, a first organization.

PostgreSQL: connects with TENANT_RBAC_ADMIN_DB_URL (a superuser or the schema
owner) to create the tables, both login principals and the row-security
policies. SQLite: creates the tables in TENANT_RBAC_SQLITE_PATH.

When TENANT_RBAC_SEED_ORG_ID is set, that organization is created with the
default roles below.

Usage:
    uv run python -m scripts.setup_database
"""
import asyncio
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine

from tenant_rbac.context import create_context
from tenant_rbac.core import config
from tenant_rbac.core.config import POSTGRES, Settings, load_settings
from tenant_rbac.core.database.engine import dispose_engines, init_db, sqlite_engine
from tenant_rbac.core.database.security import create_principals, install_row_security
from tenant_rbac.core.errors import ConfigurationError
from tenant_rbac.core.result import unwrap
from tenant_rbac.features.organizations.schemas import CreateOrganizationInput
from tenant_rbac.features.roles.schemas import CreateRoleInput
from tenant_rbac.utils import configure_logging, get_logger


log = get_logger(__name__)


# role id -> (description, [(resource pattern, action), ...])
DEFAULT_ROLES = {
    "admin": ("Organization administrator", [("/*", "*")]),
    "viewer": ("Read-only access to every resource", [("/*", "read")]),
}


async def setup_schema(settings: Settings, admin_url: str | None = None):
    """
    Create all tables. On PostgreSQL also create the principals and policies.

    Raises:
        ConfigurationError: PostgreSQL backend without an admin URL
    """
    if settings.backend != POSTGRES:
        log.info("Initializing SQLite database at %s", settings.sqlite_path)
        await init_db(sqlite_engine(settings))
        return

    if not admin_url:
        raise ConfigurationError("TENANT_RBAC_ADMIN_DB_URL environment variable is required")

    admin = create_async_engine(make_url(admin_url).set(drivername="postgresql+asyncpg"))
    try:
        log.info("Initializing database tables...")
        await init_db(admin)
        async with admin.begin() as conn:
            await create_principals(
                conn,
                settings.rls_user,
                settings.require_rls_password(),
                settings.unrestricted_user,
                settings.require_unrestricted_password(),
            )
            await install_row_security(conn, settings.rls_user, settings.unrestricted_user)
    finally:
        await admin.dispose()


async def seed_organization(settings: Settings, org_id: str):
    """Create ``org_id`` with the default roles and their grants. Skips an existing org."""
    root = create_context(None, settings)
    existing = unwrap(await root.repos.organization.get_by_id(org_id))
    if existing:
        log.info("Organization '%s' already exists, skipping", org_id)
        return

    unwrap(await root.repos.organization.create(CreateOrganizationInput(id=org_id, name=org_id)))
    ctx = create_context(org_id, settings)
    for role_id, (description, grants) in DEFAULT_ROLES.items():
        unwrap(await ctx.repos.role.create(org_id, CreateRoleInput(id=role_id, name=role_id, description=description)))
        for resource_id, action in grants:
            unwrap(await ctx.repos.permission.grant_role_permission(org_id, role_id, resource_id, action))
        log.info("Created role '%s' with %d grants", role_id, len(grants))


async def main():
    configure_logging()
    settings = load_settings()
    try:
        await setup_schema(settings, config.ADMIN_DB_URL)
        if config.SEED_ORG_ID:
            await seed_organization(settings, config.SEED_ORG_ID)
        log.info("Database setup completed successfully!")
    except Exception as e:
        log.error(f"Error setting up database: {e}", exc_info=True)
        raise
    finally:
        await dispose_engines()


if __name__ == "__main__":
    asyncio.run(main())
