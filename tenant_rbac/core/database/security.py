"""
Row-security policies for the PostgreSQL backend.

Every tenant-scoped table gets ``ENABLE ROW LEVEL SECURITY`` and an
``<table>_isolation`` policy for the restricted principal that admits only
rows whose ``org_id`` matches ``app.current_org_id``. Organization properties
are keyed on ``parent_id`` instead. The organizations table has no policy and
stays globally visible.

Creating the principals themselves needs superuser rights and is left to
``create_principals`` (used by tests and first-time setup).
"""
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from tenant_rbac.core.database.postgres import ORG_SETTING
from tenant_rbac.utils import get_logger


log = get_logger(__name__)

# Tables whose rows are filtered on org_id
TENANT_TABLES = (
    "users",
    "user_properties",
    "roles",
    "role_properties",
    "resources",
    "user_roles",
    "user_permissions",
    "role_permissions",
)


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


async def create_principals(
    connection: AsyncConnection,
    rls_user: str,
    rls_password: str,
    unrestricted_user: str,
    unrestricted_password: str,
):
    """Create the restricted and unrestricted login roles if they are missing."""
    for user, password, options in (
        (rls_user, rls_password, ""),
        (unrestricted_user, unrestricted_password, " BYPASSRLS"),
    ):
        exists = await connection.scalar(
            text("SELECT 1 FROM pg_roles WHERE rolname = :name"), {"name": user}
        )
        literal = password.replace("'", "''")
        if exists:
            await connection.execute(text(f"ALTER ROLE {_quote(user)} WITH LOGIN PASSWORD '{literal}'{options}"))
        else:
            await connection.execute(text(f"CREATE ROLE {_quote(user)} WITH LOGIN PASSWORD '{literal}'{options}"))


async def install_row_security(connection: AsyncConnection, rls_user: str, unrestricted_user: str):
    """
    Grant table access to both principals and install the isolation policies.

    Idempotent: existing policies are dropped and recreated.
    """
    rls = _quote(rls_user)
    unrestricted = _quote(unrestricted_user)

    await connection.execute(text(f"GRANT USAGE ON SCHEMA public TO {rls}"))
    await connection.execute(text(f"GRANT ALL ON SCHEMA public TO {unrestricted}"))
    await connection.execute(text(f"GRANT ALL ON ALL TABLES IN SCHEMA public TO {unrestricted}"))
    await connection.execute(
        text(f"GRANT SELECT, INSERT, UPDATE, DELETE ON ALL TABLES IN SCHEMA public TO {rls}")
    )

    predicate = f"org_id = current_setting('{ORG_SETTING}', true)"
    for table in TENANT_TABLES:
        await connection.execute(text(f"ALTER TABLE {_quote(table)} ENABLE ROW LEVEL SECURITY"))
        await connection.execute(text(f"DROP POLICY IF EXISTS {table}_isolation ON {_quote(table)}"))
        await connection.execute(text(
            f"CREATE POLICY {table}_isolation ON {_quote(table)} FOR ALL TO {rls} "
            f"USING ({predicate}) WITH CHECK ({predicate})"
        ))

    await connection.execute(text('ALTER TABLE "organization_properties" ENABLE ROW LEVEL SECURITY'))
    await connection.execute(
        text('DROP POLICY IF EXISTS organization_properties_isolation ON "organization_properties"')
    )
    await connection.execute(text(
        f'CREATE POLICY organization_properties_isolation ON "organization_properties" FOR ALL TO {rls} '
        f"USING (parent_id = current_setting('{ORG_SETTING}', true)) "
        f"WITH CHECK (parent_id = current_setting('{ORG_SETTING}', true))"
    ))
    log.info("Row-level security installed for %s", rls_user)
