"""Tests for the schema setup script on the embedded backend."""
import pytest

from scripts.setup_database import DEFAULT_ROLES, seed_organization, setup_schema
from tenant_rbac.context import create_context
from tenant_rbac.core.config import POSTGRES, SQLITE, Settings
from tenant_rbac.core.database.engine import dispose_engines
from tenant_rbac.core.errors import ConfigurationError
from tenant_rbac.core.result import unwrap


pytestmark = pytest.mark.asyncio


class TestSetupDatabase:

    async def test_seeded_organization_has_working_default_roles(self, tmp_path):
        settings = Settings(backend=SQLITE, sqlite_path=str(tmp_path / "setup.db"))
        try:
            await setup_schema(settings)
            await seed_organization(settings, "acme")
            # Running again is harmless
            await setup_schema(settings)
            await seed_organization(settings, "acme")

            ctx = create_context("acme", settings)
            roles = unwrap(await ctx.repos.role.list_by_org("acme"))
            assert [r.id for r in roles.nodes] == sorted(DEFAULT_ROLES)

            grants = unwrap(await ctx.repos.permission.get_role_permissions("acme", "viewer"))
            assert [(g.resource_id, g.action) for g in grants] == [("/*", "read")]
        finally:
            await dispose_engines()

    async def test_postgres_needs_an_admin_url(self):
        with pytest.raises(ConfigurationError):
            await setup_schema(Settings(backend=POSTGRES), admin_url=None)
