"""Shared fixtures: one fresh database per test, on each available backend.

SQLite always runs, on a file under pytest's tmp_path. PostgreSQL runs when
TEST_POSTGRES_URL points at a database the test may wipe, using a superuser
(or a role with CREATEROLE) so the two principals and the row-security
policies can be installed. Otherwise the postgres parameter is skipped.
"""
import os
from collections.abc import AsyncGenerator, Callable
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import create_async_engine

from tenant_rbac.context import DataContext, create_context
from tenant_rbac.core.config import POSTGRES, SQLITE, Settings
from tenant_rbac.core.database.base import Base
from tenant_rbac.core.database.engine import dispose_engines, init_db, sqlite_engine
from tenant_rbac.core.database.security import create_principals, install_row_security
from tenant_rbac.features.organizations.schemas import CreateOrganizationInput


TEST_POSTGRES_URL = os.getenv("TEST_POSTGRES_URL")

RLS_TEST_USER = "tenant_rbac_test_rls"
UNRESTRICTED_TEST_USER = "tenant_rbac_test_unrestricted"
TEST_PASSWORD = "tenant_rbac_test"


async def _prepare_postgres() -> Settings:
    url = make_url(TEST_POSTGRES_URL).set(drivername="postgresql+asyncpg")
    admin = create_async_engine(url)
    try:
        async with admin.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await init_db(admin)
        async with admin.begin() as conn:
            await create_principals(conn, RLS_TEST_USER, TEST_PASSWORD, UNRESTRICTED_TEST_USER, TEST_PASSWORD)
            await install_row_security(conn, RLS_TEST_USER, UNRESTRICTED_TEST_USER)
    finally:
        await admin.dispose()

    return Settings(
        backend=POSTGRES,
        db_host=url.host or "localhost",
        db_port=url.port or 5432,
        db_name=url.database,
        rls_user=RLS_TEST_USER,
        rls_password=TEST_PASSWORD,
        unrestricted_user=UNRESTRICTED_TEST_USER,
        unrestricted_password=TEST_PASSWORD,
        pool_size=5,
    )


@pytest_asyncio.fixture(params=[SQLITE, pytest.param(POSTGRES, marks=pytest.mark.postgres)])
async def settings(request, tmp_path) -> AsyncGenerator[Settings, None]:
    """Settings for a freshly created, empty schema."""
    if request.param == POSTGRES:
        if not TEST_POSTGRES_URL:
            pytest.skip("TEST_POSTGRES_URL is not set")
        prepared = await _prepare_postgres()
    else:
        prepared = Settings(backend=SQLITE, sqlite_path=str(tmp_path / "tenant_rbac.db"))
        await init_db(sqlite_engine(prepared))

    yield prepared

    # Pools are bound to the test's event loop
    await dispose_engines()


@pytest.fixture
def make_context(settings: Settings) -> Callable[[Optional[str]], DataContext]:
    def _make(org_id: Optional[str] = None) -> DataContext:
        return create_context(org_id, settings)
    return _make


@pytest.fixture
def root(make_context) -> DataContext:
    return make_context(None)


@pytest_asyncio.fixture
async def orgs(root: DataContext) -> tuple[str, str]:
    """Two organizations, ``org-a`` and ``org-b``."""
    for org_id in ("org-a", "org-b"):
        result = await root.repos.organization.create(CreateOrganizationInput(id=org_id, name=org_id.upper()))
        assert result.success, result
    return "org-a", "org-b"

