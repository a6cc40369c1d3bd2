"""Unit tests for configuration and logging setup."""
import json
import logging

import pytest

from tenant_rbac.context import create_context
from tenant_rbac.core.config import POSTGRES, SQLITE, Settings, load_settings
from tenant_rbac.core.errors import ConfigurationError
from tenant_rbac.utils import StructuredFormatter


class TestSettings:

    def test_unknown_backend_is_rejected(self):
        with pytest.raises(ConfigurationError):
            Settings(backend="mysql")

    def test_missing_passwords(self):
        settings = Settings(backend=POSTGRES)
        with pytest.raises(ConfigurationError):
            settings.require_rls_password()
        with pytest.raises(ConfigurationError):
            settings.require_unrestricted_password()

    def test_missing_sqlite_path(self):
        with pytest.raises(ConfigurationError):
            Settings(backend=SQLITE, sqlite_path="").require_sqlite_path()

    def test_load_settings_from_environment(self):
        settings = load_settings()
        assert settings.backend in (POSTGRES, SQLITE)
        assert settings.pool_size > 0


class TestLazyContext:

    def test_context_creation_does_not_connect(self):
        ctx = create_context("acme", Settings(backend=POSTGRES))
        assert ctx.org_id == "acme"
        assert not ctx.db.is_initialized

    @pytest.mark.asyncio
    async def test_missing_credentials_fail_before_any_query(self):
        ctx = create_context("acme", Settings(backend=POSTGRES))
        with pytest.raises(ConfigurationError):
            await ctx.repos.user.get_by_id("acme", "u1")

    def test_root_org_id_means_unrestricted(self):
        ctx = create_context("ROOT", Settings(backend=SQLITE, sqlite_path=":memory:"))
        assert ctx.org_id is None
        assert ctx.is_root


class TestStructuredFormatter:

    def test_json_line_includes_context_fields(self):
        record = logging.LogRecord("tenant_rbac.test", logging.INFO, __file__, 1, "escalated %s", ("o1",), None)
        record.from_org_id = "o1"
        record.reason = "list organizations"
        line = json.loads(StructuredFormatter().format(record))
        assert line["message"] == "escalated o1"
        assert line["level"] == "info"
        assert line["from_org_id"] == "o1"
        assert line["reason"] == "list organizations"
        assert "org_id" not in line
