"""Role repository tests, run against every configured backend."""
import sys

import pytest
import sqlalchemy

from tenant_rbac.core.errors import DuplicateKeyError, NotFoundError, ReferentialIntegrityError, StorageError
from tenant_rbac.core.result import unwrap
from tenant_rbac.core.schemas import PropertyFilter, PropertyInput
from tenant_rbac.features.roles.models import roles
from tenant_rbac.features.roles.schemas import CreateRoleInput, RoleFilter, UpdateRoleInput
from tenant_rbac.features.users.schemas import CreateUserInput


pytestmark = pytest.mark.asyncio


class TestRoleCrud:

    async def test_create_get_update(self, make_context, orgs):
        ctx = make_context("org-a")
        created = unwrap(await ctx.repos.role.create("org-a", CreateRoleInput(
            id="admin", name="Admin", description="Everything",
            properties=[PropertyInput(name="builtin", value=True)],
        )))
        assert created.name == "Admin"
        assert unwrap(await ctx.repos.role.get_by_id("org-a", "admin")) == created

        updated = unwrap(await ctx.repos.role.update("org-a", "admin", UpdateRoleInput(description=None)))
        assert updated.name == "Admin"
        assert updated.description is None

        builtin = unwrap(await ctx.repos.role.get_property("org-a", "admin", "builtin"))
        assert builtin.value is True

    async def test_duplicate_id(self, make_context, orgs):
        ctx = make_context("org-a")
        unwrap(await ctx.repos.role.create("org-a", CreateRoleInput(id="admin", name="Admin")))
        result = await ctx.repos.role.create("org-a", CreateRoleInput(id="admin", name="Other"))
        assert isinstance(result.error, DuplicateKeyError)
        assert str(result.error) == "duplicate key: role already exists"

    async def test_create_under_missing_organization(self, make_context, orgs):
        ctx = make_context("missing")
        result = await ctx.repos.role.create("missing", CreateRoleInput(id="admin", name="Admin"))
        assert result.success is False
        assert isinstance(result.error, ReferentialIntegrityError)

    async def test_update_missing(self, make_context, orgs):
        result = await make_context("org-a").repos.role.update("org-a", "nope", UpdateRoleInput(name="x"))
        assert isinstance(result.error, NotFoundError)

    async def test_list_with_filters(self, make_context, orgs):
        ctx = make_context("org-a")
        for role_id, name, scope in (("admin", "Admin", "all"), ("auditor", "Auditor", "read"), ("viewer", "Viewer", "read")):
            unwrap(await ctx.repos.role.create("org-a", CreateRoleInput(
                id=role_id, name=name, properties=[PropertyInput(name="scope", value=scope)]
            )))

        assert [r.id for r in unwrap(await ctx.repos.role.list_by_org("org-a")).nodes] == ["admin", "auditor", "viewer"]
        assert [r.id for r in unwrap(await ctx.repos.role.list("org-a", RoleFilter(name="Viewer"))).nodes] == ["viewer"]
        readers = unwrap(await ctx.repos.role.list("org-a", RoleFilter(
            properties=[PropertyFilter(name="scope", value="read")]
        )))
        assert [r.id for r in readers.nodes] == ["auditor", "viewer"]
        assert readers.total_count == 2

    async def test_delete_cascades(self, make_context, orgs):
        ctx = make_context("org-a")
        unwrap(await ctx.repos.role.create("org-a", CreateRoleInput(
            id="admin", name="Admin", properties=[PropertyInput(name="builtin", value=True)]
        )))
        unwrap(await ctx.repos.user.create("org-a", CreateUserInput(
            id="u1", identity_provider="google", identity_provider_user_id="s1", role_ids=["admin"]
        )))
        unwrap(await ctx.repos.permission.grant_role_permission("org-a", "admin", "/api/*", "read"))

        assert unwrap(await ctx.repos.role.delete("org-a", "admin")) is True
        assert unwrap(await ctx.repos.role.get_by_id("org-a", "admin")) is None
        assert unwrap(await ctx.repos.role.get_properties("org-a", "admin")) == []
        assert unwrap(await ctx.repos.role.get_user_ids("org-a", "admin")) == []
        assert unwrap(await ctx.repos.permission.get_role_permissions("org-a", "admin")) == []
        assert unwrap(await ctx.repos.user.get_role_ids("org-a", "u1")) == []
        assert unwrap(await ctx.repos.permission.has_permission("org-a", "u1", "/api/users", "read")) is False
        assert unwrap(await ctx.repos.role.delete("org-a", "admin")) is False

    async def test_failed_delete_leaves_everything_in_place(self, make_context, orgs, monkeypatch):
        ctx = make_context("org-a")
        unwrap(await ctx.repos.role.create("org-a", CreateRoleInput(
            id="admin", name="Admin", properties=[PropertyInput(name="builtin", value=True)]
        )))
        unwrap(await ctx.repos.user.create("org-a", CreateUserInput(
            id="u1", identity_provider="google", identity_provider_user_id="s1", role_ids=["admin"]
        )))
        unwrap(await ctx.repos.permission.grant_role_permission("org-a", "admin", "/api/*", "read"))

        # Properties, grants and assignments are removed first, then the role row itself fails
        def failing_delete(table):
            if table is roles:
                raise RuntimeError("disk I/O error")
            return sqlalchemy.delete(table)

        repository_module = sys.modules[type(ctx.repos.role).__module__]
        monkeypatch.setattr(repository_module, "delete", failing_delete)

        result = await ctx.repos.role.delete("org-a", "admin")
        assert result.success is False
        assert isinstance(result.error, StorageError)

        monkeypatch.undo()
        assert unwrap(await ctx.repos.role.get_by_id("org-a", "admin")) is not None
        assert [p.name for p in unwrap(await ctx.repos.role.get_properties("org-a", "admin"))] == ["builtin"]
        assert unwrap(await ctx.repos.role.get_user_ids("org-a", "admin")) == ["u1"]
        grants = unwrap(await ctx.repos.permission.get_role_permissions("org-a", "admin"))
        assert [(g.resource_id, g.action) for g in grants] == [("/api/*", "read")]
        assert unwrap(await ctx.repos.permission.has_permission("org-a", "u1", "/api/users", "read")) is True


class TestRoleMembers:

    async def test_get_user_ids(self, make_context, orgs):
        ctx = make_context("org-a")
        unwrap(await ctx.repos.role.create("org-a", CreateRoleInput(id="admin", name="Admin")))
        for user_id in ("u2", "u1"):
            unwrap(await ctx.repos.user.create("org-a", CreateUserInput(
                id=user_id, identity_provider="google", identity_provider_user_id=user_id, role_ids=["admin"]
            )))
        assert unwrap(await ctx.repos.role.get_user_ids("org-a", "admin")) == ["u1", "u2"]
