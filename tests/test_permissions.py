"""Permission resolution tests, run against every configured backend."""
import asyncio

import pytest

from tenant_rbac.core.errors import ReferentialIntegrityError
from tenant_rbac.core.result import unwrap
from tenant_rbac.features.organizations.schemas import CreateOrganizationInput
from tenant_rbac.features.roles.schemas import CreateRoleInput
from tenant_rbac.features.users.schemas import CreateUserInput


pytestmark = pytest.mark.asyncio


async def _user_and_roles(ctx, org_id, user_id="u1", role_ids=("admin",)):
    for role_id in role_ids:
        unwrap(await ctx.repos.role.create(org_id, CreateRoleInput(id=role_id, name=role_id)))
    unwrap(await ctx.repos.user.create(org_id, CreateUserInput(
        id=user_id, identity_provider="google", identity_provider_user_id=user_id, role_ids=list(role_ids)
    )))


def _grants(permissions):
    return {(p.resource_id, p.action, p.source, p.source_id) for p in permissions}


class TestScenario:

    async def test_role_grant_on_api_subtree(self, root, make_context):
        unwrap(await root.repos.organization.create(CreateOrganizationInput(id="o1", name="O1")))
        ctx = make_context("o1")
        unwrap(await ctx.repos.user.create("o1", CreateUserInput(
            id="u1", identity_provider="google", identity_provider_user_id="u1"
        )))
        unwrap(await ctx.repos.role.create("o1", CreateRoleInput(id="admin", name="Admin")))
        unwrap(await ctx.repos.user.assign_role("o1", "u1", "admin"))
        unwrap(await ctx.repos.permission.grant_role_permission("o1", "admin", "/api/*", "read"))

        assert unwrap(await ctx.repos.permission.has_permission("o1", "u1", "/api/users", "read")) is True
        assert unwrap(await ctx.repos.permission.has_permission("o1", "u1", "/billing", "read")) is False


class TestGrants:

    async def test_grant_is_idempotent_and_refreshes_created_at(self, make_context, orgs):
        ctx = make_context("org-a")
        await _user_and_roles(ctx, "org-a")
        first = unwrap(await ctx.repos.permission.grant_user_permission("org-a", "u1", "/docs", "read"))
        await asyncio.sleep(0.01)
        second = unwrap(await ctx.repos.permission.grant_user_permission("org-a", "u1", "/docs", "read"))

        assert second.created_at > first.created_at
        stored = unwrap(await ctx.repos.permission.get_user_permissions("org-a", "u1"))
        assert len(stored) == 1
        assert stored[0].created_at == second.created_at

    async def test_role_grant_is_idempotent(self, make_context, orgs):
        ctx = make_context("org-a")
        await _user_and_roles(ctx, "org-a")
        for _ in range(2):
            unwrap(await ctx.repos.permission.grant_role_permission("org-a", "admin", "/docs/*", "write"))
        assert len(unwrap(await ctx.repos.permission.get_role_permissions("org-a", "admin"))) == 1

    async def test_grant_for_missing_principal(self, make_context, orgs):
        ctx = make_context("org-a")
        result = await ctx.repos.permission.grant_user_permission("org-a", "ghost", "/docs", "read")
        assert isinstance(result.error, ReferentialIntegrityError)

    async def test_grant_on_resource_without_a_row(self, make_context, orgs):
        ctx = make_context("org-a")
        await _user_and_roles(ctx, "org-a")
        granted = unwrap(await ctx.repos.permission.grant_user_permission("org-a", "u1", "/india/*", "read"))
        assert granted.resource_id == "/india/*"

    async def test_revoke(self, make_context, orgs):
        ctx = make_context("org-a")
        await _user_and_roles(ctx, "org-a")
        unwrap(await ctx.repos.permission.grant_user_permission("org-a", "u1", "/docs", "read"))
        unwrap(await ctx.repos.permission.grant_role_permission("org-a", "admin", "/docs", "read"))

        assert unwrap(await ctx.repos.permission.revoke_user_permission("org-a", "u1", "/docs", "read")) is True
        assert unwrap(await ctx.repos.permission.revoke_role_permission("org-a", "admin", "/docs", "read")) is True
        assert unwrap(await ctx.repos.permission.has_permission("org-a", "u1", "/docs", "read")) is False

    async def test_revoking_a_grant_that_never_existed(self, make_context, orgs):
        ctx = make_context("org-a")
        result = await ctx.repos.permission.revoke_user_permission("org-a", "u1", "/never", "read")
        assert result.success is True
        assert result.data is False
        result = await ctx.repos.permission.revoke_role_permission("org-a", "nobody", "/never", "read")
        assert result.success is True
        assert result.data is False


class TestEffectivePermissions:

    async def test_union_of_direct_and_role_grants(self, make_context, orgs):
        ctx = make_context("org-a")
        await _user_and_roles(ctx, "org-a", role_ids=("admin", "auditor"))
        unwrap(await ctx.repos.permission.grant_user_permission("org-a", "u1", "/docs/*", "read"))
        unwrap(await ctx.repos.permission.grant_role_permission("org-a", "admin", "/api/*", "read"))
        unwrap(await ctx.repos.permission.grant_role_permission("org-a", "admin", "/api/users", "*"))
        unwrap(await ctx.repos.permission.grant_role_permission("org-a", "auditor", "/api/*", "read"))

        everything = unwrap(await ctx.repos.permission.get_effective_permissions("org-a", "u1"))
        assert _grants(everything) == {
            ("/docs/*", "read", "user", "u1"),
            ("/api/*", "read", "role", "admin"),
            ("/api/users", "*", "role", "admin"),
            ("/api/*", "read", "role", "auditor"),
        }

        reads_on_users = unwrap(await ctx.repos.permission.get_effective_permissions(
            "org-a", "u1", resource_id="/api/users", action="read"
        ))
        assert _grants(reads_on_users) == {
            ("/api/*", "read", "role", "admin"),
            ("/api/users", "*", "role", "admin"),
            ("/api/*", "read", "role", "auditor"),
        }

        writes = unwrap(await ctx.repos.permission.get_effective_permissions("org-a", "u1", action="write"))
        assert _grants(writes) == {("/api/users", "*", "role", "admin")}

    async def test_role_only_grant_authorizes(self, make_context, orgs):
        ctx = make_context("org-a")
        await _user_and_roles(ctx, "org-a")
        unwrap(await ctx.repos.permission.grant_role_permission("org-a", "admin", "/reports", "export"))

        assert unwrap(await ctx.repos.permission.has_permission("org-a", "u1", "/reports", "export")) is True
        rows = unwrap(await ctx.repos.permission.get_effective_permissions("org-a", "u1", "/reports", "export"))
        assert [(p.source, p.source_id) for p in rows] == [("role", "admin")]

    async def test_roles_not_held_do_not_count(self, make_context, orgs):
        ctx = make_context("org-a")
        await _user_and_roles(ctx, "org-a", role_ids=())
        unwrap(await ctx.repos.role.create("org-a", CreateRoleInput(id="admin", name="Admin")))
        unwrap(await ctx.repos.permission.grant_role_permission("org-a", "admin", "/reports", "export"))
        assert unwrap(await ctx.repos.permission.has_permission("org-a", "u1", "/reports", "export")) is False

    @pytest.mark.parametrize(
        "pattern, target, expected",
        [
            ("/a/b/*", "/a/b/c", True),
            ("/a/b/*", "/a/b", True),
            ("/a/b/*", "/a/x", False),
            ("/a/b", "/a/b", True),
            ("/a/b", "/a/b/c", False),
            ("/a/*/c", "/a//c/d", True),
            ("/a/*/c", "/a/b/c", False),
        ],
    )
    async def test_prefix_matching(self, make_context, orgs, pattern, target, expected):
        ctx = make_context("org-a")
        await _user_and_roles(ctx, "org-a")
        unwrap(await ctx.repos.permission.grant_user_permission("org-a", "u1", pattern, "read"))
        assert unwrap(await ctx.repos.permission.has_permission("org-a", "u1", target, "read")) is expected

    async def test_action_must_match(self, make_context, orgs):
        ctx = make_context("org-a")
        await _user_and_roles(ctx, "org-a")
        unwrap(await ctx.repos.permission.grant_user_permission("org-a", "u1", "/docs/*", "read"))
        assert unwrap(await ctx.repos.permission.has_permission("org-a", "u1", "/docs/a", "write")) is False

    async def test_by_prefix(self, make_context, orgs):
        ctx = make_context("org-a")
        await _user_and_roles(ctx, "org-a")
        unwrap(await ctx.repos.permission.grant_user_permission("org-a", "u1", "/india/data/legal", "read"))
        unwrap(await ctx.repos.permission.grant_user_permission("org-a", "u1", "/usa/data", "read"))
        unwrap(await ctx.repos.permission.grant_role_permission("org-a", "admin", "/india/*", "write"))

        subtree = unwrap(await ctx.repos.permission.get_effective_permissions_by_prefix("org-a", "u1", "/india/data"))
        assert _grants(subtree) == {
            ("/india/data/legal", "read", "user", "u1"),
            ("/india/*", "write", "role", "admin"),
        }

        writes = unwrap(await ctx.repos.permission.get_effective_permissions_by_prefix(
            "org-a", "u1", "/india/data", action="write"
        ))
        assert _grants(writes) == {("/india/*", "write", "role", "admin")}

    async def test_permissions_by_resource_is_exact(self, make_context, orgs):
        ctx = make_context("org-a")
        await _user_and_roles(ctx, "org-a")
        unwrap(await ctx.repos.permission.grant_user_permission("org-a", "u1", "/docs", "read"))
        unwrap(await ctx.repos.permission.grant_role_permission("org-a", "admin", "/docs", "write"))
        unwrap(await ctx.repos.permission.grant_role_permission("org-a", "admin", "/docs/*", "read"))

        by_resource = unwrap(await ctx.repos.permission.get_permissions_by_resource("org-a", "/docs"))
        assert [(p.user_id, p.action) for p in by_resource.user_permissions] == [("u1", "read")]
        assert [(p.role_id, p.action) for p in by_resource.role_permissions] == [("admin", "write")]
