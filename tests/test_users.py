"""User repository tests, run against every configured backend."""
import pytest

from tenant_rbac.core.errors import DuplicateKeyError, NotFoundError, ReferentialIntegrityError
from tenant_rbac.core.result import unwrap
from tenant_rbac.core.schemas import PaginationInput, PropertyFilter, PropertyInput
from tenant_rbac.features.roles.schemas import CreateRoleInput
from tenant_rbac.features.users.schemas import CreateUserInput, UpdateUserInput, UserFilter


pytestmark = pytest.mark.asyncio


def _user(user_id: str, subject: str = None, **kwargs) -> CreateUserInput:
    return CreateUserInput(
        id=user_id,
        identity_provider="google",
        identity_provider_user_id=subject or f"sub-{user_id}",
        **kwargs,
    )


class TestUserCrud:

    async def test_create_and_get(self, make_context, orgs):
        ctx = make_context("org-a")
        created = unwrap(await ctx.repos.user.create("org-a", _user("u1")))
        assert created.org_id == "org-a"
        assert created.identity_provider_user_id == "sub-u1"
        assert unwrap(await ctx.repos.user.get_by_id("org-a", "u1")) == created
        assert unwrap(await ctx.repos.user.get_by_id("org-a", "u2")) is None

    async def test_create_with_properties_and_roles(self, make_context, orgs):
        ctx = make_context("org-a")
        unwrap(await ctx.repos.role.create("org-a", CreateRoleInput(id="admin", name="Admin")))
        unwrap(await ctx.repos.user.create("org-a", _user(
            "u1",
            properties=[PropertyInput(name="email", value="u1@example.com")],
            role_ids=["admin"],
        )))
        assert unwrap(await ctx.repos.user.get_role_ids("org-a", "u1")) == ["admin"]
        email = unwrap(await ctx.repos.user.get_property("org-a", "u1", "email"))
        assert email.value == "u1@example.com"

    async def test_create_rolls_back_when_a_role_is_missing(self, make_context, orgs):
        ctx = make_context("org-a")
        result = await ctx.repos.user.create("org-a", _user(
            "u1", properties=[PropertyInput(name="email", value="x")], role_ids=["missing"]
        ))
        assert result.success is False
        assert isinstance(result.error, ReferentialIntegrityError)
        assert unwrap(await ctx.repos.user.get_by_id("org-a", "u1")) is None
        assert unwrap(await ctx.repos.user.get_properties("org-a", "u1")) == []

    async def test_duplicate_id(self, make_context, orgs):
        ctx = make_context("org-a")
        unwrap(await ctx.repos.user.create("org-a", _user("u1")))
        result = await ctx.repos.user.create("org-a", _user("u1", subject="other"))
        assert isinstance(result.error, DuplicateKeyError)
        assert str(result.error) == "duplicate key: user already exists"

    async def test_same_id_in_two_orgs(self, make_context, orgs):
        unwrap(await make_context("org-a").repos.user.create("org-a", _user("u1")))
        unwrap(await make_context("org-b").repos.user.create("org-b", _user("u1")))

    async def test_partial_update(self, make_context, orgs):
        ctx = make_context("org-a")
        unwrap(await ctx.repos.user.create("org-a", _user("u1")))
        updated = unwrap(await ctx.repos.user.update(
            "org-a", "u1", UpdateUserInput(identity_provider_user_id="sub-new")
        ))
        assert updated.identity_provider == "google"
        assert updated.identity_provider_user_id == "sub-new"

    async def test_update_missing(self, make_context, orgs):
        result = await make_context("org-a").repos.user.update("org-a", "nope", UpdateUserInput(identity_provider="x"))
        assert isinstance(result.error, NotFoundError)

    async def test_delete_cascades(self, make_context, orgs):
        ctx = make_context("org-a")
        unwrap(await ctx.repos.role.create("org-a", CreateRoleInput(id="admin", name="Admin")))
        unwrap(await ctx.repos.user.create("org-a", _user(
            "u1", properties=[PropertyInput(name="email", value="x")], role_ids=["admin"]
        )))
        unwrap(await ctx.repos.permission.grant_user_permission("org-a", "u1", "/docs", "read"))

        assert unwrap(await ctx.repos.user.delete("org-a", "u1")) is True
        assert unwrap(await ctx.repos.user.delete("org-a", "u1")) is False
        assert unwrap(await ctx.repos.user.get_properties("org-a", "u1")) == []
        assert unwrap(await ctx.repos.role.get_user_ids("org-a", "admin")) == []
        assert unwrap(await ctx.repos.permission.get_user_permissions("org-a", "u1")) == []
        assert unwrap(await ctx.repos.role.get_by_id("org-a", "admin")) is not None


class TestIdentityLookup:

    async def test_get_by_identity(self, make_context, orgs):
        ctx = make_context("org-a")
        unwrap(await ctx.repos.user.create("org-a", _user("u1", subject="sub-1")))
        found = unwrap(await ctx.repos.user.get_by_identity("org-a", "google", "sub-1"))
        assert found.id == "u1"
        assert unwrap(await ctx.repos.user.get_by_identity("org-a", "github", "sub-1")) is None

    async def test_list_by_identity_spans_organizations(self, make_context, orgs):
        unwrap(await make_context("org-a").repos.user.create("org-a", _user("alice", subject="sub-1")))
        unwrap(await make_context("org-b").repos.user.create("org-b", _user("alice-b", subject="sub-1")))

        ctx = make_context("org-a")
        users = unwrap(await ctx.repos.user.list_by_identity("google", "sub-1"))
        assert [(u.org_id, u.id) for u in users] == [("org-a", "alice"), ("org-b", "alice-b")]
        assert ctx.db.org_id == "org-a"


class TestUserListing:

    async def test_filters_and_pagination(self, make_context, orgs):
        ctx = make_context("org-a")
        for n in range(1, 6):
            unwrap(await ctx.repos.user.create("org-a", _user(
                f"u{n}",
                properties=[
                    PropertyInput(name="team", value="eng" if n % 2 else "ops"),
                    PropertyInput(name="level", value=n),
                ],
            )))

        everyone = unwrap(await ctx.repos.user.list_by_org("org-a"))
        assert everyone.total_count == 5

        page = unwrap(await ctx.repos.user.list("org-a", pagination=PaginationInput(limit=2, offset=2)))
        assert [u.id for u in page.nodes] == ["u3", "u4"]
        assert page.page_info.has_next_page and page.page_info.has_previous_page

        engineers = unwrap(await ctx.repos.user.list("org-a", UserFilter(properties=[
            PropertyFilter(name="team", value="eng"),
        ])))
        assert [u.id for u in engineers.nodes] == ["u1", "u3", "u5"]

        senior_engineer = unwrap(await ctx.repos.user.list("org-a", UserFilter(properties=[
            PropertyFilter(name="team", value="eng"),
            PropertyFilter(name="level", value=5),
        ])))
        assert [u.id for u in senior_engineer.nodes] == ["u5"]
        assert senior_engineer.total_count == 1

        by_subject = unwrap(await ctx.repos.user.list("org-a", UserFilter(identity_provider_user_id="sub-u2")))
        assert [u.id for u in by_subject.nodes] == ["u2"]

        by_ids = unwrap(await ctx.repos.user.list("org-a", UserFilter(ids=["u2", "u4", "zzz"])))
        assert [u.id for u in by_ids.nodes] == ["u2", "u4"]

    async def test_object_property_filter_ignores_key_order(self, make_context, orgs):
        ctx = make_context("org-a")
        unwrap(await ctx.repos.user.create("org-a", _user("u1", properties=[
            PropertyInput(name="cfg", value={"a": 1, "b": {"y": [1, 2], "x": None}}),
        ])))
        unwrap(await ctx.repos.user.create("org-a", _user("u2", properties=[
            PropertyInput(name="cfg", value={"a": 2, "b": {"y": [1, 2], "x": None}}),
        ])))

        for value in (
            {"a": 1, "b": {"y": [1, 2], "x": None}},
            {"b": {"x": None, "y": [1, 2]}, "a": 1},
        ):
            found = unwrap(await ctx.repos.user.list("org-a", UserFilter(properties=[
                PropertyFilter(name="cfg", value=value),
            ])))
            assert [u.id for u in found.nodes] == ["u1"]
            assert found.total_count == 1

        stored = unwrap(await ctx.repos.user.get_property("org-a", "u1", "cfg"))
        assert stored.value == {"a": 1, "b": {"x": None, "y": [1, 2]}}


class TestUserRolesAndProperties:

    async def test_assign_role_is_idempotent(self, make_context, orgs):
        ctx = make_context("org-a")
        unwrap(await ctx.repos.role.create("org-a", CreateRoleInput(id="admin", name="Admin")))
        unwrap(await ctx.repos.role.create("org-a", CreateRoleInput(id="viewer", name="Viewer")))
        unwrap(await ctx.repos.user.create("org-a", _user("u1")))

        unwrap(await ctx.repos.user.assign_role("org-a", "u1", "viewer"))
        unwrap(await ctx.repos.user.assign_role("org-a", "u1", "admin"))
        unwrap(await ctx.repos.user.assign_role("org-a", "u1", "admin"))
        assert unwrap(await ctx.repos.user.get_role_ids("org-a", "u1")) == ["admin", "viewer"]

        unwrap(await ctx.repos.user.unassign_role("org-a", "u1", "admin"))
        unwrap(await ctx.repos.user.unassign_role("org-a", "u1", "admin"))
        assert unwrap(await ctx.repos.user.get_role_ids("org-a", "u1")) == ["viewer"]

    async def test_assign_missing_role(self, make_context, orgs):
        ctx = make_context("org-a")
        unwrap(await ctx.repos.user.create("org-a", _user("u1")))
        result = await ctx.repos.user.assign_role("org-a", "u1", "missing")
        assert isinstance(result.error, ReferentialIntegrityError)

    async def test_json_property_round_trip(self, make_context, orgs):
        ctx = make_context("org-a")
        unwrap(await ctx.repos.user.create("org-a", _user("u1")))
        value = {
            "name": "Ada",
            "tags": ["admin", {"nested": [1, 2, {"deep": None}]}],
            "score": 9.5,
            "active": True,
        }
        unwrap(await ctx.repos.user.set_property("org-a", "u1", PropertyInput(name="profile", value=value)))
        stored = unwrap(await ctx.repos.user.get_property("org-a", "u1", "profile"))
        assert stored.value == value

    async def test_property_on_missing_user(self, make_context, orgs):
        result = await make_context("org-a").repos.user.set_property(
            "org-a", "ghost", PropertyInput(name="x", value=1)
        )
        assert isinstance(result.error, ReferentialIntegrityError)

    async def test_delete_property(self, make_context, orgs):
        ctx = make_context("org-a")
        unwrap(await ctx.repos.user.create("org-a", _user("u1", properties=[PropertyInput(name="x", value=1)])))
        assert unwrap(await ctx.repos.user.delete_property("org-a", "u1", "x")) is True
        assert unwrap(await ctx.repos.user.delete_property("org-a", "u1", "x")) is False
