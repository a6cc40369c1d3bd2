"""
Permission grant tables.

Grants reference a resource id *pattern*, not a stored resource row: a grant on
``/india/*`` is valid even when no resource with that literal id exists. For
that reason neither table has a foreign key on ``resource_id``. Deleting a
resource removes exact-id grants through the repositories instead.
"""
from sqlalchemy import String, ForeignKey, ForeignKeyConstraint, Index, Table, Column, DateTime

from tenant_rbac.core.database.base import Base, utcnow


# Direct grants to a user
user_permissions = Table(
    "user_permissions",
    Base.metadata,
    Column("user_id", String(255), primary_key=True),
    Column("org_id", String(255), ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True),
    Column("resource_id", String(255), primary_key=True),
    Column("action", String(255), primary_key=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    ForeignKeyConstraint(["user_id", "org_id"], ["users.id", "users.org_id"], ondelete="CASCADE"),
    Index("ix_user_permissions_user", "user_id", "org_id"),
    Index("ix_user_permissions_resource", "resource_id", "org_id"),
)

# Grants inherited by every user holding the role
role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", String(255), primary_key=True),
    Column("org_id", String(255), ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True),
    Column("resource_id", String(255), primary_key=True),
    Column("action", String(255), primary_key=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    ForeignKeyConstraint(["role_id", "org_id"], ["roles.id", "roles.org_id"], ondelete="CASCADE"),
    Index("ix_role_permissions_role", "role_id", "org_id"),
    Index("ix_role_permissions_resource", "resource_id", "org_id"),
)
