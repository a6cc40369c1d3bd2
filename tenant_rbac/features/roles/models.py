"""
Role models and the user/role assignment table.
"""
from datetime import datetime
from sqlalchemy import String, Text, ForeignKey, ForeignKeyConstraint, Index, Table, Column, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from tenant_rbac.core.database.base import Base, TimestampMixin, PropertyMixin, utcnow


class Role(Base, TimestampMixin):
    """
    Named bundle of permissions within one organization.
    
    Examples: admin, billing_manager, auditor
    """
    __tablename__ = "roles"
    
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    org_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        primary_key=True,
        index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    
    __table_args__ = (
        Index("ix_roles_org_name", "org_id", "name"),
    )
    
    def __repr__(self) -> str:
        return f"<Role(id={self.id}, org_id={self.org_id}, name={self.name!r})>"


class RoleProperty(Base, PropertyMixin):
    """Key/value property attached to a role."""
    __tablename__ = "role_properties"
    
    org_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        primary_key=True,
        index=True
    )
    
    __table_args__ = (
        ForeignKeyConstraint(
            ["parent_id", "org_id"],
            ["roles.id", "roles.org_id"],
            ondelete="CASCADE",
        ),
    )


# Users hold roles within a single organization
user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", String(255), primary_key=True),
    Column("role_id", String(255), primary_key=True),
    Column("org_id", String(255), ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    ForeignKeyConstraint(["user_id", "org_id"], ["users.id", "users.org_id"], ondelete="CASCADE"),
    ForeignKeyConstraint(["role_id", "org_id"], ["roles.id", "roles.org_id"], ondelete="CASCADE"),
    Index("ix_user_roles_user", "user_id", "org_id"),
    Index("ix_user_roles_role", "role_id", "org_id"),
)


roles = Role.__table__
role_properties = RoleProperty.__table__
