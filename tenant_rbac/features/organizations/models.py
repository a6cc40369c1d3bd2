"""
Organization models.

Organizations are the tenant boundary. The organizations table is globally
visible (no row-security policy); every other table carries an ``org_id``
that cascades from it.
"""
from sqlalchemy import String, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from tenant_rbac.core.database.base import Base, TimestampMixin, PropertyMixin


class Organization(Base, TimestampMixin):
    """Tenant root. All users, roles and resources belong to exactly one."""
    __tablename__ = "organizations"
    
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="", index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    
    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r})>"


class OrganizationProperty(Base, PropertyMixin):
    """Key/value property attached to an organization."""
    __tablename__ = "organization_properties"
    
    parent_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        primary_key=True
    )
    
    def __repr__(self) -> str:
        return f"<OrganizationProperty(org={self.parent_id}, name={self.name!r})>"


organizations = Organization.__table__
organization_properties = OrganizationProperty.__table__
