"""
Resource model.

A resource id is a hierarchical path such as ``/india/data/legal``. Ids that
end with ``*`` denote a subtree and exist mainly as grant targets.
"""
from sqlalchemy import String, Text, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from tenant_rbac.core.database.base import Base, TimestampMixin


class Resource(Base, TimestampMixin):
    """Protected path within an organization."""
    __tablename__ = "resources"
    
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    org_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        primary_key=True,
        index=True
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    
    __table_args__ = (
        Index("ix_resources_org_name", "org_id", "name"),
    )
    
    def __repr__(self) -> str:
        return f"<Resource(id={self.id!r}, org_id={self.org_id})>"


resources = Resource.__table__
