"""
User models.

Users are tenant-scoped: the primary key is ``(id, org_id)``, so the same user
id may exist in several organizations. The identity-provider pair is indexed
but not unique.
"""
from sqlalchemy import String, ForeignKey, ForeignKeyConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from tenant_rbac.core.database.base import Base, TimestampMixin, PropertyMixin


class User(Base, TimestampMixin):
    """User known to an organization through an external identity provider."""
    __tablename__ = "users"
    
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    org_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        primary_key=True,
        index=True
    )
    identity_provider: Mapped[str] = mapped_column(String(255), nullable=False)
    identity_provider_user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    
    __table_args__ = (
        Index("ix_users_identity", "identity_provider", "identity_provider_user_id"),
    )
    
    def __repr__(self) -> str:
        return f"<User(id={self.id}, org_id={self.org_id}, idp={self.identity_provider})>"


class UserProperty(Base, PropertyMixin):
    """Key/value property attached to a user."""
    __tablename__ = "user_properties"
    
    org_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        primary_key=True,
        index=True
    )
    
    __table_args__ = (
        ForeignKeyConstraint(
            ["parent_id", "org_id"],
            ["users.id", "users.org_id"],
            ondelete="CASCADE",
        ),
    )


users = User.__table__
user_properties = UserProperty.__table__
