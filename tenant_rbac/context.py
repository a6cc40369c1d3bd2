"""
Request data context.

A context pairs a database (bound to one organization, or unrestricted) with
the repositories built on it. Build one per request with ``create_context``;
nothing connects until the first query.

    ctx = create_context("acme")
    result = await ctx.repos.permission.has_permission("acme", "u1", "/api/users", "read")

    root = ctx.upgrade_to_root("list all organizations")
    orgs = await root.repos.organization.list()
"""
from dataclasses import dataclass
from typing import Optional

from tenant_rbac.core.config import Settings, load_settings
from tenant_rbac.core.database.interface import Database
from tenant_rbac.core.database.lazy import create_lazy_db
from tenant_rbac.repositories.factory import create_repositories
from tenant_rbac.repositories.interfaces import Repositories


@dataclass(frozen=True)
class DataContext:
    org_id: Optional[str]
    db: Database
    repos: Repositories

    @property
    def is_root(self) -> bool:
        return self.org_id is None

    def upgrade_to_root(self, reason: str) -> "DataContext":
        """
        Return an unrestricted copy of this context.

        This context is left untouched, so work already running on it keeps
        its tenant boundary.
        """
        if self.is_root:
            return self
        db = self.db.upgrade_to_root(reason)
        return DataContext(org_id=None, db=db, repos=create_repositories(db))


def create_context(org_id: Optional[str] = None, settings: Optional[Settings] = None) -> DataContext:
    """
    Create a data context.

    Args:
        org_id: Organization to bind to. ``None`` (or ``"ROOT"``) creates an
            unrestricted context.
        settings: Storage settings, read from the environment when omitted
    """
    db = create_lazy_db(settings or load_settings(), org_id)
    return DataContext(org_id=db.org_id, db=db, repos=create_repositories(db))
