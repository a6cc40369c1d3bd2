"""
Policy-enforced backend (PostgreSQL row-level security).

The restricted principal only sees rows whose ``org_id`` equals the
transaction-local setting ``app.current_org_id``. Every checked-out connection
sets it with ``set_config(..., true)`` inside the transaction, so the value
never outlives the transaction and never leaks to the next borrower of the
pooled connection. The unrestricted principal bypasses the policies.
"""
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from tenant_rbac.core.config import POSTGRES, Settings
from tenant_rbac.core.database.engine import postgres_engine
from tenant_rbac.core.database.interface import Database, EngineDatabase
from tenant_rbac.core.errors import TenantContextError
from tenant_rbac.utils import get_logger


log = get_logger(__name__)

ORG_SETTING = "app.current_org_id"
ROOT_ORG_ID = "ROOT"

_SET_ORG = text(f"SELECT set_config('{ORG_SETTING}', :org_id, true)")


class RlsDatabase(EngineDatabase):
    """Tenant-scoped database on the restricted principal."""
    backend = POSTGRES

    def __init__(self, settings: Settings, org_id: str):
        if not org_id:
            raise TenantContextError("Organization ID is required for a row-security database")
        super().__init__(
            postgres_engine(settings, settings.rls_user, settings.require_rls_password()),
            org_id,
        )
        self.settings = settings

    async def _prepare(self, connection: AsyncConnection) -> None:
        await connection.execute(_SET_ORG, {"org_id": self.org_id})

    def upgrade_to_root(self, reason: str) -> Database:
        log.info(
            "Escalating to ROOT context from org %s: %s",
            self.org_id, reason,
            extra={"from_org_id": self.org_id, "reason": reason},
        )
        return UnrestrictedDatabase(self.settings)


class UnrestrictedDatabase(EngineDatabase):
    """ROOT database on the unrestricted principal. Not bound to any org."""
    backend = POSTGRES

    def __init__(self, settings: Settings):
        super().__init__(
            postgres_engine(settings, settings.unrestricted_user, settings.require_unrestricted_password()),
            None,
        )
        self.settings = settings

    def upgrade_to_root(self, reason: str) -> Database:
        return self


def create_rls_db(settings: Settings, org_id: str) -> Database:
    """
    Create a tenant-scoped database, or a ROOT one for the special org id ``ROOT``.
    """
    if not org_id:
        raise TenantContextError("Organization ID is required for a row-security database")
    if org_id == ROOT_ORG_ID:
        return create_unrestricted_db(settings)
    return RlsDatabase(settings, org_id)


def create_unrestricted_db(settings: Settings) -> Database:
    return UnrestrictedDatabase(settings)
