import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

from tenant_rbac.core.errors import ConfigurationError

# Load environment variables from .env file
load_dotenv()

POSTGRES = "postgres"
SQLITE = "sqlite"
BACKENDS = (POSTGRES, SQLITE)

# Storage backend discriminator
# postgres: tenant isolation enforced by row-level security policies
# sqlite: tenant isolation enforced by org_id predicates in every statement
DB_BACKEND: str = os.environ.get("TENANT_RBAC_DB_BACKEND", POSTGRES).lower()

# PostgreSQL location
DB_HOST: str = os.environ.get("TENANT_RBAC_DB_HOST", "localhost")
DB_PORT: int = int(os.environ.get("TENANT_RBAC_DB_PORT", "5432"))
DB_NAME: str = os.environ.get("TENANT_RBAC_DB_NAME", "tenant_rbac")

# Restricted principal, subject to the row-security policies
RLS_DB_USER: str = os.environ.get("RLS_DB_USER", "rls_db_user")
RLS_DB_USER_PASSWORD: Optional[str] = os.environ.get("RLS_DB_USER_PASSWORD")

# Unrestricted principal (BYPASSRLS), used for ROOT contexts
UNRESTRICTED_DB_USER: str = os.environ.get("UNRESTRICTED_DB_USER", "unrestricted_db_user")
UNRESTRICTED_DB_USER_PASSWORD: Optional[str] = os.environ.get("UNRESTRICTED_DB_USER_PASSWORD")

# Embedded database file (":memory:" for a throwaway database)
SQLITE_PATH: str = os.environ.get("TENANT_RBAC_SQLITE_PATH", "./tenant_rbac.db")

# Maximum connections per principal pool
DB_POOL_SIZE: int = int(os.environ.get("TENANT_RBAC_DB_POOL_SIZE", "20"))

# Owner/superuser connection used only by scripts.setup_database to create
# tables, principals and policies
ADMIN_DB_URL: Optional[str] = os.environ.get("TENANT_RBAC_ADMIN_DB_URL")

# Organization created with default roles by scripts.setup_database, if set
SEED_ORG_ID: Optional[str] = os.environ.get("TENANT_RBAC_SEED_ORG_ID")

LOG_LEVEL: str = os.environ.get("TENANT_RBAC_LOG_LEVEL", "INFO")
LOG_JSON: bool = os.environ.get("TENANT_RBAC_LOG_JSON") == "1"


@dataclass(frozen=True)
class Settings:
    """
    Immutable snapshot of the storage configuration.

    Contexts are built from a Settings value rather than from the module
    constants directly so tests can point at their own databases.
    """
    backend: str = POSTGRES
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "tenant_rbac"
    rls_user: str = "rls_db_user"
    rls_password: Optional[str] = None
    unrestricted_user: str = "unrestricted_db_user"
    unrestricted_password: Optional[str] = None
    sqlite_path: str = "./tenant_rbac.db"
    pool_size: int = 20

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ConfigurationError(
                f"Unknown database backend {self.backend!r}, expected one of {', '.join(BACKENDS)}"
            )

    def require_rls_password(self) -> str:
        if not self.rls_password:
            raise ConfigurationError("RLS_DB_USER_PASSWORD environment variable is required")
        return self.rls_password

    def require_unrestricted_password(self) -> str:
        if not self.unrestricted_password:
            raise ConfigurationError("UNRESTRICTED_DB_USER_PASSWORD environment variable is required")
        return self.unrestricted_password

    def require_sqlite_path(self) -> str:
        if not self.sqlite_path:
            raise ConfigurationError("TENANT_RBAC_SQLITE_PATH environment variable is required")
        return self.sqlite_path


def load_settings() -> Settings:
    """Build Settings from the environment-derived module constants."""
    return Settings(
        backend=DB_BACKEND,
        db_host=DB_HOST,
        db_port=DB_PORT,
        db_name=DB_NAME,
        rls_user=RLS_DB_USER,
        rls_password=RLS_DB_USER_PASSWORD,
        unrestricted_user=UNRESTRICTED_DB_USER,
        unrestricted_password=UNRESTRICTED_DB_USER_PASSWORD,
        sqlite_path=SQLITE_PATH,
        pool_size=DB_POOL_SIZE,
    )
