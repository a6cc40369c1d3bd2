"""
Error taxonomy for the persistence layer.

Expected failures (not found on mutation, duplicate keys, missing parents,
driver errors) are returned inside a ``Failure``. Configuration problems and
misuse of the tenant context are programming errors and are raised.
"""
from sqlalchemy.exc import IntegrityError


# SQLSTATE codes reported by PostgreSQL
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


class RepositoryError(Exception):
    """Base class for errors returned by repositories."""
    kind = "storage"


class NotFoundError(RepositoryError):
    kind = "not_found"

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"not found: {entity} does not exist")


class DuplicateKeyError(RepositoryError):
    kind = "duplicate_key"

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"duplicate key: {entity} already exists")


class ReferentialIntegrityError(RepositoryError):
    kind = "referential"

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"referential integrity: {entity} references a missing parent")


class StorageError(RepositoryError):
    kind = "storage"


class ConfigurationError(Exception):
    """Missing or invalid storage configuration. Fatal at startup."""


class TenantContextError(Exception):
    """A tenant-scoped operation was called with a missing or foreign org_id."""


def _sqlstate(exc: IntegrityError) -> str | None:
    orig = exc.orig
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return code
    # asyncpg exceptions sit one level deeper behind the DBAPI adapter
    cause = getattr(orig, "__cause__", None)
    return getattr(cause, "sqlstate", None)


def normalize_integrity_error(exc: IntegrityError, entity: str) -> RepositoryError:
    """
    Map a driver-specific integrity error onto a backend-neutral error.

    Args:
        exc: IntegrityError raised by SQLAlchemy (asyncpg or sqlite3 underneath)
        entity: Entity name used in the normalized message

    Returns:
        DuplicateKeyError, ReferentialIntegrityError, or StorageError
    """
    code = _sqlstate(exc)
    message = str(exc.orig).lower()

    if code == UNIQUE_VIOLATION or "unique constraint" in message or "duplicate key" in message:
        return DuplicateKeyError(entity)
    if code == FOREIGN_KEY_VIOLATION or "foreign key" in message:
        return ReferentialIntegrityError(entity)
    return StorageError(str(exc.orig))


def to_repository_error(exc: Exception, entity: str) -> RepositoryError:
    """Normalize any exception raised while talking to the store."""
    if isinstance(exc, RepositoryError):
        return exc
    if isinstance(exc, IntegrityError):
        return normalize_integrity_error(exc, entity)
    return StorageError(str(exc))
