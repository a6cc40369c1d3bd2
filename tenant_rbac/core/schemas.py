"""
Pydantic schemas shared by every entity family.

Pagination, connections, and the generic property value type.
"""
from datetime import UTC, datetime
from typing import Annotated, Any, Generic, List, Literal, Optional, TypeVar
from pydantic import AfterValidator, BaseModel, ConfigDict, Field


T = TypeVar("T")


def ensure_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class DomainModel(BaseModel):
    """Base for entities read back from the store."""
    model_config = ConfigDict(from_attributes=True, frozen=True)


# ============================================================================
# Pagination
# ============================================================================

class PaginationInput(BaseModel):
    """Offset pagination with a sort direction over the entity id."""
    limit: Optional[int] = Field(None, ge=0, description="Maximum number of rows")
    offset: Optional[int] = Field(None, ge=0, description="Rows to skip")
    sort_direction: Literal["ASC", "DESC"] = "ASC"


class PageInfo(BaseModel):
    has_next_page: bool = False
    has_previous_page: bool = False
    start_cursor: Optional[str] = None
    end_cursor: Optional[str] = None


class Connection(BaseModel, Generic[T]):
    """A page of results plus the total number of matching rows."""
    nodes: List[T]
    total_count: int
    page_info: PageInfo


# ============================================================================
# Properties
# ============================================================================

class PropertyInput(BaseModel):
    """Property to create or overwrite. ``value`` is any JSON-serializable value."""
    name: str = Field(..., min_length=1, max_length=255)
    value: Any = None
    hidden: bool = False


class Property(DomainModel):
    name: str
    value: Any = None
    hidden: bool = False
    created_at: UtcDatetime


class PropertyFilter(BaseModel):
    """Match parents whose property ``name`` equals ``value``."""
    name: str
    value: Any = None
