"""
Pydantic schemas for resources.
"""
from typing import Optional
from pydantic import BaseModel, Field

from tenant_rbac.core.schemas import DomainModel, UtcDatetime


class Resource(DomainModel):
    id: str
    org_id: str
    name: Optional[str] = None
    description: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class ResourceFilter(BaseModel):
    id_prefix: Optional[str] = Field(None, description="Only resources whose id starts with this prefix")


class CreateResourceInput(BaseModel):
    id: str = Field(..., min_length=1, max_length=255, description="Resource path, e.g. /india/data/legal")
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None


class UpdateResourceInput(BaseModel):
    """Only the fields that are set are written."""
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
