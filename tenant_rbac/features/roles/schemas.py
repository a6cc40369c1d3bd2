"""
Pydantic schemas for roles.
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from tenant_rbac.core.schemas import DomainModel, PropertyFilter, PropertyInput, UtcDatetime


class Role(DomainModel):
    id: str
    org_id: str
    name: str
    description: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class RoleFilter(BaseModel):
    ids: Optional[List[str]] = None
    name: Optional[str] = None
    properties: Optional[List[PropertyFilter]] = None


class CreateRoleInput(BaseModel):
    id: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., max_length=255)
    description: Optional[str] = None
    properties: List[PropertyInput] = []


class UpdateRoleInput(BaseModel):
    """Only the fields that are set are written."""
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
