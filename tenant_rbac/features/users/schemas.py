"""
Pydantic schemas for users.
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from tenant_rbac.core.schemas import DomainModel, PropertyFilter, PropertyInput, UtcDatetime


class User(DomainModel):
    id: str
    org_id: str
    identity_provider: str
    identity_provider_user_id: str
    created_at: UtcDatetime
    updated_at: UtcDatetime


class UserFilter(BaseModel):
    ids: Optional[List[str]] = None
    identity_provider: Optional[str] = None
    identity_provider_user_id: Optional[str] = None
    properties: Optional[List[PropertyFilter]] = None


class CreateUserInput(BaseModel):
    id: str = Field(..., min_length=1, max_length=255)
    identity_provider: str = Field(..., min_length=1, max_length=255)
    identity_provider_user_id: str = Field(..., min_length=1, max_length=255)
    properties: List[PropertyInput] = []
    role_ids: List[str] = []


class UpdateUserInput(BaseModel):
    """Only the fields that are set are written."""
    identity_provider: Optional[str] = Field(None, min_length=1, max_length=255)
    identity_provider_user_id: Optional[str] = Field(None, min_length=1, max_length=255)
