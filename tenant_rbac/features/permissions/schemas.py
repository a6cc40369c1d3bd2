"""
Pydantic schemas for permission grants and effective permissions.
"""
from typing import List, Literal, Optional
from pydantic import BaseModel

from tenant_rbac.core.schemas import DomainModel, UtcDatetime


class UserPermission(DomainModel):
    """Direct grant of ``action`` on a resource pattern to a user."""
    user_id: str
    org_id: str
    resource_id: str
    action: str
    created_at: UtcDatetime


class RolePermission(DomainModel):
    """Grant of ``action`` on a resource pattern to every holder of a role."""
    role_id: str
    org_id: str
    resource_id: str
    action: str
    created_at: UtcDatetime


class EffectivePermission(DomainModel):
    """
    A grant that applies to a user, computed at query time.
    
    ``source`` tells whether it came from a direct grant or from a role, and
    ``source_id`` is the granting user or role id.
    """
    resource_id: str
    action: str
    source: Literal["user", "role"]
    source_id: Optional[str]
    created_at: UtcDatetime


class PermissionsByResource(BaseModel):
    """Grants stored on exactly one resource id (no wildcard resolution)."""
    user_permissions: List[UserPermission] = []
    role_permissions: List[RolePermission] = []
