"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum


class StatusEnum(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class MessageResponse(BaseModel):
    message: str


class Activity(BaseModel):
    total_active: int = 0
    total_inactive: int = 0


class ItemRef(BaseModel):
    id: int
    code: str
    name: str
    status: Optional[str] = None

    class Config:
        from_attributes = True


class EffectiveItem(ItemRef):
    inherited: bool = False


# ---- Catalog ----
class CatalogCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: StatusEnum = StatusEnum.ACTIVE

class CatalogUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=100)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[StatusEnum] = None

class CatalogOut(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    class Config:
        from_attributes = True


class FunctionCreate(CatalogCreate):
    module_id: Optional[int] = None

class FunctionUpdate(CatalogUpdate):
    module_id: Optional[int] = None

class FunctionOut(CatalogOut):
    module_id: Optional[int] = None


class PrivilegeCreate(CatalogCreate):
    module_id: Optional[int] = None
    function_id: Optional[int] = None
    operation_id: Optional[int] = None

class PrivilegeUpdate(CatalogUpdate):
    module_id: Optional[int] = None
    function_id: Optional[int] = None
    operation_id: Optional[int] = None

class PrivilegeOut(CatalogOut):
    module_id: Optional[int] = None
    function_id: Optional[int] = None
    operation_id: Optional[int] = None


# ---- Roles ----
class DutyRoleCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    module_id: Optional[int] = None
    status: StatusEnum = StatusEnum.ACTIVE
    function_privileges: List[int] = []
    inherited_from_roles: List[int] = []

class DutyRoleUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=100)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    module_id: Optional[int] = None
    status: Optional[StatusEnum] = None
    function_privileges: Optional[List[int]] = None
    inherited_from_roles: Optional[List[int]] = None

class JobRoleCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: StatusEnum = StatusEnum.ACTIVE
    duty_roles: List[int] = []
    inherited_from: List[int] = []

class JobRoleUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=100)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[StatusEnum] = None
    duty_roles: Optional[List[int]] = None
    inherited_from: Optional[List[int]] = None

class RoleOut(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    status: str
    module_id: Optional[int] = None
    explicit_item_ids: List[int] = []
    items: List[EffectiveItem] = []
    parents: List[ItemRef] = []
    children: List[ItemRef] = []
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

class RoleListResponse(BaseModel):
    data: List[RoleOut]
    total: int
    page: int
    limit: int
    total_pages: int
    activity: Activity

class RoleDeleteResponse(BaseModel):
    message: str
    cascaded_ids: List[int] = []

class ItemIdsRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)

class ItemsAddedResponse(BaseModel):
    role: RoleOut
    already_assigned_ids: List[int]
    newly_assigned_ids: List[int]
    was_updated: bool

class ItemRemovedResponse(BaseModel):
    role: RoleOut
    was_removed: bool
    was_updated: bool

class LinkRepairResponse(BaseModel):
    changed_ids: List[int]


# ---- Users ----
class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    full_name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = None
    status: StatusEnum = StatusEnum.ACTIVE
    job_roles: List[int] = []

class UserUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = None
    status: Optional[StatusEnum] = None
    job_roles: Optional[List[int]] = None

class UserOut(BaseModel):
    id: int
    username: str
    full_name: str
    email: Optional[str] = None
    status: str
    job_role_ids: List[int] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserAccessOut(BaseModel):
    user_id: int
    username: str
    job_roles: List[ItemRef]
    duty_roles: List[ItemRef]
    privileges: List[ItemRef]
