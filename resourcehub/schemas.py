from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field
from datetime import datetime

from resourcehub.models import (
    Role, NeedStatus, ResourceStatus, Urgency, ReportStatus, NotificationType, Resource,
)


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1)
    role: Role
    department_id: Optional[int] = None


class UserRead(BaseModel):
    id: int
    username: str
    full_name: str
    role: Role
    department_id: Optional[int] = None


class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    role: Optional[Role] = None
    department_id: Optional[int] = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1)
    head_id: Optional[int] = None


class DepartmentUpdate(BaseModel):
    name: Optional[str] = None
    head_id: Optional[int] = None


# ---- 资源需求 ----
class ResourceNeedCreate(BaseModel):
    """请求体：user_id / department_id 由登录用户补上"""
    resource_type: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, le=100000)
    specifications: Optional[str] = None
    comments: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"resource_type": "Ordinateur", "quantity": 2, "specifications": "i7, 32GB RAM"},
            ]
        }
    }


class ResourceNeedInsert(ResourceNeedCreate):
    user_id: int
    department_id: int


class ResourceNeedUpdate(BaseModel):
    # 只列出允许修改的字段：id / user_id / created_at 由服务端控制
    resource_type: Optional[str] = Field(None, min_length=1)
    quantity: Optional[int] = Field(None, ge=1, le=100000)
    specifications: Optional[str] = None
    comments: Optional[str] = None
    status: Optional[NeedStatus] = None


class ValidateNeedsRequest(BaseModel):
    ids: list[int] = Field(..., min_length=1)


# ---- 资源（库存） ----
class ResourceCreate(BaseModel):
    resource_type: str = Field(..., min_length=1)
    inventory_number: str = Field(..., min_length=1, max_length=50)
    specifications: Optional[str] = None
    status: ResourceStatus = ResourceStatus.functional
    assigned_to_id: Optional[int] = None
    department_id: Optional[int] = None


class ResourceUpdate(BaseModel):
    resource_type: Optional[str] = Field(None, min_length=1)
    specifications: Optional[str] = None
    status: Optional[ResourceStatus] = None
    assigned_to_id: Optional[int] = None
    department_id: Optional[int] = None


class ResourceSort(str, Enum):
    id_desc = "id_desc"
    id_asc = "id_asc"
    type_asc = "type_asc"
    type_desc = "type_desc"
    inventory_asc = "inventory_asc"
    inventory_desc = "inventory_desc"


class ResourceListResponse(BaseModel):
    items: list[Resource]
    total: int
    limit: int
    offset: int
    q: str | None = None


# ---- 维修报告 ----
class MaintenanceReportCreate(BaseModel):
    resource_id: int
    description: str = Field(..., min_length=1)
    occurrence_date: datetime
    urgency: Urgency
    assigned_to_id: Optional[int] = None


class MaintenanceReportInsert(MaintenanceReportCreate):
    reported_by_id: int


class MaintenanceReportUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=1)
    urgency: Optional[Urgency] = None
    status: Optional[ReportStatus] = None
    assigned_to_id: Optional[int] = None


# ---- 通知 ----
class NotificationCreate(BaseModel):
    user_id: int
    title: str
    message: str
    type: NotificationType = NotificationType.info


class UnreadCount(BaseModel):
    count: int
