from typing import Optional
from enum import Enum
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    department_head = "department_head"
    teacher = "teacher"
    resource_manager = "resource_manager"
    supplier = "supplier"
    technician = "technician"


class NeedStatus(str, Enum):
    pending = "pending"
    validated = "validated"
    rejected = "rejected"
    sent = "sent"


class ResourceStatus(str, Enum):
    functional = "functional"
    maintenance = "maintenance"
    out_of_order = "out_of_order"


class Urgency(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class ReportStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    resolved = "resolved"


class NotificationType(str, Enum):
    info = "info"
    success = "success"
    warning = "warning"
    error = "error"


# 内存存储里的记录（不建表，只当数据模型用）
class User(SQLModel):
    id: int
    username: str
    password_hash: str
    full_name: str
    role: Role
    department_id: Optional[int] = None


class Department(SQLModel):
    id: int
    name: str
    head_id: Optional[int] = None


class ResourceNeed(SQLModel):
    id: int
    resource_type: str
    quantity: int
    specifications: Optional[str] = None
    comments: Optional[str] = None
    status: NeedStatus = NeedStatus.pending

    user_id: int
    department_id: int

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class Resource(SQLModel):
    id: int
    resource_type: str
    inventory_number: str
    specifications: Optional[str] = None
    status: ResourceStatus = ResourceStatus.functional

    assigned_to_id: Optional[int] = None
    department_id: Optional[int] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class MaintenanceReport(SQLModel):
    id: int
    resource_id: int
    description: str
    occurrence_date: datetime
    urgency: Urgency
    status: ReportStatus = ReportStatus.pending

    reported_by_id: int
    assigned_to_id: Optional[int] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class Notification(SQLModel):
    id: int
    user_id: int
    title: str
    message: str
    type: NotificationType
    is_read: bool = False
    created_at: datetime = Field(default_factory=utcnow)
