"""
内存存储层：每种实体一个 dict + 一个自增 id。

MemStorage 在进程启动时创建一次，挂在 app.state 上，路由通过 get_storage 依赖拿到它；
测试里用 dependency_overrides 换成新的实例。
"""
from functools import wraps
from itertools import count
from threading import RLock
from typing import Optional

from fastapi import Request
from pydantic import BaseModel

from resourcehub.error import Conflict
from resourcehub.logging_config import logger
from resourcehub.models import (
    User, Department, ResourceNeed, Resource, MaintenanceReport, Notification,
    NeedStatus, ResourceStatus, NotificationType, utcnow,
)
from resourcehub.schemas import (
    UserCreate, UserUpdate, DepartmentCreate, DepartmentUpdate,
    ResourceNeedInsert, ResourceNeedUpdate, ResourceCreate, ResourceUpdate, ResourceSort,
    MaintenanceReportInsert, MaintenanceReportUpdate, NotificationCreate,
)
from resourcehub.services.workflow import (
    check_need_transition, is_resolution,
    need_validated_message, needs_sent_message, resource_assigned_message, maintenance_done_message,
)

log = logger.getChild("storage")

# 这些字段允许显式传 null（例如取消分配）；其余字段传 null 视为未修改
NULLABLE_FIELDS = frozenset({"department_id", "head_id", "specifications", "comments", "assigned_to_id"})


def _changes(data: BaseModel) -> dict:
    raw = data.model_dump(exclude_unset=True)
    return {k: v for k, v in raw.items() if v is not None or k in NULLABLE_FIELDS}


def _newest_first(items: list) -> list:
    return sorted(items, key=lambda x: (x.created_at, x.id), reverse=True)


def _locked(method):
    # 路由是同步 def，会在线程池里并发执行；先查后写的操作都要持锁
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


class MemStorage:
    def __init__(self) -> None:
        self.users: dict[int, User] = {}
        self.departments: dict[int, Department] = {}
        self.resource_needs: dict[int, ResourceNeed] = {}
        self.resources: dict[int, Resource] = {}
        self.maintenance_reports: dict[int, MaintenanceReport] = {}
        self.notifications: dict[int, Notification] = {}

        self._user_ids = count(1)
        self._department_ids = count(1)
        self._need_ids = count(1)
        self._resource_ids = count(1)
        self._report_ids = count(1)
        self._notification_ids = count(1)

        self._lock = RLock()

    # ---------------- 用户 ----------------
    def get_user(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)

    @_locked
    def get_user_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.username == username), None)

    @_locked
    def create_user(self, data: UserCreate, password_hash: str) -> User:
        if self.get_user_by_username(data.username):
            raise Conflict("用户名已存在", code="USERNAME_EXISTS")

        user = User(
            id=next(self._user_ids),
            username=data.username,
            password_hash=password_hash,
            full_name=data.full_name,
            role=data.role,
            department_id=data.department_id,
        )
        self.users[user.id] = user
        return user

    @_locked
    def update_user(self, user_id: int, data: UserUpdate) -> Optional[User]:
        user = self.users.get(user_id)
        if not user:
            return None
        user = user.model_copy(update=_changes(data))
        self.users[user_id] = user
        return user

    @_locked
    def list_users_by_department(self, department_id: int) -> list[User]:
        return [u for u in self.users.values() if u.department_id == department_id]

    # ---------------- 部门 ----------------
    def get_department(self, department_id: int) -> Optional[Department]:
        return self.departments.get(department_id)

    @_locked
    def create_department(self, data: DepartmentCreate) -> Department:
        dept = Department(id=next(self._department_ids), name=data.name, head_id=data.head_id)
        self.departments[dept.id] = dept
        return dept

    @_locked
    def update_department(self, department_id: int, data: DepartmentUpdate) -> Optional[Department]:
        dept = self.departments.get(department_id)
        if not dept:
            return None
        dept = dept.model_copy(update=_changes(data))
        self.departments[department_id] = dept
        return dept

    @_locked
    def list_departments(self) -> list[Department]:
        return list(self.departments.values())

    # ---------------- 资源需求 ----------------
    def get_resource_need(self, need_id: int) -> Optional[ResourceNeed]:
        return self.resource_needs.get(need_id)

    @_locked
    def create_resource_need(self, data: ResourceNeedInsert) -> ResourceNeed:
        need = ResourceNeed(
            id=next(self._need_ids),
            **data.model_dump(),
            status=NeedStatus.pending,
            created_at=utcnow(),
            updated_at=None,
        )
        self.resource_needs[need.id] = need
        return need

    @_locked
    def update_resource_need(self, need_id: int, data: ResourceNeedUpdate) -> Optional[ResourceNeed]:
        need = self.resource_needs.get(need_id)
        if not need:
            return None

        changes = _changes(data)
        if "status" in changes:
            check_need_transition(need.status, changes["status"])

        need = need.model_copy(update={**changes, "updated_at": utcnow()})
        self.resource_needs[need_id] = need
        return need

    @_locked
    def list_resource_needs_by_user(self, user_id: int) -> list[ResourceNeed]:
        return _newest_first([n for n in self.resource_needs.values() if n.user_id == user_id])

    @_locked
    def list_resource_needs_by_department(self, department_id: int) -> list[ResourceNeed]:
        return _newest_first([n for n in self.resource_needs.values() if n.department_id == department_id])

    @_locked
    def validate_resource_needs(self, ids: list[int], department_id: int | None = None) -> list[ResourceNeed]:
        """
        只处理当前状态恰好是 pending 的需求；不存在或状态不对的 id 直接跳过（不报错）。
        传了 department_id 时，其他部门的需求也跳过。
        返回真正被改成 validated 的那些。
        """
        validated: list[ResourceNeed] = []
        for need_id in ids:
            need = self.resource_needs.get(need_id)
            if not need or need.status != NeedStatus.pending:
                continue
            if department_id is not None and need.department_id != department_id:
                continue

            need = need.model_copy(update={"status": NeedStatus.validated, "updated_at": utcnow()})
            self.resource_needs[need_id] = need
            validated.append(need)

            title, message = need_validated_message(need)
            self.create_notification(NotificationCreate(
                user_id=need.user_id, title=title, message=message, type=NotificationType.info,
            ))

        log.info("validated %d of %d resource needs", len(validated), len(ids))
        return validated

    @_locked
    def send_resource_needs(self, department_id: int) -> list[ResourceNeed]:
        to_send = [
            n for n in self.resource_needs.values()
            if n.department_id == department_id and n.status == NeedStatus.validated
        ]

        sent: list[ResourceNeed] = []
        now = utcnow()
        for need in to_send:
            need = need.model_copy(update={"status": NeedStatus.sent, "updated_at": now})
            self.resource_needs[need.id] = need
            sent.append(need)

        # 每次调用最多通知一次部门负责人
        dept = self.departments.get(department_id)
        if sent and dept and dept.head_id is not None:
            title, message = needs_sent_message(len(sent))
            self.create_notification(NotificationCreate(
                user_id=dept.head_id, title=title, message=message, type=NotificationType.success,
            ))

        log.info("sent %d resource needs for department %s", len(sent), department_id)
        return sent

    # ---------------- 资源 ----------------
    def get_resource(self, resource_id: int) -> Optional[Resource]:
        return self.resources.get(resource_id)

    @_locked
    def get_resource_by_inventory_number(self, inventory_number: str) -> Optional[Resource]:
        return next((r for r in self.resources.values() if r.inventory_number == inventory_number), None)

    @_locked
    def create_resource(self, data: ResourceCreate) -> Resource:
        if self.get_resource_by_inventory_number(data.inventory_number):
            raise Conflict(f"资产编号已存在：{data.inventory_number}", code="INVENTORY_NUMBER_EXISTS")

        resource = Resource(
            id=next(self._resource_ids),
            **data.model_dump(),
            created_at=utcnow(),
            updated_at=None,
        )
        self.resources[resource.id] = resource

        if resource.assigned_to_id is not None:
            self._notify_assigned(resource)
        return resource

    @_locked
    def update_resource(self, resource_id: int, data: ResourceUpdate) -> Optional[Resource]:
        old = self.resources.get(resource_id)
        if not old:
            return None

        resource = old.model_copy(update={**_changes(data), "updated_at": utcnow()})
        self.resources[resource_id] = resource

        # 分配对象变了才通知新的使用人
        if resource.assigned_to_id is not None and resource.assigned_to_id != old.assigned_to_id:
            self._notify_assigned(resource)
        return resource

    def _notify_assigned(self, resource: Resource) -> None:
        title, message = resource_assigned_message(resource)
        self.create_notification(NotificationCreate(
            user_id=resource.assigned_to_id, title=title, message=message, type=NotificationType.success,
        ))

    @_locked
    def list_resources(self) -> list[Resource]:
        return sorted(self.resources.values(), key=lambda r: r.id)

    @_locked
    def list_resources_by_department(self, department_id: int) -> list[Resource]:
        return [r for r in self.resources.values() if r.department_id == department_id]

    @_locked
    def list_resources_by_user(self, user_id: int) -> list[Resource]:
        return [r for r in self.resources.values() if r.assigned_to_id == user_id]

    @_locked
    def search_resources(
        self,
        q: str | None = None,
        sort: ResourceSort = ResourceSort.id_desc,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Resource], int]:
        items = list(self.resources.values())
        if q:
            needle = q.lower()
            items = [
                r for r in items
                if needle in r.resource_type.lower()
                or needle in r.inventory_number.lower()
                or needle in (r.specifications or "").lower()
            ]

        order_map = {
            ResourceSort.id_desc: (lambda r: r.id, True),
            ResourceSort.id_asc: (lambda r: r.id, False),
            ResourceSort.type_asc: (lambda r: (r.resource_type.lower(), r.id), False),
            ResourceSort.type_desc: (lambda r: (r.resource_type.lower(), r.id), True),
            ResourceSort.inventory_asc: (lambda r: r.inventory_number, False),
            ResourceSort.inventory_desc: (lambda r: r.inventory_number, True),
        }
        key, reverse = order_map[sort]
        items.sort(key=key, reverse=reverse)

        return items[offset:offset + limit], len(items)

    # ---------------- 维修报告 ----------------
    def get_maintenance_report(self, report_id: int) -> Optional[MaintenanceReport]:
        return self.maintenance_reports.get(report_id)

    @_locked
    def create_maintenance_report(self, data: MaintenanceReportInsert) -> MaintenanceReport:
        report = MaintenanceReport(
            id=next(self._report_ids),
            **data.model_dump(),
            created_at=utcnow(),
            updated_at=None,
        )
        self.maintenance_reports[report.id] = report

        # 报修后资源进入维修状态
        self._set_resource_status(report.resource_id, ResourceStatus.maintenance)
        return report

    @_locked
    def update_maintenance_report(
        self, report_id: int, data: MaintenanceReportUpdate
    ) -> Optional[MaintenanceReport]:
        old = self.maintenance_reports.get(report_id)
        if not old:
            return None

        report = old.model_copy(update={**_changes(data), "updated_at": utcnow()})
        self.maintenance_reports[report_id] = report

        if is_resolution(old.status, data.status):
            resource = self._set_resource_status(old.resource_id, ResourceStatus.functional)
            if resource and resource.assigned_to_id is not None:
                title, message = maintenance_done_message(resource)
                self.create_notification(NotificationCreate(
                    user_id=resource.assigned_to_id, title=title, message=message,
                    type=NotificationType.success,
                ))
            log.info("maintenance report %s resolved, resource %s back in service", report_id, old.resource_id)
        return report

    def _set_resource_status(self, resource_id: int, status: ResourceStatus) -> Optional[Resource]:
        resource = self.resources.get(resource_id)
        if not resource:
            return None
        resource = resource.model_copy(update={"status": status, "updated_at": utcnow()})
        self.resources[resource_id] = resource
        return resource

    @_locked
    def list_maintenance_reports_by_user(self, user_id: int) -> list[MaintenanceReport]:
        return _newest_first([r for r in self.maintenance_reports.values() if r.reported_by_id == user_id])

    @_locked
    def list_maintenance_reports_by_assignee(self, user_id: int) -> list[MaintenanceReport]:
        return _newest_first([r for r in self.maintenance_reports.values() if r.assigned_to_id == user_id])

    @_locked
    def list_maintenance_reports_by_department(self, department_id: int) -> list[MaintenanceReport]:
        resource_ids = {r.id for r in self.resources.values() if r.department_id == department_id}
        return _newest_first([r for r in self.maintenance_reports.values() if r.resource_id in resource_ids])

    # ---------------- 通知 ----------------
    def get_notification(self, notification_id: int) -> Optional[Notification]:
        return self.notifications.get(notification_id)

    @_locked
    def create_notification(self, data: NotificationCreate) -> Notification:
        notification = Notification(
            id=next(self._notification_ids),
            **data.model_dump(),
            is_read=False,
            created_at=utcnow(),
        )
        self.notifications[notification.id] = notification
        return notification

    @_locked
    def mark_notification_as_read(self, notification_id: int) -> Optional[Notification]:
        notification = self.notifications.get(notification_id)
        if not notification:
            return None
        notification = notification.model_copy(update={"is_read": True})
        self.notifications[notification_id] = notification
        return notification

    @_locked
    def list_notifications_by_user(self, user_id: int) -> list[Notification]:
        return _newest_first([n for n in self.notifications.values() if n.user_id == user_id])

    @_locked
    def count_unread_notifications_by_user(self, user_id: int) -> int:
        return sum(1 for n in self.notifications.values() if n.user_id == user_id and not n.is_read)


def get_storage(request: Request) -> MemStorage:
    return request.app.state.storage
