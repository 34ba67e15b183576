from enum import Enum

from resourcehub.models import Role, User, ResourceNeed, Notification


class NeedScope(str, Enum):
    DEPARTMENT = "DEPARTMENT"  # 看整个部门的需求
    OWN = "OWN"                # 只看自己提交的


# 每张表都必须覆盖全部 Role，新增角色时在导入阶段就报错
NEED_LIST_SCOPE: dict[Role, NeedScope] = {
    Role.department_head: NeedScope.DEPARTMENT,
    Role.teacher: NeedScope.OWN,
    Role.resource_manager: NeedScope.OWN,
    Role.supplier: NeedScope.OWN,
    Role.technician: NeedScope.OWN,
}

CAN_REVIEW_NEEDS: dict[Role, bool] = {
    Role.department_head: True,
    Role.teacher: False,
    Role.resource_manager: False,
    Role.supplier: False,
    Role.technician: False,
}

CAN_MANAGE_INVENTORY: dict[Role, bool] = {
    Role.department_head: False,
    Role.teacher: False,
    Role.resource_manager: True,
    Role.supplier: False,
    Role.technician: False,
}

CAN_HANDLE_MAINTENANCE: dict[Role, bool] = {
    Role.department_head: False,
    Role.teacher: False,
    Role.resource_manager: True,
    Role.supplier: False,
    Role.technician: True,
}

for _name, _table in (
    ("NEED_LIST_SCOPE", NEED_LIST_SCOPE),
    ("CAN_REVIEW_NEEDS", CAN_REVIEW_NEEDS),
    ("CAN_MANAGE_INVENTORY", CAN_MANAGE_INVENTORY),
    ("CAN_HANDLE_MAINTENANCE", CAN_HANDLE_MAINTENANCE),
):
    _missing = set(Role) - set(_table)
    if _missing:
        raise RuntimeError(f"{_name} 缺少角色: {sorted(r.value for r in _missing)}")


def need_list_scope(user: User) -> NeedScope:
    return NEED_LIST_SCOPE[user.role]


def can_review_needs(user: User) -> bool:
    return CAN_REVIEW_NEEDS[user.role]


def can_manage_inventory(user: User) -> bool:
    return CAN_MANAGE_INVENTORY[user.role]


def can_handle_maintenance(user: User) -> bool:
    return CAN_HANDLE_MAINTENANCE[user.role]


def can_edit_need(user: User, need: ResourceNeed) -> bool:
    # 本人或任意部门负责人
    return can_review_needs(user) or need.user_id == user.id


def can_read_notification(user: User, notification: Notification) -> bool:
    return notification.user_id == user.id
