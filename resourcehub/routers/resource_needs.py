from fastapi import APIRouter, Depends

from resourcehub.deps import require_user, deny
from resourcehub.error import abort
from resourcehub.models import User, ResourceNeed
from resourcehub.schemas import ResourceNeedCreate, ResourceNeedInsert, ResourceNeedUpdate, ValidateNeedsRequest
from resourcehub.services.permissions import NeedScope, need_list_scope, can_review_needs, can_edit_need
from resourcehub.storage import MemStorage, get_storage

router = APIRouter(prefix="/api/resource-needs", tags=["resource-needs"])


@router.get("", response_model=list[ResourceNeed])
def list_resource_needs(
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    # 部门负责人看整个部门，其他人只看自己的
    if need_list_scope(user) == NeedScope.DEPARTMENT and user.department_id is not None:
        return storage.list_resource_needs_by_department(user.department_id)
    return storage.list_resource_needs_by_user(user.id)


@router.post("", response_model=ResourceNeed, status_code=201)
def create_resource_need(
        data: ResourceNeedCreate,
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    if user.department_id is None:
        abort(400, "NO_DEPARTMENT", "当前用户未关联部门，无法提交需求")

    insert = ResourceNeedInsert(**data.model_dump(), user_id=user.id, department_id=user.department_id)
    return storage.create_resource_need(insert)


@router.post("/validate", response_model=list[ResourceNeed])
def validate_resource_needs(
        body: ValidateNeedsRequest,
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    if not can_review_needs(user):
        deny(user, "只有部门负责人可以审核需求")
    if user.department_id is None:
        abort(400, "NO_DEPARTMENT", "当前用户未关联部门")
    # 只审核本部门的需求，其他部门的 id 和不存在的 id 一样跳过
    return storage.validate_resource_needs(body.ids, department_id=user.department_id)


@router.post("/send", response_model=list[ResourceNeed])
def send_resource_needs(
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    if not can_review_needs(user):
        deny(user, "只有部门负责人可以提交需求")
    if user.department_id is None:
        abort(400, "NO_DEPARTMENT", "当前用户未关联部门")
    return storage.send_resource_needs(user.department_id)


@router.put("/{need_id}", response_model=ResourceNeed)
def update_resource_need(
        need_id: int,
        body: ResourceNeedUpdate,
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    need = storage.get_resource_need(need_id)
    if not need:
        abort(404, "NOT_FOUND", "Resource need not found")

    if not can_edit_need(user, need):
        deny(user, "无权修改该需求")

    # 状态只能由部门负责人改
    if body.status is not None and body.status != need.status and not can_review_needs(user):
        deny(user, "只有部门负责人可以修改需求状态")

    return storage.update_resource_need(need_id, body)
