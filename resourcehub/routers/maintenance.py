from fastapi import APIRouter, Depends

from resourcehub.deps import require_user, deny
from resourcehub.error import abort
from resourcehub.models import User, MaintenanceReport
from resourcehub.schemas import MaintenanceReportCreate, MaintenanceReportInsert, MaintenanceReportUpdate
from resourcehub.services.permissions import can_review_needs, can_handle_maintenance
from resourcehub.storage import MemStorage, get_storage

router = APIRouter(prefix="/api/maintenance-reports", tags=["maintenance"])


def _check_assignee(storage: MemStorage, assigned_to_id: int | None) -> None:
    if assigned_to_id is not None and not storage.get_user(assigned_to_id):
        abort(404, "NOT_FOUND", "Assigned user not found")


@router.get("", response_model=list[MaintenanceReport])
def list_my_reports(
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    return storage.list_maintenance_reports_by_user(user.id)


@router.get("/assigned", response_model=list[MaintenanceReport])
def list_assigned_reports(
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    return storage.list_maintenance_reports_by_assignee(user.id)


@router.get("/department", response_model=list[MaintenanceReport])
def list_department_reports(
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    if not can_review_needs(user):
        deny(user, "只有部门负责人可以查看部门报修")
    if user.department_id is None:
        abort(400, "NO_DEPARTMENT", "当前用户未关联部门")
    return storage.list_maintenance_reports_by_department(user.department_id)


@router.post("", response_model=MaintenanceReport, status_code=201)
def create_report(
        data: MaintenanceReportCreate,
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    if not storage.get_resource(data.resource_id):
        abort(404, "NOT_FOUND", "Resource not found")
    _check_assignee(storage, data.assigned_to_id)

    insert = MaintenanceReportInsert(**data.model_dump(), reported_by_id=user.id)
    return storage.create_maintenance_report(insert)


@router.put("/{report_id}", response_model=MaintenanceReport)
def update_report(
        report_id: int,
        body: MaintenanceReportUpdate,
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    if not can_handle_maintenance(user):
        deny(user, "只有技术员或资源管理员可以处理报修")

    if not storage.get_maintenance_report(report_id):
        abort(404, "NOT_FOUND", "Maintenance report not found")
    _check_assignee(storage, body.assigned_to_id)
    return storage.update_maintenance_report(report_id, body)
