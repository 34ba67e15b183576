from datetime import datetime
import io
from urllib.parse import quote
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill
from openpyxl.worksheet.table import Table, TableStyleInfo

from resourcehub.deps import require_user, deny
from resourcehub.error import abort
from resourcehub.models import User, Resource
from resourcehub.schemas import ResourceCreate, ResourceUpdate, ResourceListResponse, ResourceSort
from resourcehub.services.permissions import can_manage_inventory
from resourcehub.storage import MemStorage, get_storage

router = APIRouter(prefix="/api/resources", tags=["resources"])


def _check_references(storage: MemStorage, assigned_to_id: int | None, department_id: int | None) -> None:
    if assigned_to_id is not None and not storage.get_user(assigned_to_id):
        abort(404, "NOT_FOUND", "Assigned user not found")
    if department_id is not None and not storage.get_department(department_id):
        abort(404, "NOT_FOUND", "Department not found")


@router.get("", response_model=list[Resource])
def list_department_resources(
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    if user.department_id is None:
        abort(400, "NO_DEPARTMENT", "当前用户未关联部门")
    return storage.list_resources_by_department(user.department_id)


@router.get("/assigned", response_model=list[Resource])
def list_assigned_resources(
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    return storage.list_resources_by_user(user.id)


@router.get("/inventory", response_model=ResourceListResponse)
def list_inventory(
        q: str | None = None,
        limit: int = Query(50, ge=1, le=200),
        offset: int = Query(0, ge=0),
        sort: ResourceSort = Query(ResourceSort.id_desc, description="排序方式（可选）"),
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    if not can_manage_inventory(user):
        deny(user, "只有资源管理员可以查看库存台账")

    q = (q or "").strip() or None
    items, total = storage.search_resources(q=q, sort=sort, limit=limit, offset=offset)
    return {"items": items, "total": total, "limit": limit, "offset": offset, "q": q}


@router.get("/export.xlsx")
def export_resources_xlsx(
    storage: MemStorage = Depends(get_storage),
    user: User = Depends(require_user),
):
    if not can_manage_inventory(user):
        deny(user, "只有资源管理员可以导出库存台账")

    resources = storage.list_resources()
    header = ["ID", "Type", "Inventory No.", "Specifications", "Status", "Assigned to", "Department", "Created at"]

    def norm_dt(v):
        if v is None:
            return None
        return v.replace(tzinfo=None) if v.tzinfo else v

    wb = Workbook()
    ws = wb.active
    ws.title = "Inventory"

    header_font = Font(bold=True)
    header_fill = PatternFill("solid", fgColor="DDDDDD")
    header_align = Alignment(horizontal="center", vertical="center")

    ws.append(header)
    ws.row_dimensions[1].height = 26
    for col in range(1, len(header) + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_align

    for r in resources:
        assignee = storage.get_user(r.assigned_to_id) if r.assigned_to_id is not None else None
        dept = storage.get_department(r.department_id) if r.department_id is not None else None
        ws.append([
            r.id,
            r.resource_type,
            r.inventory_number,
            r.specifications or "",
            r.status.value,
            assignee.full_name if assignee else "",
            dept.name if dept else "",
            norm_dt(r.created_at),
        ])

    data_end_row = 1 + len(resources)

    # ✅ 冻结首行
    ws.freeze_panes = "A2"
    for row in range(2, data_end_row + 1):
        ws.cell(row=row, column=8).number_format = "yyyy-mm-dd hh:mm:ss"

    col_widths = {"A": 8, "B": 18, "C": 16, "D": 30, "E": 14, "F": 20, "G": 18, "H": 20}
    for k, w in col_widths.items():
        ws.column_dimensions[k].width = w

    # Table 范围至少要包含表头行
    table = Table(displayName="Inventory", ref=f"A1:H{max(1, data_end_row)}")
    table.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9",
        showFirstColumn=False,
        showLastColumn=False,
        showRowStripes=True,
        showColumnStripes=False,
    )
    ws.add_table(table)

    ws.append([])
    ws.append(["Exported at", datetime.now().strftime("%Y-%m-%d %H:%M:%S")])

    buf = io.BytesIO()
    wb.save(buf)

    quoted = quote("inventaire.xlsx")
    headers = {
        "Content-Disposition": f"attachment; filename=\"inventory.xlsx\"; filename*=UTF-8''{quoted}"
    }
    return Response(
        content=buf.getvalue(),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=headers,
    )


@router.post("", response_model=Resource, status_code=201)
def create_resource(
        data: ResourceCreate,
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    if not can_manage_inventory(user):
        deny(user, "只有资源管理员可以登记资源")
    _check_references(storage, data.assigned_to_id, data.department_id)
    return storage.create_resource(data)


@router.put("/{resource_id}", response_model=Resource)
def update_resource(
        resource_id: int,
        body: ResourceUpdate,
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    if not can_manage_inventory(user):
        deny(user, "只有资源管理员可以修改资源")

    if not storage.get_resource(resource_id):
        abort(404, "NOT_FOUND", "Resource not found")
    _check_references(storage, body.assigned_to_id, body.department_id)
    return storage.update_resource(resource_id, body)


@router.get("/{resource_id}", response_model=Resource)
def get_resource(
        resource_id: int,
        storage: MemStorage = Depends(get_storage),
        _user: User = Depends(require_user),
):
    resource = storage.get_resource(resource_id)
    if not resource:
        abort(404, "NOT_FOUND", "Resource not found")
    return resource
