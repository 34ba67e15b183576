from datetime import datetime, timedelta, timezone

from resourcehub.models import (
    Role, NeedStatus, ResourceStatus, Urgency, ReportStatus, NotificationType, utcnow,
)
from resourcehub.schemas import (
    UserCreate, DepartmentCreate, DepartmentUpdate, ResourceCreate, ResourceNeedInsert,
    MaintenanceReportInsert, MaintenanceReportUpdate, NotificationCreate,
)
from resourcehub.security import hash_password
from resourcehub.storage import MemStorage

DEMO_PASSWORD = "password"


def _day(s: str) -> datetime:
    return datetime.fromisoformat(s).replace(tzinfo=timezone.utc)


def seed_demo_data(storage: MemStorage) -> None:
    """演示数据：一个部门 + 负责人/教师两个账号（密码都是 password）"""
    dept = storage.create_department(DepartmentCreate(name="Informatique"))
    pw = hash_password(DEMO_PASSWORD)

    head = storage.create_user(UserCreate(
        username="chef", password=DEMO_PASSWORD, full_name="Dr. Professeur",
        role=Role.department_head, department_id=dept.id,
    ), pw)
    teacher = storage.create_user(UserCreate(
        username="enseignant", password=DEMO_PASSWORD, full_name="Dr. Martin",
        role=Role.teacher, department_id=dept.id,
    ), pw)
    storage.update_department(dept.id, DepartmentUpdate(head_id=head.id))

    computer = storage.create_resource(ResourceCreate(
        resource_type="Ordinateur", inventory_number="INV-2023-001",
        specifications="i5, 16GB RAM, 512GB SSD", assigned_to_id=teacher.id, department_id=dept.id,
    ))
    storage.create_resource(ResourceCreate(
        resource_type="Imprimante", inventory_number="INV-2023-002",
        specifications="Laser, Couleur, Wifi", department_id=dept.id,
    ))
    scanner = storage.create_resource(ResourceCreate(
        resource_type="Scanner", inventory_number="INV-2023-003",
        specifications="Pro, Auto Document Feeder", status=ResourceStatus.maintenance, department_id=dept.id,
    ))
    storage.resources[computer.id] = computer.model_copy(update={"created_at": _day("2023-03-10")})

    storage.create_resource_need(ResourceNeedInsert(
        resource_type="Ordinateur", quantity=3, specifications="i7, 32GB RAM, 1TB SSD",
        user_id=teacher.id, department_id=dept.id,
    ))
    printer_need = storage.create_resource_need(ResourceNeedInsert(
        resource_type="Imprimante", quantity=1, specifications="Laser couleur, recto-verso automatique",
        user_id=teacher.id, department_id=dept.id,
    ))
    storage.resource_needs[printer_need.id] = printer_need.model_copy(update={
        "status": NeedStatus.validated,
        "created_at": _day("2023-02-05"),
        "updated_at": _day("2023-02-07"),
    })

    report = storage.create_maintenance_report(MaintenanceReportInsert(
        resource_id=scanner.id,
        description="Le chargeur automatique ne fonctionne plus, les feuilles restent bloquées.",
        occurrence_date=_day("2023-02-28"),
        urgency=Urgency.medium,
        reported_by_id=teacher.id,
    ))
    storage.update_maintenance_report(report.id, MaintenanceReportUpdate(status=ReportStatus.in_progress))

    # 上面分配电脑时已经生成了一条“资源已分配”通知，这里补两条
    now = utcnow()
    for title, message, ntype, age in (
        ("Besoin validé", "Votre demande d'ordinateur a été validée", NotificationType.info, timedelta(hours=2)),
        ("Maintenance prévue", "Maintenance des serveurs prévue ce weekend", NotificationType.warning, timedelta(days=1)),
    ):
        n = storage.create_notification(NotificationCreate(
            user_id=teacher.id, title=title, message=message, type=ntype,
        ))
        storage.notifications[n.id] = n.model_copy(update={"created_at": now - age})
