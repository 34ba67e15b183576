from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from threading import Barrier

import pytest

from resourcehub.error import Conflict, InvalidTransition
from resourcehub.models import NeedStatus, ResourceStatus, ReportStatus, Urgency, Role
from resourcehub.schemas import (
    UserCreate, UserUpdate, ResourceNeedInsert, ResourceNeedUpdate, ResourceCreate, ResourceUpdate,
    MaintenanceReportInsert, MaintenanceReportUpdate, DepartmentCreate, ResourceSort,
)


def _need(storage, user, department_id=None, **kw):
    data = {"resource_type": "Ordinateur", "quantity": 2}
    data.update(kw)
    return storage.create_resource_need(ResourceNeedInsert(
        **data, user_id=user.id,
        department_id=department_id if department_id is not None else user.department_id,
    ))


def _report(storage, resource, user, **kw):
    return storage.create_maintenance_report(MaintenanceReportInsert(
        resource_id=resource.id,
        description="ne démarre plus",
        occurrence_date=datetime(2024, 1, 10, tzinfo=timezone.utc),
        urgency=Urgency.high,
        reported_by_id=user.id,
        **kw,
    ))


def test_missing_ids_return_none(storage):
    assert storage.get_user(1) is None
    assert storage.get_department(1) is None
    assert storage.get_resource_need(1) is None
    assert storage.get_resource(1) is None
    assert storage.get_maintenance_report(1) is None
    assert storage.get_notification(1) is None
    assert storage.update_resource_need(1, ResourceNeedUpdate(quantity=3)) is None
    assert storage.update_resource(1, ResourceUpdate(status=ResourceStatus.functional)) is None
    assert storage.update_maintenance_report(1, MaintenanceReportUpdate(status=ReportStatus.resolved)) is None
    assert storage.mark_notification_as_read(1) is None


def test_ids_are_monotonic_per_entity(storage, dept):
    a = _need(storage, dept["teacher"])
    b = _need(storage, dept["teacher"])
    assert b.id == a.id + 1
    # 其他实体有自己的计数器
    d2 = storage.create_department(DepartmentCreate(name="Maths"))
    assert d2.id == dept["department"].id + 1


def test_duplicate_username_conflict(storage, dept):
    with pytest.raises(Conflict):
        storage.create_user(
            UserCreate(username="teacher", password="x", full_name="T", role=Role.teacher), "hash"
        )


def test_users_by_department_and_update(storage, dept):
    names = {u.username for u in storage.list_users_by_department(dept["department"].id)}
    assert names == {"head", "teacher", "teacher2"}

    moved = storage.update_user(dept["tech"].id, UserUpdate(department_id=dept["department"].id))
    assert moved.role == Role.technician
    assert moved.password_hash == dept["tech"].password_hash
    assert len(storage.list_users_by_department(dept["department"].id)) == 4
    assert storage.update_user(999, UserUpdate(full_name="x")) is None


def test_create_need_defaults(storage, dept):
    need = _need(storage, dept["teacher"])
    assert need.status == NeedStatus.pending
    assert need.updated_at is None
    assert need.created_at is not None


def test_update_need_keeps_server_fields(storage, dept):
    need = _need(storage, dept["teacher"])
    updated = storage.update_resource_need(need.id, ResourceNeedUpdate(quantity=5, comments=None))
    assert updated.quantity == 5
    assert updated.id == need.id
    assert updated.created_at == need.created_at
    assert updated.user_id == need.user_id
    assert updated.updated_at is not None


def test_update_need_rejects_backward_transition(storage, dept):
    need = _need(storage, dept["teacher"])
    storage.validate_resource_needs([need.id])
    with pytest.raises(InvalidTransition):
        storage.update_resource_need(need.id, ResourceNeedUpdate(status=NeedStatus.pending))

    rejected = storage.update_resource_need(need.id, ResourceNeedUpdate(status=NeedStatus.rejected))
    assert rejected.status == NeedStatus.rejected


def test_validate_only_pending_and_idempotent(storage, dept):
    teacher = dept["teacher"]
    n1 = _need(storage, teacher)
    n2 = _need(storage, teacher)
    storage.update_resource_need(n2.id, ResourceNeedUpdate(status=NeedStatus.rejected))

    result = storage.validate_resource_needs([n1.id, n2.id, 999])
    assert [n.id for n in result] == [n1.id]
    assert storage.get_resource_need(n1.id).status == NeedStatus.validated
    assert storage.get_resource_need(n1.id).updated_at is not None
    assert storage.get_resource_need(n2.id).status == NeedStatus.rejected
    assert storage.count_unread_notifications_by_user(teacher.id) == 1

    # 第二次调用是空操作
    assert storage.validate_resource_needs([n1.id]) == []
    assert storage.count_unread_notifications_by_user(teacher.id) == 1


def test_send_only_validated_of_department(storage, dept):
    teacher = dept["teacher"]
    other = storage.create_department(DepartmentCreate(name="Maths"))

    validated = _need(storage, teacher)
    pending = _need(storage, teacher)
    foreign = _need(storage, teacher, department_id=other.id)
    storage.validate_resource_needs([validated.id, foreign.id])

    sent = storage.send_resource_needs(dept["department"].id)
    assert [n.id for n in sent] == [validated.id]
    assert storage.get_resource_need(validated.id).status == NeedStatus.sent
    assert storage.get_resource_need(pending.id).status == NeedStatus.pending
    assert storage.get_resource_need(foreign.id).status == NeedStatus.validated

    # 部门负责人只收到一条通知
    head_notes = storage.list_notifications_by_user(dept["head"].id)
    assert len(head_notes) == 1
    assert head_notes[0].type.value == "success"


def test_send_with_nothing_validated_does_not_notify(storage, dept):
    _need(storage, dept["teacher"])
    assert storage.send_resource_needs(dept["department"].id) == []
    assert storage.list_notifications_by_user(dept["head"].id) == []


def test_need_workflow_example(storage, dept):
    teacher = dept["teacher"]
    need = _need(storage, teacher, resource_type="Ordinateur", quantity=2)
    assert need.status == NeedStatus.pending

    storage.validate_resource_needs([need.id])
    assert storage.get_resource_need(need.id).status == NeedStatus.validated
    assert len(storage.list_notifications_by_user(teacher.id)) == 1

    storage.send_resource_needs(dept["department"].id)
    assert storage.get_resource_need(need.id).status == NeedStatus.sent
    assert len(storage.list_notifications_by_user(dept["head"].id)) == 1


def test_list_needs_newest_first(storage, dept):
    a = _need(storage, dept["teacher"])
    b = _need(storage, dept["teacher"])
    c = _need(storage, dept["teacher2"])
    assert [n.id for n in storage.list_resource_needs_by_user(dept["teacher"].id)] == [b.id, a.id]
    assert [n.id for n in storage.list_resource_needs_by_department(dept["department"].id)] == [c.id, b.id, a.id]


def test_create_resource_with_assignee_notifies_once(storage, dept):
    teacher = dept["teacher"]
    storage.create_resource(ResourceCreate(
        resource_type="Ordinateur", inventory_number="INV-1", assigned_to_id=teacher.id,
    ))
    notes = storage.list_notifications_by_user(teacher.id)
    assert len(notes) == 1
    assert "INV-1" in notes[0].message

    storage.create_resource(ResourceCreate(resource_type="Scanner", inventory_number="INV-2"))
    assert len(storage.notifications) == 1


def test_duplicate_inventory_number(storage):
    storage.create_resource(ResourceCreate(resource_type="Scanner", inventory_number="INV-1"))
    with pytest.raises(Conflict):
        storage.create_resource(ResourceCreate(resource_type="Imprimante", inventory_number="INV-1"))


def test_reassign_resource_notifies_new_assignee(storage, dept):
    r = storage.create_resource(ResourceCreate(resource_type="Scanner", inventory_number="INV-1"))
    storage.update_resource(r.id, ResourceUpdate(assigned_to_id=dept["teacher"].id))
    # 同一个人再分配一次不重复通知
    storage.update_resource(r.id, ResourceUpdate(assigned_to_id=dept["teacher"].id))
    assert storage.count_unread_notifications_by_user(dept["teacher"].id) == 1

    unassigned = storage.update_resource(r.id, ResourceUpdate(assigned_to_id=None))
    assert unassigned.assigned_to_id is None


def test_maintenance_report_flow(storage, dept):
    teacher = dept["teacher"]
    r = storage.create_resource(ResourceCreate(
        resource_type="Imprimante", inventory_number="INV-9", assigned_to_id=teacher.id,
        department_id=dept["department"].id,
    ))
    report = _report(storage, r, teacher)
    assert report.status == ReportStatus.pending
    assert storage.get_resource(r.id).status == ResourceStatus.maintenance

    before = storage.count_unread_notifications_by_user(teacher.id)
    storage.update_maintenance_report(report.id, MaintenanceReportUpdate(status=ReportStatus.in_progress))
    assert storage.get_resource(r.id).status == ResourceStatus.maintenance

    storage.update_maintenance_report(report.id, MaintenanceReportUpdate(status=ReportStatus.resolved))
    assert storage.get_resource(r.id).status == ResourceStatus.functional
    assert storage.count_unread_notifications_by_user(teacher.id) == before + 1

    # 再次 resolved 不会再改资源、也不会再通知
    storage.update_resource(r.id, ResourceUpdate(status=ResourceStatus.out_of_order))
    again = storage.update_maintenance_report(report.id, MaintenanceReportUpdate(status=ReportStatus.resolved))
    assert again.status == ReportStatus.resolved
    assert storage.get_resource(r.id).status == ResourceStatus.out_of_order
    assert storage.count_unread_notifications_by_user(teacher.id) == before + 1


def test_maintenance_listings(storage, dept):
    teacher, tech = dept["teacher"], dept["tech"]
    mine = storage.create_resource(ResourceCreate(
        resource_type="Scanner", inventory_number="INV-1", department_id=dept["department"].id,
    ))
    elsewhere = storage.create_resource(ResourceCreate(resource_type="Scanner", inventory_number="INV-2"))
    a = _report(storage, mine, teacher, assigned_to_id=tech.id)
    b = _report(storage, elsewhere, teacher)

    assert [x.id for x in storage.list_maintenance_reports_by_user(teacher.id)] == [b.id, a.id]
    assert [x.id for x in storage.list_maintenance_reports_by_assignee(tech.id)] == [a.id]
    assert [x.id for x in storage.list_maintenance_reports_by_department(dept["department"].id)] == [a.id]


def test_notifications_read_and_count(storage, dept):
    teacher = dept["teacher"]
    storage.create_resource(ResourceCreate(
        resource_type="Ordinateur", inventory_number="INV-1", assigned_to_id=teacher.id,
    ))
    note = storage.list_notifications_by_user(teacher.id)[0]
    assert storage.count_unread_notifications_by_user(teacher.id) == 1
    assert storage.mark_notification_as_read(note.id).is_read is True
    assert storage.count_unread_notifications_by_user(teacher.id) == 0


def test_search_resources(storage):
    for i, kind in enumerate(["Scanner", "Imprimante", "Ordinateur"], start=1):
        storage.create_resource(ResourceCreate(resource_type=kind, inventory_number=f"INV-{i}"))

    items, total = storage.search_resources(q="inv", sort=ResourceSort.type_asc, limit=2)
    assert total == 3
    assert [r.resource_type for r in items] == ["Imprimante", "Ordinateur"]

    items, total = storage.search_resources(q="scan")
    assert total == 1
    assert items[0].inventory_number == "INV-1"


def _run_concurrently(fn, workers=16):
    barrier = Barrier(workers)

    def call():
        barrier.wait()
        return fn()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return [f.result() for f in [pool.submit(call) for _ in range(workers)]]


def test_concurrent_validate_transitions_once(storage, dept):
    teacher = dept["teacher"]
    for _ in range(20):
        need = _need(storage, teacher)
        before = storage.count_unread_notifications_by_user(teacher.id)

        results = _run_concurrently(lambda: storage.validate_resource_needs([need.id]))

        assert sum(len(r) for r in results) == 1
        assert storage.count_unread_notifications_by_user(teacher.id) == before + 1


def test_concurrent_resolve_notifies_once(storage, dept):
    teacher = dept["teacher"]
    r = storage.create_resource(ResourceCreate(
        resource_type="Imprimante", inventory_number="INV-C", assigned_to_id=teacher.id,
    ))
    for _ in range(20):
        report = _report(storage, r, teacher)
        before = storage.count_unread_notifications_by_user(teacher.id)

        _run_concurrently(lambda: storage.update_maintenance_report(
            report.id, MaintenanceReportUpdate(status=ReportStatus.resolved),
        ))

        assert storage.get_resource(r.id).status == ResourceStatus.functional
        assert storage.count_unread_notifications_by_user(teacher.id) == before + 1


def test_validate_skips_other_departments(storage, dept):
    other = storage.create_department(DepartmentCreate(name="Maths"))
    mine = _need(storage, dept["teacher"])
    foreign = _need(storage, dept["teacher"], department_id=other.id)

    result = storage.validate_resource_needs([mine.id, foreign.id], department_id=dept["department"].id)
    assert [n.id for n in result] == [mine.id]
    assert storage.get_resource_need(foreign.id).status == NeedStatus.pending


def test_notification_texts_are_french(storage, dept):
    need = _need(storage, dept["teacher"], resource_type="Ordinateur", quantity=2)
    storage.validate_resource_needs([need.id])
    note = storage.list_notifications_by_user(dept["teacher"].id)[0]
    assert note.title == "Besoin validé"
    assert note.message == "Votre demande de 2 Ordinateur(s) a été validée."
