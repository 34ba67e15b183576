from resourcehub.models import NeedStatus, ReportStatus, Resource, ResourceNeed
from resourcehub.error import InvalidTransition


# 需求状态只能往前走：pending -> validated -> sent，rejected 从前两步可达
NEED_TRANSITIONS: dict[NeedStatus, frozenset[NeedStatus]] = {
    NeedStatus.pending: frozenset({NeedStatus.validated, NeedStatus.rejected}),
    NeedStatus.validated: frozenset({NeedStatus.sent, NeedStatus.rejected}),
    NeedStatus.rejected: frozenset(),
    NeedStatus.sent: frozenset(),
}


def check_need_transition(old: NeedStatus, new: NeedStatus) -> None:
    if old == new:
        return
    if new not in NEED_TRANSITIONS[old]:
        raise InvalidTransition(f"需求状态不能从 {old.value} 改为 {new.value}")


def is_resolution(old: ReportStatus, new: ReportStatus | None) -> bool:
    """报告第一次进入 resolved 才算“解决”，重复提交 resolved 不算"""
    return new == ReportStatus.resolved and old != ReportStatus.resolved


# ---- 通知文案（面向用户，法语） ----

def need_validated_message(need: ResourceNeed) -> tuple[str, str]:
    return "Besoin validé", f"Votre demande de {need.quantity} {need.resource_type}(s) a été validée."


def needs_sent_message(count: int) -> tuple[str, str]:
    return (
        "Besoins envoyés",
        f"{count} besoin(s) du département ont été envoyés au responsable des ressources.",
    )


def resource_assigned_message(resource: Resource) -> tuple[str, str]:
    specs = (resource.specifications or "").strip()
    label = f"{resource.resource_type} - {specs}" if specs else resource.resource_type
    return "Ressource affectée", f"{label} ({resource.inventory_number}) vous a été affecté(e)."


def maintenance_done_message(resource: Resource) -> tuple[str, str]:
    return (
        "Maintenance terminée",
        f"La maintenance de {resource.resource_type} ({resource.inventory_number}) est terminée.",
    )
