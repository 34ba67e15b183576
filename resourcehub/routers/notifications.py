from fastapi import APIRouter, Depends

from resourcehub.deps import require_user, deny
from resourcehub.error import abort
from resourcehub.models import User, Notification
from resourcehub.schemas import UnreadCount
from resourcehub.services.permissions import can_read_notification
from resourcehub.storage import MemStorage, get_storage

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=list[Notification])
def list_notifications(
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    return storage.list_notifications_by_user(user.id)


@router.get("/count", response_model=UnreadCount)
def unread_count(
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    # 前端会定时轮询这个接口
    return {"count": storage.count_unread_notifications_by_user(user.id)}


@router.post("/{notification_id}/read", response_model=Notification)
def mark_as_read(
        notification_id: int,
        storage: MemStorage = Depends(get_storage),
        user: User = Depends(require_user),
):
    notification = storage.get_notification(notification_id)
    if not notification:
        abort(404, "NOT_FOUND", "Notification not found")

    if not can_read_notification(user, notification):
        deny(user, "无权操作该通知")

    return storage.mark_notification_as_read(notification_id)
