from fastapi import APIRouter, Depends

from resourcehub.deps import require_user
from resourcehub.models import User, Department
from resourcehub.storage import MemStorage, get_storage

router = APIRouter(prefix="/api/departments", tags=["departments"])


@router.get("", response_model=list[Department])
def list_departments(
        storage: MemStorage = Depends(get_storage),
        _user: User = Depends(require_user),
):
    return storage.list_departments()
