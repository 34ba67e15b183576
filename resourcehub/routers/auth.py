from fastapi import APIRouter, Depends, Response
from fastapi.security import OAuth2PasswordRequestForm

from resourcehub.config import get_settings
from resourcehub.deps import require_user
from resourcehub.error import _auth_401, abort
from resourcehub.models import User
from resourcehub.schemas import UserCreate, UserRead, Token
from resourcehub.security import hash_password, verify_password, create_access_token
from resourcehub.storage import MemStorage, get_storage

router = APIRouter(prefix="/api", tags=["auth"])


def _set_auth_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
    )


@router.post("/register", response_model=UserRead, status_code=201)
def register(data: UserCreate, response: Response, storage: MemStorage = Depends(get_storage)):
    # 1) 用户名重复（先查一遍，给友好提示；create_user 里还会再兜底）
    if storage.get_user_by_username(data.username):
        abort(409, "USERNAME_EXISTS", "用户名已存在")

    # 2) 引用的部门必须存在
    if data.department_id is not None and not storage.get_department(data.department_id):
        abort(404, "NOT_FOUND", "Department not found")

    user = storage.create_user(data, hash_password(data.password))

    # 注册后直接登录
    _set_auth_cookie(response, create_access_token(user.username))
    return user


@router.post("/login", response_model=Token)
def login(
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    storage: MemStorage = Depends(get_storage),
):
    user = storage.get_user_by_username(form_data.username)
    if (not user) or (not verify_password(form_data.password, user.password_hash)):
        raise _auth_401("INVALID_CREDENTIALS", "用户名或密码错误")

    token = create_access_token(user.username)
    _set_auth_cookie(response, token)
    return {"access_token": token, "token_type": "bearer"}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(get_settings().auth_cookie_name)
    return {"ok": True}


@router.get("/user", response_model=UserRead)
def current_user(user: User = Depends(require_user)):
    return user
