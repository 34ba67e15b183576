from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from resourcehub.config import get_settings
from resourcehub.error import _auth_401, abort
from resourcehub.logging_config import logger
from resourcehub.models import User
from resourcehub.security import decode_token
from resourcehub.storage import MemStorage, get_storage

log = logger.getChild("auth")

# ✅ auto_error=False：没带 Bearer 时再去看 cookie，错误格式也由我们接管
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/login", auto_error=False)


def require_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    storage: MemStorage = Depends(get_storage),
) -> User:
    # 1) Header 优先，其次是浏览器带上来的会话 cookie
    if not token:
        token = request.cookies.get(get_settings().auth_cookie_name)
    if not token:
        raise _auth_401("NOT_AUTHENTICATED", "未登录或登录已失效，请重新登录")

    # 2) token 无效 / 过期 / secret_key 不一致
    try:
        username = decode_token(token)
    except (JWTError, ValueError):
        raise _auth_401("INVALID_TOKEN", "Token 无效或已过期，请重新登录")

    # 3) token 验过了，但用户已不存在（进程重启后内存被清空）
    user = storage.get_user_by_username(username)
    if not user:
        raise _auth_401("USER_NOT_FOUND", "用户不存在或已被删除")

    return user


def deny(user: User, message: str) -> None:
    log.warning("denied user=%s role=%s: %s", user.username, user.role.value, message)
    abort(403, "FORBIDDEN", message)
