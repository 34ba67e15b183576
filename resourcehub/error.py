from fastapi import HTTPException


def _auth_401(code: str, message: str) -> HTTPException:
    # ✅ 保留 WWW-Authenticate，符合 Bearer 规范
    return HTTPException(
        status_code=401,
        detail={"code": code, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def abort(status_code: int, code: str, message: str) -> None:
    raise HTTPException(status_code=status_code, detail={"code": code, "message": message})


class ResourceHubError(Exception):
    """存储层的业务错误，由 main 里的 exception handler 统一转成 JSON"""

    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


class Conflict(ResourceHubError):
    status_code = 409
    code = "CONFLICT"


class InvalidTransition(ResourceHubError):
    status_code = 409
    code = "INVALID_TRANSITION"
