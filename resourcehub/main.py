from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from resourcehub.config import get_settings
from resourcehub.error import ResourceHubError
from resourcehub.logging_config import logger, setup_logging
from resourcehub.routers import auth, resource_needs, resources, maintenance, notifications, departments
from resourcehub.seed import seed_demo_data
from resourcehub.storage import MemStorage


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ✅ 启动阶段：整个进程只创建一个存储实例
    storage = MemStorage()
    if get_settings().seed_demo_data:
        seed_demo_data(storage)
        logger.info("demo data seeded (users: chef / enseignant)")
    app.state.storage = storage
    yield
    logger.info("service stopped")


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="ResourceHub - Department Resources", lifespan=lifespan)

    app.include_router(auth.router)
    app.include_router(resource_needs.router)
    app.include_router(resources.router)
    app.include_router(maintenance.router)
    app.include_router(notifications.router)
    app.include_router(departments.router)

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder(
                {"code": "VALIDATION_ERROR", "message": "参数校验失败", "errors": exc.errors()}
            ),
        )

    @app.exception_handler(ResourceHubError)
    async def domain_exception_handler(request: Request, exc: ResourceHubError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": {"code": "INTERNAL_ERROR", "message": "An error occurred"}},
        )

    return app


app = create_app()
