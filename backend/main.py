"""
Trend Radio Backend - FastAPI Application Entry Point

启动命令:
    uvicorn main:app --reload --host 0.0.0.0 --port 8000
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from trend_radio.core import cache, settings, setup_logging
from trend_radio.core.database import create_tables
from trend_radio.deps.admin import OPEN_ADMIN_ENVIRONMENTS
from trend_radio.services.radio.errors import RadioErrorHandler, RadioOperationError
from trend_radio.services.radio.runtime import radio_runtime


# 设置日志
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    from trend_radio.core.logging import logger

    logger.info(f"application_startup: {settings.PROJECT_NAME}")
    if not settings.ADMIN_API_KEY and settings.ENVIRONMENT not in OPEN_ADMIN_ENVIRONMENTS:
        logger.warning("ADMIN_API_KEY not set, admin API is closed")
    cache.init()

    if settings.DATABASE_AUTO_CREATE:
        try:
            await create_tables()
        except SQLAlchemyError as exc:
            RadioErrorHandler.handle_database_error(exc, "create_tables")

    monitor = radio_runtime.health_monitor
    if settings.HEALTH_MONITOR_ENABLED:
        await monitor.start()

    yield

    if monitor.is_monitoring_active():
        await monitor.stop()
    await cache.close()
    logger.info("application_shutdown")


async def radio_operation_error_handler(request: Request, exc: RadioOperationError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.error.http_status_code,
        content=RadioErrorHandler.to_api_response(exc.error),
    )


def create_app() -> FastAPI:
    """创建 FastAPI 应用"""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )

    # CORS 配置
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=settings.BACKEND_CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.BACKEND_CORS_ALLOW_METHODS,
        allow_headers=settings.BACKEND_CORS_ALLOW_HEADERS,
        expose_headers=["ETag"],
    )

    app.add_exception_handler(RadioOperationError, radio_operation_error_handler)

    # 注册路由
    register_routes(app)

    return app


def register_routes(app: FastAPI) -> None:
    """注册所有 API 路由"""
    from trend_radio.api.v1 import (
        admin_radio_health_router,
        admin_radio_settings_router,
        radio_router,
    )

    api_prefix = settings.API_V1_STR

    app.include_router(admin_radio_settings_router, prefix=api_prefix)
    app.include_router(admin_radio_health_router, prefix=api_prefix)
    app.include_router(radio_router, prefix=api_prefix)


# 创建应用实例
app = create_app()


def run():
    """脚本入口点"""
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    run()
