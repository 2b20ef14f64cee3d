"""
LINE Pay 网关服务入口
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import LoggingMiddleware, RequestIDMiddleware
from api.routes import payments as payments_routes
from core.config import settings
from core.exceptions import register_exception_handlers
from core.logging_config import get_logger
from core.response import success_response
from core.settings import payment_settings
from infrastructure.database import create_tables, engine


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 生产环境的表结构由宿主商城维护
    if settings.DEBUG:
        await create_tables()
        logger.info("database_tables_created")
    logger.info(
        "linepay_gateway_started",
        payment_mode=payment_settings.linepay.payment_mode,
        is_active=payment_settings.linepay.is_active,
    )
    yield
    await engine.dispose()
    logger.info("linepay_gateway_stopped")


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        description="LINE Pay 跳转支付网关（发起、确认、取消、退款）",
    )
    # 后添加的先执行：CORS -> RequestID -> Logging
    application.add_middleware(LoggingMiddleware)
    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    register_exception_handlers(application)
    application.include_router(payments_routes.router, prefix="/api/v1")

    @application.get("/health", tags=["Health"])
    async def health_check():
        return success_response(
            data={
                "status": "healthy",
                "version": settings.VERSION,
                "linepay_mode": payment_settings.linepay.payment_mode,
            }
        )

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
