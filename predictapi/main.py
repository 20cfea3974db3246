import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from mangum import Mangum
from starlette.middleware.cors import CORSMiddleware

from predictapi import containers
from predictapi.config import settings
from predictapi.core.exception_handlers import register_exception_handlers
from predictapi.core.logging_middleware import LoggingMiddleware
from predictapi.logging_config import setup_logging
from predictapi.routers import (
    event_router,
    health_router,
    point_router,
    settlement_router,
)

load_dotenv("predictapi/.env")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # 브로드캐스트용 Redis 연결 정리
    await app.container.services.broadcast_service().close()  # type: ignore[attr-defined]


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )
    app.container = containers.Container()  # type: ignore

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health_router.router)
    app.include_router(event_router.router, prefix=settings.API_V1_STR)
    app.include_router(event_router.admin_router, prefix=settings.API_V1_STR)
    app.include_router(settlement_router.router, prefix=settings.API_V1_STR)
    app.include_router(point_router.router, prefix=settings.API_V1_STR)
    app.include_router(point_router.admin_router, prefix=settings.API_V1_STR)

    logger.info(f"{settings.APP_NAME} started (environment={settings.ENVIRONMENT})")
    return app


app = create_app()

handler = Mangum(app)
