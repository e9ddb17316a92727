"""
Carpool FastAPI app factory, shared by `src.main` and the test app.

Mounts the schedule slot routes plus the operational endpoints:
- /health       liveness
- /health/db    PostgreSQL round trip (the seat guard's lock authority)
- /metrics      Prometheus exposition
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
import time
from typing import Any

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.platform.config.core_setting import settings
from src.platform.database.orm_db_setting import get_engine
from src.platform.exception.exception_handlers import register_exception_handlers
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig
from src.service.carpool.driving_adapter.http_controller.schedule_slot_controller import (
    router as schedule_slot_router,
)


SCHEDULE_SLOT_PREFIX = '/api/schedule-slots'


def create_app(
    *,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[Any]],
    title_suffix: str = '',
    description: str = 'Carpool schedule and seat assignment service',
    service_name: str = 'carpool-service',
) -> FastAPI:
    app = FastAPI(
        title=f'{settings.PROJECT_NAME}{title_suffix}',
        description=description,
        version=settings.VERSION,
        lifespan=lifespan,
    )

    # Instrument before routes are mounted
    TracingConfig(service_name=service_name).instrument_fastapi(app=app)

    app.add_middleware(
        CORSMiddleware,  # type: ignore
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )
    register_exception_handlers(app)

    app.include_router(schedule_slot_router, prefix=SCHEDULE_SLOT_PREFIX, tags=['schedule-slots'])
    _register_operational_endpoints(app)

    return app


def _register_operational_endpoints(app: FastAPI) -> None:
    @app.get('/health', tags=['ops'])
    async def health_check() -> dict[str, str]:
        return {'status': 'healthy', 'service': settings.PROJECT_NAME}

    @app.get('/health/db', tags=['ops'])
    async def database_health_check() -> JSONResponse:
        """Readiness: assignments cannot be guarded without the database."""
        started = time.perf_counter()
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text('SELECT 1'))
        except (SQLAlchemyError, OSError) as e:
            Logger.base.warning(f'⚠️ [HEALTH] Database unreachable: {e}')
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={'status': 'unhealthy', 'database': 'unreachable'},
            )
        return JSONResponse(
            content={
                'status': 'healthy',
                'database': 'reachable',
                'response_time_ms': round((time.perf_counter() - started) * 1000, 2),
            }
        )

    @app.get('/metrics', tags=['ops'])
    async def get_metrics() -> PlainTextResponse:
        return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
