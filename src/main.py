"""
Carpool Service - FastAPI Application

Schedule slots, vehicle assignments and the seat-capacity guard for child assignments.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from src.platform.app_factory import create_app
from src.platform.config.core_setting import settings
from src.platform.config.di import container
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.database.orm_db_setting import create_db_and_tables, dispose_engine, get_engine
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Carpool Service] Starting up...')

    tracing = TracingConfig(service_name='carpool-service')
    tracing.setup()
    Logger.base.info('📊 [Carpool Service] OpenTelemetry tracing configured')

    container.wire(modules=WIRE_MODULES)
    Logger.base.info('🔌 [Carpool Service] Dependency injection wired')

    engine = get_engine()
    tracing.instrument_sqlalchemy(engine=engine)
    Logger.base.info('🗄️  [Carpool Service] Database engine ready + instrumented')

    if settings.DB_CREATE_TABLES_ON_STARTUP:
        await create_db_and_tables(engine)

    Logger.base.info('✅ [Carpool Service] Ready to serve requests')

    yield

    Logger.base.info('🛑 [Carpool Service] Shutting down...')

    await dispose_engine()
    Logger.base.info('🗄️  [Carpool Service] Database engine disposed')

    # Flush remaining spans
    tracing.shutdown()
    Logger.base.info('📊 [Carpool Service] Tracing shutdown complete')

    container.unwire()

    Logger.base.info('👋 [Carpool Service] Shutdown complete')


app = create_app(lifespan=lifespan)


@app.get('/')
async def root() -> RedirectResponse:
    """Root endpoint - redirect to docs."""
    return RedirectResponse(url='/docs')
