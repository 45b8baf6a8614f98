import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from .app_settings import app_settings
from .dependencies.influx import get_influx_client

from .routes import health, ranges

logging.basicConfig(level=app_settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Influx Range Service")

    if app_settings.update_schedule_enabled:
        from .repos.measurement_repo import MeasurementRepository
        from .tasks.incremental_update import IncrementalUpdater
        from .tasks.scheduled_update import setup_update_scheduler

        try:
            updater = IncrementalUpdater(MeasurementRepository(get_influx_client()))
            scheduler = setup_update_scheduler(updater, app_settings)
            scheduler.start()
            app.state.scheduler = scheduler
        except Exception as e:
            logger.error(f"Failed to initialize update scheduler: {e}")
            raise

    yield

    # Shutdown
    logger.info("Shutting down Influx Range Service")
    if hasattr(app.state, "scheduler"):
        app.state.scheduler.shutdown()
        logger.info("Update scheduler stopped")
    if get_influx_client.cache_info().currsize:
        get_influx_client().close()
        get_influx_client.cache_clear()
        logger.info("InfluxDB connection closed")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title="InfluxDB Range API",
        version="0.1.0",
        description="Chunked InfluxDB downloads with a compressed CSV cache and incremental updates",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.get_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # GZip middleware
    if app_settings.gzip_enabled:
        app.add_middleware(
            GZipMiddleware,
            minimum_size=app_settings.gzip_min_size,
            compresslevel=app_settings.gzip_level,
        )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(ranges.router, tags=["Ranges"])

    return app


# Application instance
app = create_app()
