import logging
from datetime import datetime as dt, timezone

from fastapi import APIRouter, Depends

from ..app_settings import AppSettings
from ..clients.influx import InfluxClient
from ..dependencies.influx import get_influx_client, get_settings
from ..repos.cache_repo import CacheRepository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(
    influx_client: InfluxClient = Depends(get_influx_client),
    settings: AppSettings = Depends(get_settings),
):
    """Health check endpoint."""
    influx_status = "OK" if influx_client.health_check() else "ERROR: /health did not answer 200"

    cache_files = len(CacheRepository(settings.output_dir).list_files())

    return {
        "status": "healthy" if influx_status == "OK" else "degraded",
        "influxdb": influx_status,
        "bucket": settings.influxdb_bucket,
        "cache": f"{cache_files} cached chunk files in {settings.output_dir}",
        "timestamp": dt.now(timezone.utc).isoformat(),
    }


@router.get("/api/defaults")
async def get_query_defaults(settings: AppSettings = Depends(get_settings)):
    """Get query defaults for API clients."""
    return settings.get_query_defaults()
