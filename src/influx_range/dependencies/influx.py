from functools import lru_cache

from ..app_settings import AppSettings, app_settings
from ..clients.influx import InfluxClient


def get_settings() -> AppSettings:
    """Get application settings."""
    return app_settings


@lru_cache()
def get_influx_client() -> InfluxClient:
    """Get InfluxDB client instance (singleton)."""
    return InfluxClient(app_settings)
