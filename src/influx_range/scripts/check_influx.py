"""
InfluxDB connectivity check.

    python -m influx_range.scripts.check_influx [measurement]

Verifies the configured server answers /health and, when a measurement is
given, runs a one-day query against it and reports the cached chunk files.
"""

import logging
import sys

import pandas as pd

from influx_range.app_settings import app_settings
from influx_range.clients.influx import InfluxClient
from influx_range.exceptions.influx_exceptions import ConfigurationError, InfluxRangeException
from influx_range.repos.cache_repo import CacheRepository
from influx_range.repos.measurement_repo import MeasurementRepository

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main(argv=None):
    """Check the InfluxDB connection and the local cache."""
    argv = sys.argv[1:] if argv is None else argv
    measurement = argv[0] if argv else None

    try:
        logger.info("Starting InfluxDB connectivity check...")
        logger.info(f"Connecting to {app_settings.influxdb_url}")
        logger.info(f"Target bucket: {app_settings.influxdb_bucket} (org {app_settings.influxdb_org})")

        client = InfluxClient(app_settings)

        logger.info("Testing connection...")
        if client.health_check():
            logger.info("✅ InfluxDB connection successful")
        else:
            logger.error("❌ InfluxDB health check failed")
            client.close()
            return 1

        if measurement:
            logger.info(f"Querying the last day of {measurement}...")
            repo = MeasurementRepository(client)
            yesterday = (pd.Timestamp.now(tz=app_settings.timezone) - pd.Timedelta(days=1)).date()
            df = repo.get_range(
                measurements=[measurement],
                start=yesterday,
                end=yesterday,
                bucket=app_settings.influxdb_bucket,
                tz=app_settings.timezone,
                chunk_by="day",
                fields=app_settings.default_fields,
            )
            logger.info(f"  {measurement}: {len(df)} rows")

            cached = CacheRepository(app_settings.output_dir).cached_end_dates(measurement)
            if cached:
                logger.info(f"  cached chunks: {len(cached)}, latest ends {cached[-1]}")
            else:
                logger.warning(f"⚠️ No cached chunks for {measurement} in {app_settings.output_dir}")

        client.close()

        logger.info("✅ InfluxDB check completed")
        return 0

    except ConfigurationError as e:
        logger.error(f"❌ Configuration error: {e}")
        return 1
    except InfluxRangeException as e:
        logger.error(f"❌ InfluxDB error: {e}")
        return 1
    except Exception as e:
        logger.error(f"❌ Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
