import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ..app_settings import AppSettings
from ..enums.resume_source import ResumeSource
from .incremental_update import IncrementalUpdater

logger = logging.getLogger(__name__)


def run_scheduled_update(updater: IncrementalUpdater, settings: AppSettings) -> None:
    """Run the daily incremental update of the configured measurements."""
    if not settings.update_measurements:
        logger.warning("Scheduled update skipped: no update_measurements configured")
        return

    logger.info(f"Starting scheduled update of {', '.join(settings.update_measurements)}...")

    try:
        df = updater.update(
            measurements=settings.update_measurements,
            source=ResumeSource.CACHE,
            bucket=settings.influxdb_bucket,
            tz=settings.timezone,
            default_start=settings.default_start,
            chunk_by=settings.chunk_by,
            output_dir=settings.output_dir,
            fields=settings.default_fields,
            save_files=True,
        )
        logger.info(f"Scheduled update completed: {len(df)} new rows")

    except Exception as e:
        # Next run resumes from whatever was cached before the failure
        logger.error(f"Scheduled update failed: {e}")


def setup_update_scheduler(updater: IncrementalUpdater, settings: AppSettings) -> AsyncIOScheduler:
    """
    Setup the scheduled incremental update.

    Runs every day at settings.update_hour:settings.update_minute.
    """
    scheduler = AsyncIOScheduler(timezone=settings.timezone)

    scheduler.add_job(
        run_scheduled_update,
        CronTrigger(hour=settings.update_hour, minute=settings.update_minute, timezone=settings.timezone),
        args=[updater, settings],
        id="incremental_update",
        name="Incremental Update",
        max_instances=1,
        replace_existing=True
    )

    logger.info(
        f"Update scheduler configured (runs daily at "
        f"{settings.update_hour:02d}:{settings.update_minute:02d} {settings.timezone})"
    )

    return scheduler
