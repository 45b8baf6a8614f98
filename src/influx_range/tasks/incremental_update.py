"""
Incremental updates of cached or in-memory measurement data.

For each measurement the resume point is derived fresh on every run, either
from the cache file names (start of the day after the latest cached chunk)
or from a dataset already in memory (latest datetime + 1 second). Only the
range from there to `end` is downloaded.
"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from ..entities.resume_state import ResumeState
from ..entities.result_set import concat_results
from ..enums.chunk_unit import ChunkUnit
from ..enums.resume_source import ResumeSource
from ..repos.cache_repo import CacheRepository
from ..repos.measurement_repo import MeasurementRepository
from ..utils.time_parser import parse_time

logger = logging.getLogger(__name__)

ONE_SECOND = pd.Timedelta(seconds=1)

# Names used by older callers
_SOURCE_ALIASES = {"files": ResumeSource.CACHE, "data": ResumeSource.DATASET}


def resolve_source(source: Union[str, ResumeSource]) -> ResumeSource:
    """Validate a resume source given as a string or ResumeSource."""
    if isinstance(source, str) and source in _SOURCE_ALIASES:
        return _SOURCE_ALIASES[source]
    try:
        return ResumeSource(source)
    except ValueError:
        raise ValueError(f"source must be 'cache' or 'dataset' (got {source!r})") from None


def resolve_resume_point(
    measurement: str,
    source: Union[str, ResumeSource],
    tz: str,
    dataset: Optional[pd.DataFrame] = None,
    cache_dir: Optional[Union[str, Path]] = None,
) -> Optional[pd.Timestamp]:
    """
    Instant from which the next download of a measurement should start.

    Args:
        measurement: Measurement name
        source: "cache" to look at cache file names, "dataset" to look at `dataset`
        tz: Timezone of the returned instant
        dataset: Result table searched in dataset mode
        cache_dir: Cache directory searched in cache mode

    Returns:
        Start of the day after the latest cached chunk (cache mode), latest
        datetime + 1 second (dataset mode), or None when there is no prior data
    """
    source = resolve_source(source)

    if source is ResumeSource.CACHE:
        if cache_dir is None:
            raise ValueError("cache_dir is required when source is 'cache'")
        end_dates = CacheRepository(cache_dir).cached_end_dates(measurement)
        if not end_dates:
            return None
        # A cached chunk covers its whole end date
        return parse_time(max(end_dates) + timedelta(days=1), tz=tz)

    if dataset is None or dataset.empty:
        return None

    rows = dataset[dataset["parameter"] == measurement]
    if rows.empty:
        return None

    return parse_time(pd.Timestamp(rows["datetime"].max()), tz=tz) + ONE_SECOND


class IncrementalUpdater:
    """Brings measurements up to date from their last known point."""

    def __init__(self, measurement_repo: MeasurementRepository):
        self.measurement_repo = measurement_repo

    def resume_state(
        self,
        measurement: str,
        source: ResumeSource,
        tz: str,
        dataset: Optional[pd.DataFrame],
        cache_dir: Union[str, Path],
    ) -> ResumeState:
        """Resume state of one measurement."""
        last_instant = resolve_resume_point(
            measurement, source, tz=tz, dataset=dataset, cache_dir=cache_dir
        )
        return ResumeState(measurement=measurement, last_instant=last_instant)

    def update(
        self,
        measurements: Union[str, Sequence[str]],
        source: Union[str, ResumeSource],
        bucket: str,
        tz: str,
        default_start: Any,
        chunk_by: Union[str, ChunkUnit],
        output_dir: Union[str, Path],
        dataset: Optional[pd.DataFrame] = None,
        end: Optional[Any] = None,
        fields: Optional[List[str]] = None,
        tags: Optional[Dict[str, Union[str, List[str]]]] = None,
        save_files: bool = True,
    ) -> pd.DataFrame:
        """
        Download everything newer than the last known point of each measurement.

        Args:
            measurements: Measurement name or names, processed in order
            source: "cache" or "dataset", see resolve_resume_point()
            bucket: InfluxDB bucket
            tz: Timezone for all boundaries and returned datetimes
            default_start: Start used when a measurement has no prior data
            chunk_by: "day", "week" or "month"
            output_dir: Cache directory, read in cache mode and written when saving
            dataset: Existing result table, used in dataset mode
            end: Update end, now when None
            fields: Field names to keep, None for no field filter
            tags: Tag key -> allowed values
            save_files: Save every non-empty chunk to output_dir

        Returns:
            Newly downloaded rows of all measurements
        """
        if isinstance(measurements, str):
            measurements = [measurements]
        source = resolve_source(source)

        if end is None:
            end_dt = pd.Timestamp.now(tz=tz)
        else:
            end_dt = parse_time(end, tz=tz, end_of_day=True)

        if save_files:
            CacheRepository(output_dir).ensure_dir()

        results = []
        for measurement in measurements:
            state = self.resume_state(measurement, source, tz, dataset, output_dir)

            if state.last_instant is None:
                start = parse_time(default_start, tz=tz)
                logger.info(f'No data found for "{measurement}" - starting from {default_start}')
            else:
                start = state.last_instant
                logger.info(f'Found existing data for "{measurement}" - starting from {start}')

            if start > end_dt:
                logger.info(f'No new data to download for "{measurement}"')
                continue

            df = self.measurement_repo.get_range(
                measurements=[measurement],
                start=start,
                end=end_dt,
                bucket=bucket,
                tz=tz,
                chunk_by=chunk_by,
                fields=fields,
                tags=tags,
                save_files=save_files,
                output_dir=output_dir,
            )
            results.append(df)

        return concat_results(results, tz)
