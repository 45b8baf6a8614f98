"""
Compressed CSV cache of downloaded chunks.

Every non-empty chunk is written once, named after its measurement and the
local date the chunk ends on:

    data/raw/influx/
        tvoc_2024-06-30.csv.gz
        tvoc_2024-07-31.csv.gz
        tvoc_2024-08-15.csv.gz
        co2_2024-06-30.csv.gz

The file name is the only record of what has been downloaded; the resume
point of an incremental update is derived from the latest date embedded in
these names.
"""

import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

import pandas as pd

from ..entities.result_set import concat_results, conform_result, empty_result
from ..exceptions.influx_exceptions import CacheDirectoryNotFoundError
from ..utils.time_parser import parse_time

logger = logging.getLogger(__name__)

CACHE_SUFFIX = ".csv.gz"
CACHE_FILE_PATTERN = re.compile(r"^(?P<measurement>.+)_(?P<end_date>\d{4}-\d{2}-\d{2})\.csv\.gz$")


class CacheRepository:
    """Repository for cached chunk files in one directory."""

    def __init__(self, cache_dir: Union[str, Path]):
        self.cache_dir = Path(cache_dir)

    @staticmethod
    def file_name(measurement: str, end_date: date) -> str:
        """Cache file name for a measurement chunk ending on end_date."""
        return f"{measurement}_{end_date:%Y-%m-%d}{CACHE_SUFFIX}"

    def ensure_dir(self) -> None:
        """Create the cache directory if needed."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def save_chunk(self, measurement: str, end_date: date, df: pd.DataFrame) -> Path:
        """Write one chunk as a gzip-compressed CSV and return its path."""
        self.ensure_dir()
        path = self.cache_dir / self.file_name(measurement, end_date)
        df.to_csv(path, index=False, compression="gzip")
        logger.info(f"  Saved {path}")
        return path

    def list_files(self, measurements: Optional[Iterable[str]] = None) -> List[Path]:
        """Cache files in the directory, optionally only those of the given measurements."""
        if not self.cache_dir.is_dir():
            return []

        wanted = set(measurements) if measurements is not None else None
        files = []
        for path in sorted(self.cache_dir.glob(f"*{CACHE_SUFFIX}")):
            match = CACHE_FILE_PATTERN.match(path.name)
            if not match:
                continue
            if wanted is not None and match.group("measurement") not in wanted:
                continue
            files.append(path)
        return files

    def cached_end_dates(self, measurement: str) -> List[date]:
        """End dates embedded in the cache file names of one measurement."""
        dates = []
        for path in self.list_files([measurement]):
            end_date = CACHE_FILE_PATTERN.match(path.name).group("end_date")
            dates.append(datetime.strptime(end_date, "%Y-%m-%d").date())
        return sorted(dates)

    def read_file(self, path: Path, tz: str) -> pd.DataFrame:
        """Decode one cache file into a result table."""
        df = pd.read_csv(path, compression="gzip")
        if df.empty:
            return empty_result(tz, extra_columns=df.columns)
        df["datetime"] = pd.to_datetime(df["datetime"], utc=True, format="ISO8601").dt.tz_convert(tz)
        return conform_result(df, tz)

    def read_cached(
        self,
        tz: str,
        measurements: Optional[Iterable[str]] = None,
        start: Optional[Any] = None,
        end: Optional[Any] = None,
    ) -> pd.DataFrame:
        """
        Read cached chunks back into one table.

        Args:
            tz: Timezone for the datetime column and the time filters
            measurements: Measurement names to read; all files if None
            start: Optional lower bound, inclusive
            end: Optional upper bound, inclusive (date-only means end of day)

        Returns:
            Concatenated table, empty if no matching files exist

        Raises:
            CacheDirectoryNotFoundError: If the cache directory does not exist
        """
        if not self.cache_dir.is_dir():
            raise CacheDirectoryNotFoundError(f"Data directory does not exist: {self.cache_dir}")

        if measurements is not None:
            measurements = list(measurements)

        files = self.list_files(measurements)
        if not files:
            if measurements is None:
                logger.warning(f"No cached files found in {self.cache_dir}")
            else:
                logger.warning(f"No cached files found for: {', '.join(measurements)}")
            return empty_result(tz)

        df = concat_results([self.read_file(path, tz) for path in files], tz)

        if start is not None:
            start_dt = parse_time(start, tz=tz)
            df = df[df["datetime"] >= start_dt]

        if end is not None:
            end_dt = parse_time(end, tz=tz, end_of_day=True)
            df = df[df["datetime"] <= end_dt]

        return df.reset_index(drop=True)
