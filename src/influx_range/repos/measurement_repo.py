import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from ..clients.influx import InfluxClient
from ..entities.filter_spec import FilterSpec
from ..entities.result_set import concat_results
from ..enums.chunk_unit import ChunkUnit
from ..utils.chunking import plan_chunks
from ..utils.flux_query import build_query
from .cache_repo import CacheRepository

logger = logging.getLogger(__name__)


class MeasurementRepository:
    """Repository for chunked measurement downloads."""

    def __init__(self, influx_client: InfluxClient):
        self.client = influx_client

    def get_range(
        self,
        measurements: Union[str, Sequence[str]],
        start: Any,
        end: Any,
        bucket: str,
        tz: str,
        chunk_by: Union[str, ChunkUnit],
        fields: Optional[List[str]] = None,
        tags: Optional[Dict[str, Union[str, List[str]]]] = None,
        save_files: bool = False,
        output_dir: Optional[Union[str, Path]] = None,
    ) -> pd.DataFrame:
        """
        Download measurements over [start, end], one chunk query at a time.

        Measurements are fetched in the given order and each one chunk by chunk
        in chronological order. A failing chunk aborts the whole call; chunks
        saved before it stay on disk.

        Args:
            measurements: Measurement name or names
            start: Range start, anything parse_time() accepts
            end: Range end, anything parse_time() accepts
            bucket: InfluxDB bucket
            tz: Timezone for chunk boundaries and returned datetimes
            chunk_by: "day", "week" or "month"
            fields: Field names to keep, None for no field filter
            tags: Tag key -> allowed values
            save_files: Save every non-empty chunk to output_dir
            output_dir: Cache directory, required when save_files is set

        Returns:
            All chunks of all measurements, concatenated in fetch order
        """
        if isinstance(measurements, str):
            measurements = [measurements]

        chunks = plan_chunks(start, end, chunk_by=chunk_by, tz=tz)

        cache_repo = None
        if save_files:
            if output_dir is None:
                raise ValueError("output_dir is required when save_files is set")
            cache_repo = CacheRepository(output_dir)
            cache_repo.ensure_dir()

        results = []
        for measurement in measurements:
            filter_spec = FilterSpec(measurement=measurement, fields=fields, tags=tags or {})

            for chunk in chunks:
                logger.info(f'Downloading "{measurement}" from {chunk.utc_start} to {chunk.utc_end}')

                query = build_query(filter_spec, chunk, bucket=bucket)
                df = self.client.query(query, tz=tz)

                if cache_repo is not None and not df.empty:
                    cache_repo.save_chunk(measurement, chunk.local_end.date(), df)

                results.append(df)

        return concat_results(results, tz)
