"""
Time-range chunking for InfluxDB downloads.

A long range is split into calendar-aligned chunks so that no single Flux
query exceeds what the server is willing to return.

CHUNKING ALGORITHM
------------------

INPUT:
  start = "2024-06-01"  -> 2024-06-01 00:00:00 (local)
  end = "2024-08-15"    -> 2024-08-15 23:59:59 (local, end of day)
  chunk_by = "month"

OUTPUT:

    Chunk 1: 2024-06-01 00:00:00 -> 2024-06-30 23:59:59
    Chunk 2: 2024-07-01 00:00:00 -> 2024-07-31 23:59:59
    Chunk 3: 2024-08-01 00:00:00 -> 2024-08-15 23:59:59 (capped at end)

Chunk starts are start + k * unit, computed from the anchor start with
calendar offsets, so month steps keep the day of month (clamped in shorter
months) and day steps keep the wall-clock time across DST changes. Each
chunk ends one second before the next one starts; the last chunk never runs
past the requested end.
"""

import logging
from typing import Any, List, Union

import pandas as pd

from ..entities.chunk import ChunkSpec
from ..enums.chunk_unit import ChunkUnit
from ..exceptions.influx_exceptions import InvalidChunkUnitError
from .time_parser import UTC_FORMAT, localize_wall_clock, parse_time

logger = logging.getLogger(__name__)

ONE_SECOND = pd.Timedelta(seconds=1)


def resolve_chunk_unit(chunk_by: Union[str, ChunkUnit]) -> ChunkUnit:
    """Validate a chunking unit given as a string or ChunkUnit."""
    try:
        return ChunkUnit(chunk_by)
    except ValueError:
        raise InvalidChunkUnitError(
            f"chunk_by must be one of: 'month', 'week', 'day' (got {chunk_by!r})"
        ) from None


def _offset(unit: ChunkUnit, k: int) -> pd.DateOffset:
    if unit is ChunkUnit.MONTH:
        return pd.DateOffset(months=k)
    if unit is ChunkUnit.WEEK:
        return pd.DateOffset(weeks=k)
    return pd.DateOffset(days=k)


def _step(start_dt: pd.Timestamp, unit: ChunkUnit, k: int, tz: str) -> pd.Timestamp:
    """Chunk start k units after start_dt, stepped on the wall clock."""
    if k == 0:
        return start_dt
    return localize_wall_clock(start_dt.tz_localize(None) + _offset(unit, k), tz)


def _utc(ts: pd.Timestamp) -> str:
    return ts.tz_convert("UTC").strftime(UTC_FORMAT)


def plan_chunks(
    start: Any,
    end: Any,
    chunk_by: Union[str, ChunkUnit],
    tz: str,
) -> List[ChunkSpec]:
    """
    Split [start, end] into calendar-aligned chunks.

    Args:
        start: Range start, anything parse_time() accepts
        end: Range end, anything parse_time() accepts (date-only means end of day)
        chunk_by: "day", "week" or "month"
        tz: Timezone chunk boundaries are computed in

    Returns:
        Chronologically ordered chunks; empty if start is after end

    Raises:
        InvalidChunkUnitError: If chunk_by is not a supported unit
    """
    unit = resolve_chunk_unit(chunk_by)
    start_dt = parse_time(start, tz=tz)
    end_dt = parse_time(end, tz=tz, end_of_day=True)

    starts: List[pd.Timestamp] = []
    k = 0
    while True:
        chunk_start = _step(start_dt, unit, k, tz)
        if chunk_start > end_dt:
            break
        starts.append(chunk_start)
        k += 1

    chunks = []
    for i, chunk_start in enumerate(starts):
        chunk_end = _step(start_dt, unit, i + 1, tz) - ONE_SECOND
        if i == len(starts) - 1:
            chunk_end = min(chunk_end, end_dt)
        chunks.append(
            ChunkSpec(
                local_start=chunk_start,
                local_end=chunk_end,
                utc_start=_utc(chunk_start),
                utc_end=_utc(chunk_end),
            )
        )

    logger.debug(f"Planned {len(chunks)} {unit.value} chunks from {start_dt} to {end_dt}")
    return chunks
