import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..app_settings import AppSettings
from ..clients.influx import InfluxClient
from ..dependencies.influx import get_influx_client, get_settings
from ..entities.update_request import UpdateRequest, UpdateSummary
from ..enums.chunk_unit import ChunkUnit
from ..enums.resume_source import ResumeSource
from ..exceptions.influx_exceptions import (
    CacheDirectoryNotFoundError,
    ConfigurationError,
    InvalidChunkUnitError,
    InvalidFilterError,
    ParseError,
    SchemaError,
    TransportError,
    UnsupportedInputError,
)
from ..repos.cache_repo import CacheRepository
from ..repos.measurement_repo import MeasurementRepository
from ..tasks.incremental_update import IncrementalUpdater
from ..utils.arrow_response import (
    client_wants_arrow,
    dataframe_to_arrow_streaming_response,
    dataframe_to_records,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_tag_params(tag: Optional[List[str]]) -> Dict[str, List[str]]:
    """Turn repeated `key=value` query params into tag key -> values."""
    tags: Dict[str, List[str]] = {}
    for item in tag or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise InvalidFilterError(f'Tag filter must look like key=value (got "{item}")')
        tags.setdefault(key, []).append(value)
    return tags


def _http_error(e: Exception) -> HTTPException:
    """Map library errors to HTTP errors."""
    if isinstance(e, (ParseError, UnsupportedInputError, InvalidChunkUnitError, InvalidFilterError)):
        return HTTPException(400, str(e))
    if isinstance(e, CacheDirectoryNotFoundError):
        return HTTPException(404, str(e))
    if isinstance(e, (TransportError, SchemaError)):
        return HTTPException(502, f"InfluxDB error: {str(e)}")
    if isinstance(e, ConfigurationError):
        return HTTPException(500, f"Configuration error: {str(e)}")
    return HTTPException(500, f"Internal error: {str(e)}")


@router.get("/range")
async def get_range(
    request: Request,
    measurement: List[str] = Query(..., description="Measurement name, repeatable"),
    start: str = Query(..., description="Range start (date or datetime)"),
    end: str = Query(..., description="Range end (date means end of day)"),
    field: Optional[List[str]] = Query(None, description="Field filter, repeatable"),
    all_fields: bool = Query(False, description="Do not filter on fields"),
    tag: Optional[List[str]] = Query(None, description="Tag filter key=value, repeatable"),
    chunk_by: Optional[ChunkUnit] = Query(None, description="day|week|month"),
    save: bool = Query(False, description="Save non-empty chunks to the cache"),
    influx_client: InfluxClient = Depends(get_influx_client),
    settings: AppSettings = Depends(get_settings),
):
    """Download measurements over a time range, chunk by chunk."""
    try:
        fields = None if all_fields else (field or settings.default_fields)
        repo = MeasurementRepository(influx_client)
        df = repo.get_range(
            measurements=measurement,
            start=start,
            end=end,
            bucket=settings.influxdb_bucket,
            tz=settings.timezone,
            chunk_by=chunk_by or settings.chunk_by,
            fields=fields,
            tags=parse_tag_params(tag),
            save_files=save,
            output_dir=settings.output_dir,
        )
    except Exception as e:
        logger.error(f"Error in range endpoint: {e}")
        raise _http_error(e)

    if client_wants_arrow(request):
        return dataframe_to_arrow_streaming_response(df)
    return dataframe_to_records(df)


@router.post("/update", response_model=UpdateSummary)
async def run_update(
    body: UpdateRequest,
    influx_client: InfluxClient = Depends(get_influx_client),
    settings: AppSettings = Depends(get_settings),
) -> UpdateSummary:
    """Bring cached measurements up to date."""
    try:
        updater = IncrementalUpdater(MeasurementRepository(influx_client))
        df = updater.update(
            measurements=body.measurements,
            source=ResumeSource.CACHE,
            bucket=settings.influxdb_bucket,
            tz=settings.timezone,
            default_start=settings.default_start,
            chunk_by=body.chunk_by or settings.chunk_by,
            output_dir=settings.output_dir,
            end=body.end,
            fields=body.fields if body.fields is not None else settings.default_fields,
            tags=body.tags,
            save_files=True,
        )
    except Exception as e:
        logger.error(f"Error in update endpoint: {e}")
        raise _http_error(e)

    counts = df.groupby("parameter").size() if not df.empty else {}
    rows = {m: int(counts.get(m, 0)) for m in body.measurements}
    return UpdateSummary(rows=rows, total_rows=len(df))


@router.get("/cached")
async def get_cached(
    request: Request,
    measurement: Optional[List[str]] = Query(None, description="Measurement name, repeatable"),
    start: Optional[str] = Query(None, description="Inclusive lower bound"),
    end: Optional[str] = Query(None, description="Inclusive upper bound"),
    settings: AppSettings = Depends(get_settings),
):
    """Read previously cached chunks."""
    try:
        cache_repo = CacheRepository(settings.output_dir)
        df = cache_repo.read_cached(
            tz=settings.timezone,
            measurements=measurement,
            start=start,
            end=end,
        )
    except Exception as e:
        logger.error(f"Error in cached endpoint: {e}")
        raise _http_error(e)

    if client_wants_arrow(request):
        return dataframe_to_arrow_streaming_response(df, filename="cached.arrow")
    return dataframe_to_records(df)
