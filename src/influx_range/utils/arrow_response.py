"""
Result tables over HTTP.

Range and cache reads answer JSON by default. Clients that send
`Accept: application/vnd.apache.arrow.stream` get an Arrow IPC stream
instead, written in record batches of BATCH_ROWS rows so large ranges reach
the client while the rest is still being encoded.
"""

import io
import re
from typing import Any, Dict, Iterator

import pandas as pd
import pyarrow as pa
import pyarrow.ipc as pa_ipc
from starlette.requests import Request
from starlette.responses import StreamingResponse

ARROW_MIME = "application/vnd.apache.arrow.stream"
BATCH_ROWS = 50_000

_QUALITY_RE = re.compile(r"^\s*q\s*=\s*([0-9.]+)\s*$", re.IGNORECASE)


def _quality(params: str) -> float:
    for param in params.split(";"):
        match = _QUALITY_RE.match(param)
        if match:
            try:
                return float(match.group(1))
            except ValueError:
                return 0.0
    return 1.0


def client_wants_arrow(request: Request) -> bool:
    """True when the Accept header lists the Arrow stream type with a non-zero quality."""
    for item in request.headers.get("accept", "").split(","):
        media_type, _, params = item.partition(";")
        if media_type.strip().lower() == ARROW_MIME:
            return _quality(params) > 0
    return False


def _ipc_stream(table: pa.Table) -> Iterator[bytes]:
    sink = io.BytesIO()
    sent = 0
    with pa_ipc.new_stream(sink, table.schema) as writer:
        for batch in table.to_batches(max_chunksize=BATCH_ROWS):
            writer.write_batch(batch)
            data = sink.getvalue()
            yield data[sent:]
            sent = len(data)
    # end-of-stream marker, and the schema when there were no batches
    yield sink.getvalue()[sent:]


def dataframe_to_arrow_streaming_response(df: pd.DataFrame, filename: str = "range.arrow") -> StreamingResponse:
    """Arrow IPC stream of a result table, without the pandas index."""
    table = pa.Table.from_pandas(df, preserve_index=False)
    return StreamingResponse(
        _ipc_stream(table),
        media_type=ARROW_MIME,
        headers={
            "Content-Disposition": f'inline; filename="{filename}"',
            "X-Row-Count": str(table.num_rows),
        },
    )


def dataframe_to_records(df: pd.DataFrame) -> Dict[str, Any]:
    """JSON body for a result table: ISO-8601 datetimes, nulls for missing values."""
    out = df.copy()
    if "datetime" in out.columns:
        out["datetime"] = out["datetime"].map(lambda ts: ts.isoformat())
    out = out.astype(object).where(out.notna(), None)
    return {
        "columns": list(out.columns),
        "rows": len(out),
        "records": out.to_dict(orient="records"),
    }
