"""Tests for result table encoding."""

import pandas as pd
import pyarrow as pa
import pytest
from starlette.requests import Request

from influx_range.utils import arrow_response
from influx_range.utils.arrow_response import ARROW_MIME, client_wants_arrow, dataframe_to_records

from conftest import TZ, rows_for


def request_with_accept(accept: str) -> Request:
    return Request({"type": "http", "headers": [(b"accept", accept.encode("latin-1"))]})


@pytest.mark.parametrize(
    "accept,expected",
    [
        (ARROW_MIME, True),
        (f"application/json;q=0.5, {ARROW_MIME}", True),
        (f"{ARROW_MIME}; q=0.8", True),
        (f"{ARROW_MIME};q=0", False),
        ("application/json", False),
        ("*/*", False),
        ("", False),
    ],
)
def test_client_wants_arrow(accept, expected):
    assert client_wants_arrow(request_with_accept(accept)) is expected


def test_stream_is_written_in_batches(monkeypatch):
    monkeypatch.setattr(arrow_response, "BATCH_ROWS", 2)
    df = rows_for("tvoc", ["2024-06-01T00:00:00Z", "2024-06-01T00:01:00Z", "2024-06-01T00:02:00Z"])
    table = pa.Table.from_pandas(df, preserve_index=False)

    pieces = list(arrow_response._ipc_stream(table))
    reader = pa.ipc.open_stream(b"".join(pieces))
    batches = list(reader)

    assert [b.num_rows for b in batches] == [2, 1]
    assert reader.schema.field("datetime").type.tz == TZ


def test_stream_of_empty_table_keeps_schema():
    df = rows_for("tvoc", [])
    table = pa.Table.from_pandas(df, preserve_index=False)

    result = pa.ipc.open_stream(b"".join(arrow_response._ipc_stream(table))).read_all()

    assert result.num_rows == 0
    assert result.schema.names == list(df.columns)


def test_records_use_iso_datetimes_and_nulls():
    df = rows_for("tvoc", ["2024-06-01T00:00:00Z"])
    df.loc[0, "device"] = None
    body = dataframe_to_records(df)
    assert body["rows"] == 1
    assert body["records"][0]["datetime"] == pd.Timestamp("2024-06-01 10:00:00", tz=TZ).isoformat()
    assert body["records"][0]["device"] is None
