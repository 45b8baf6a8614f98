"""InfluxDB client tests with a mocked HTTP transport."""

from __future__ import annotations

import httpx
import numpy as np
import pandas as pd
import pytest

from influx_range.app_settings import AppSettings
from influx_range.clients.influx import InfluxClient, parse_query_csv
from influx_range.entities.result_set import RESULT_COLUMNS
from influx_range.exceptions.influx_exceptions import ConfigurationError, SchemaError, TransportError

TZ = "Australia/Sydney"

CSV_RESPONSE = (
    ",result,table,_time,_value,_field,_measurement,entity_id,source\r\n"
    ",_result,0,2024-06-01T00:00:00Z,21.5,value,temp,sensor.a,house_1\r\n"
    ",_result,0,2024-06-01T00:05:00.5Z,22,value,temp,sensor.a,house_1\r\n"
)


def make_client(settings: AppSettings, handler) -> InfluxClient:
    return InfluxClient(settings, transport=httpx.MockTransport(handler))


def csv_handler(body: str, status: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text=body)

    return handler


def test_query_request_shape(settings):
    """The query is POSTed as Flux with token auth and the org parameter."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, text="")

    client = make_client(settings, handler)
    client.query('from(bucket: "dp23")', tz=TZ)

    request = seen["request"]
    assert request.method == "POST"
    assert request.url.path == "/api/v2/query"
    assert request.url.params["org"] == "test-org"
    assert request.headers["Authorization"] == "Token test-token"
    assert request.headers["Content-Type"] == "application/vnd.flux"
    assert request.headers["Accept"] == "application/csv"
    assert request.content == b'from(bucket: "dp23")'


def test_query_parses_and_renames_columns(settings):
    client = make_client(settings, csv_handler(CSV_RESPONSE))
    df = client.query("q", tz=TZ)

    assert list(df.columns) == RESULT_COLUMNS
    assert len(df) == 2
    assert df["datetime"].iloc[0] == pd.Timestamp("2024-06-01 10:00:00", tz=TZ)
    assert str(df["datetime"].dt.tz) == TZ
    assert df["house"].tolist() == ["house_1", "house_1"]
    assert df["parameter"].tolist() == ["temp", "temp"]
    assert df["device"].tolist() == ["sensor.a", "sensor.a"]
    assert df["value_type"].tolist() == ["value", "value"]
    assert df["value"].tolist() == [21.5, 22.0]


def test_query_blank_body_returns_typed_empty_result(settings):
    client = make_client(settings, csv_handler("\r\n"))
    df = client.query("q", tz=TZ)

    assert df.empty
    assert list(df.columns) == RESULT_COLUMNS
    assert isinstance(df["datetime"].dtype, pd.DatetimeTZDtype)
    assert str(df["datetime"].dt.tz) == TZ
    assert df["value"].dtype == np.float64


def test_header_only_response_is_empty():
    df = parse_query_csv(",result,table,_time,_value\r\n", TZ)
    assert df.empty
    assert list(df.columns) == RESULT_COLUMNS


def test_multiple_tables_and_annotations():
    """Blank-line separated tables with different columns are concatenated; # rows are skipped."""
    text = (
        "#datatype,string,long,dateTime:RFC3339,double,string,string\r\n"
        ",result,table,_time,_value,_field,_measurement\r\n"
        ",_result,0,2024-06-01T00:00:00Z,1,value,temp\r\n"
        "\r\n"
        ",result,table,_time,_value,_field,_measurement,room\r\n"
        ",_result,1,2024-06-01T01:00:00Z,2,value,temp,kitchen\r\n"
    )
    df = parse_query_csv(text, TZ)

    assert len(df) == 2
    assert list(df.columns) == RESULT_COLUMNS + ["room"]
    assert df["value"].tolist() == [1.0, 2.0]
    assert df["room"].iloc[1] == "kitchen"
    assert df["house"].isna().all()


def test_string_values_are_kept_as_text():
    text = ",result,table,_time,_value,_field,_measurement\r\n,_result,0,2024-06-01T00:00:00Z,on,state,switch\r\n"
    df = parse_query_csv(text, TZ)
    assert df["value"].tolist() == ["on"]


def test_missing_time_column_raises_schema_error(settings):
    client = make_client(settings, csv_handler(",result,table,_value\r\n,_result,0,1.5\r\n"))
    with pytest.raises(SchemaError, match="_time"):
        client.query("q", tz=TZ)


def test_error_status_raises_transport_error(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"code": "invalid", "message": "compilation failed: error @1:1"})

    client = make_client(settings, handler)
    with pytest.raises(TransportError, match="400.*compilation failed"):
        client.query("q", tz=TZ)


def test_network_failure_raises_transport_error(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(settings, handler)
    with pytest.raises(TransportError, match="connection refused") as exc_info:
        client.query("q", tz=TZ)
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.parametrize("field,env_var", [
    ("influxdb_url", "INFLUXDB_URL"),
    ("influxdb_token", "INFLUXDB_TOKEN"),
    ("influxdb_org", "INFLUXDB_ORG"),
])
def test_missing_setting_raises_configuration_error(settings, field, env_var):
    incomplete = settings.model_copy(update={field: ""})
    with pytest.raises(ConfigurationError, match=env_var):
        InfluxClient(incomplete)


def test_health_check(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/health"
        return httpx.Response(200, json={"status": "pass"})

    assert make_client(settings, handler).health_check() is True
    assert make_client(settings, csv_handler("", status=503)).health_check() is False


def test_close_and_context_manager(settings):
    with make_client(settings, csv_handler("")) as client:
        assert client.query("q", tz=TZ).empty
    with pytest.raises(TransportError, match="No active connection"):
        client.query("q", tz=TZ)
