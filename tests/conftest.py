"""Shared fixtures: a recording stand-in for the InfluxDB client and row builders."""

from __future__ import annotations

import re
from typing import Callable, List, Optional

import pandas as pd
import pytest

from influx_range.app_settings import AppSettings
from influx_range.entities.result_set import conform_result, empty_result

TZ = "Australia/Sydney"

_MEASUREMENT_RE = re.compile(r'r\._measurement == "([^"]*)"')
_RANGE_RE = re.compile(r"range\(start: (\S+), stop: (\S+)\)")


def query_measurement(query: str) -> str:
    """Measurement named in a Flux query."""
    return _MEASUREMENT_RE.search(query).group(1)


def query_range(query: str) -> tuple:
    """(start, stop) UTC strings of a Flux query."""
    match = _RANGE_RE.search(query)
    return match.group(1), match.group(2)


def rows_for(measurement: str, times: List[str], tz: str = TZ, value: float = 1.0) -> pd.DataFrame:
    """Result rows of one measurement at the given UTC instants."""
    return conform_result(
        pd.DataFrame(
            {
                "datetime": pd.to_datetime(times, utc=True).tz_convert(tz),
                "house": "house_1",
                "parameter": measurement,
                "device": "sensor.a",
                "value": value,
                "value_type": "value",
            }
        ),
        tz,
    )


class FakeInfluxClient:
    """Records every query; answers through `responder` or one row at the range start."""

    def __init__(self, responder: Optional[Callable[[str, str], pd.DataFrame]] = None, healthy: bool = True):
        self.queries: List[str] = []
        self.responder = responder
        self.healthy = healthy
        self.closed = False

    def query(self, query: str, tz: str) -> pd.DataFrame:
        self.queries.append(query)
        if self.responder is not None:
            return self.responder(query, tz)
        start, _ = query_range(query)
        return rows_for(query_measurement(query), [start], tz)

    def health_check(self) -> bool:
        return self.healthy

    def close(self) -> None:
        self.closed = True


def empty_responder(query: str, tz: str) -> pd.DataFrame:
    """Responder for a server that has no data."""
    return empty_result(tz)


@pytest.fixture
def fake_client() -> FakeInfluxClient:
    """Fake client answering one row per chunk."""
    return FakeInfluxClient()


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    """Settings pointing at a fake server and a temporary cache directory."""
    return AppSettings(
        influxdb_url="http://influx.test:8086",
        influxdb_token="test-token",
        influxdb_org="test-org",
        influxdb_bucket="dp23",
        timezone=TZ,
        output_dir=str(tmp_path / "cache"),
    )
