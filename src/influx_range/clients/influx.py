import io
import logging
import threading
from typing import List, Optional

import httpx
import pandas as pd

from ..app_settings import AppSettings, app_settings
from ..entities.result_set import RESULT_COLUMN_MAP, conform_result, empty_result
from ..exceptions.influx_exceptions import ConfigurationError, SchemaError, TransportError

logger = logging.getLogger(__name__)

FLUX_MIME = "application/vnd.flux"

# Bookkeeping columns of the annotated CSV that never reach the result
_DROP_COLUMNS = {"result", "table"}


class InfluxClient:
    """Thread-safe InfluxDB v2 query client over HTTP (httpx)."""

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        settings = settings or app_settings
        self._client: Optional[httpx.Client] = None
        self._lock = threading.RLock()
        self.url = settings.influxdb_url
        self.org = settings.influxdb_org
        self._token = settings.influxdb_token
        self.timeout = settings.request_timeout
        self._validate()
        self._connect(transport)

    def _validate(self) -> None:
        """Fail early when a connection setting is missing."""
        required = {
            "INFLUXDB_URL": self.url,
            "INFLUXDB_TOKEN": self._token,
            "INFLUXDB_ORG": self.org,
        }
        for env_var, value in required.items():
            if not value:
                raise ConfigurationError(
                    f"{env_var} is not set. Set the {env_var} environment variable or add it to .env"
                )

    def _connect(self, transport: Optional[httpx.BaseTransport]) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.Client(
            base_url=self.url,
            headers={"Authorization": f"Token {self._token}"},
            timeout=self.timeout,
            transport=transport,
        )
        logger.info(f"InfluxDB client configured for {self.url} (org {self.org})")

    def _post_query(self, query: str) -> str:
        """Thread-safe query execution, returns the raw CSV body."""
        with self._lock:
            if not self._client:
                raise TransportError("No active connection")
            try:
                response = self._client.post(
                    "/api/v2/query",
                    params={"org": self.org},
                    content=query.encode("utf-8"),
                    headers={"Content-Type": FLUX_MIME, "Accept": "application/csv"},
                )
            except httpx.HTTPError as e:
                logger.error(f"InfluxDB request failed: {e}")
                raise TransportError(f"InfluxDB request failed: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.error(f"InfluxDB query failed with status {response.status_code}: {message}")
            raise TransportError(f"InfluxDB query failed with status {response.status_code}: {message}")

        return response.text

    def query(self, query: str, tz: str) -> pd.DataFrame:
        """
        Execute a Flux query and return the result table.

        Args:
            query: Flux query string
            tz: Timezone the datetime column is converted to

        Returns:
            DataFrame with datetime, house, parameter, device, value, value_type
            and any extra tag columns; an empty typed frame when there is no data

        Raises:
            TransportError: On network failure or an error status
            SchemaError: If the response has rows but no _time column
        """
        text = self._post_query(query)
        if not text.strip():
            return empty_result(tz)
        return parse_query_csv(text, tz)

    def health_check(self) -> bool:
        """Check if InfluxDB is reachable and reports itself healthy."""
        try:
            with self._lock:
                response = self._client.get("/health")
            return response.status_code == 200
        except Exception:
            return False

    def close(self) -> None:
        """Close the connection."""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "InfluxClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.text.strip()


def _split_tables(text: str) -> List[str]:
    """Split a CSV response into its blank-line separated tables, minus annotation rows."""
    tables, current = [], []
    for line in text.splitlines():
        if not line.strip():
            if current:
                tables.append("\n".join(current))
                current = []
            continue
        if line.startswith("#"):
            continue
        current.append(line)
    if current:
        tables.append("\n".join(current))
    return tables


def _to_numeric(values: pd.Series) -> pd.Series:
    try:
        return pd.to_numeric(values)
    except (ValueError, TypeError):
        # string fields keep their text
        return values


def parse_query_csv(text: str, tz: str) -> pd.DataFrame:
    """Parse an InfluxDB CSV query response into a result table."""
    frames = [
        pd.read_csv(io.StringIO(table), dtype=str, keep_default_na=False)
        for table in _split_tables(text)
    ]
    frames = [df for df in frames if not df.empty]
    if not frames:
        return empty_result(tz)

    df = pd.concat(frames, ignore_index=True)
    drop = [c for c in df.columns if c.startswith("Unnamed") or c in _DROP_COLUMNS]
    df = df.drop(columns=drop)

    if "_time" not in df.columns:
        raise SchemaError(f"Query result has no _time column (columns: {list(df.columns)})")

    df = df.rename(columns={src: dst for src, dst in RESULT_COLUMN_MAP.items() if src in df.columns})
    df["datetime"] = pd.to_datetime(df["datetime"], utc=True, format="ISO8601").dt.tz_convert(tz)
    if "value" in df.columns:
        df["value"] = _to_numeric(df["value"])

    return conform_result(df, tz)
