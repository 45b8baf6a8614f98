"""Column schema of query results and cached chunks."""

from typing import Dict, Iterable, List

import numpy as np
import pandas as pd

# InfluxDB column -> result column; applied only to columns present in a response
RESULT_COLUMN_MAP: Dict[str, str] = {
    "_time": "datetime",
    "source": "house",
    "_measurement": "parameter",
    "entity_id": "device",
    "_value": "value",
    "_field": "value_type",
}

RESULT_COLUMNS: List[str] = ["datetime", "house", "parameter", "device", "value", "value_type"]


def _empty_column(name: str, tz: str) -> pd.Series:
    if name == "datetime":
        return pd.Series([], dtype=pd.DatetimeTZDtype(tz=tz))
    if name == "value":
        return pd.Series([], dtype=np.float64)
    return pd.Series([], dtype=object)


def empty_result(tz: str, extra_columns: Iterable[str] = ()) -> pd.DataFrame:
    """Zero-row result with every expected column and its dtype."""
    columns = RESULT_COLUMNS + [c for c in extra_columns if c not in RESULT_COLUMNS]
    return pd.DataFrame({name: _empty_column(name, tz) for name in columns})


def conform_result(df: pd.DataFrame, tz: str) -> pd.DataFrame:
    """Add missing expected columns and put them first, extra columns after."""
    if df.empty:
        return empty_result(tz, extra_columns=df.columns)

    df = df.copy()
    for name in RESULT_COLUMNS:
        if name not in df.columns:
            df[name] = np.nan if name == "value" else None
    extras = [c for c in df.columns if c not in RESULT_COLUMNS]
    return df[RESULT_COLUMNS + extras]


def concat_results(frames: List[pd.DataFrame], tz: str) -> pd.DataFrame:
    """Row-concatenate results in order, skipping empty frames."""
    non_empty = [df for df in frames if not df.empty]
    if not non_empty:
        extras: List[str] = []
        for df in frames:
            extras.extend(c for c in df.columns if c not in extras)
        return empty_result(tz, extra_columns=extras)
    return pd.concat(non_empty, ignore_index=True)
