"""
Flux query rendering.

build_query() produces one pipeline per chunk, clauses always in this order:

    from(bucket: "dp23")
      |> range(start: 2024-05-31T14:00:00Z, stop: 2024-06-30T13:59:59Z)
      |> filter(fn: (r) => r._field == "value" or r._field == "temperature")
      |> filter(fn: (r) => r._measurement == "tvoc")
      |> filter(fn: (r) => r["source"] == "house_1")
      |> filter(fn: (r) => r["room"] == "bedroom" or r["room"] == "kitchen")
      |> keep(columns: ["_time", "source", "_measurement", "_field", "entity_id", "_value", "room"])

The field clause is left out when fields is None (no restriction). Values of
one tag are OR'd inside a single filter; separate tags are separate filters,
which Flux chains as AND.
"""

from typing import List

from ..entities.chunk import ChunkSpec
from ..entities.filter_spec import FilterSpec
from ..exceptions.influx_exceptions import InvalidFilterError

# Columns every query keeps, before any tag columns
CORE_COLUMNS: List[str] = ["_time", "source", "_measurement", "_field", "entity_id", "_value"]

# Backslash must stay first
_ESCAPES = [
    ("\\", "\\\\"),
    ('"', '\\"'),
    ("\n", "\\n"),
    ("\r", "\\r"),
    ("\t", "\\t"),
]


def escape_flux_string(value: str) -> str:
    """Escape a literal for use inside a double-quoted Flux string."""
    for raw, escaped in _ESCAPES:
        value = value.replace(raw, escaped)
    return value


def _quote(value: str) -> str:
    return f'"{escape_flux_string(value)}"'


def _field_clause(fields: List[str]) -> str:
    if not fields:
        raise InvalidFilterError("fields must contain at least one name, or be None for no field filter")
    terms = " or ".join(f"r._field == {_quote(field)}" for field in fields)
    return f"filter(fn: (r) => {terms})"


def _tag_clause(key: str, values: List[str]) -> str:
    if not values:
        raise InvalidFilterError(f'Tag "{key}" has no values to match')
    column = f"r[{_quote(key)}]"
    terms = " or ".join(f"{column} == {_quote(value)}" for value in values)
    return f"filter(fn: (r) => {terms})"


def keep_columns(tag_keys: List[str]) -> List[str]:
    """Core columns followed by tag keys, each name listed once."""
    columns = list(CORE_COLUMNS)
    for key in tag_keys:
        if key not in columns:
            columns.append(key)
    return columns


def build_query(filter_spec: FilterSpec, chunk: ChunkSpec, bucket: str) -> str:
    """
    Render a Flux query for one measurement over one chunk.

    Args:
        filter_spec: Measurement, optional fields and tag predicates
        chunk: Chunk whose UTC bounds form the range clause
        bucket: InfluxDB bucket name

    Returns:
        Single-line Flux query string

    Raises:
        InvalidFilterError: If fields is an empty list or a tag has no values
    """
    clauses = [
        f"from(bucket: {_quote(bucket)})",
        f"range(start: {chunk.utc_start}, stop: {chunk.utc_end})",
    ]

    if filter_spec.fields is not None:
        clauses.append(_field_clause(filter_spec.fields))

    clauses.append(f"filter(fn: (r) => r._measurement == {_quote(filter_spec.measurement)})")

    for key, values in filter_spec.tags.items():
        clauses.append(_tag_clause(key, values))

    columns = ", ".join(_quote(column) for column in keep_columns(list(filter_spec.tags)))
    clauses.append(f"keep(columns: [{columns}])")

    return " |> ".join(clauses)
