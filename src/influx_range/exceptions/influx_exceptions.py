"""Custom exceptions for influx_range."""


class InfluxRangeException(Exception):
    """Base exception for influx_range."""
    pass


class ParseError(InfluxRangeException, ValueError):
    """Raised when a time string matches none of the accepted formats."""
    pass


class UnsupportedInputError(InfluxRangeException, ValueError):
    """Raised when a time value is of an unrecognized type."""
    pass


class InvalidChunkUnitError(InfluxRangeException, ValueError):
    """Raised when the chunking unit is not day, week or month."""
    pass


class InvalidFilterError(InfluxRangeException, ValueError):
    """Raised when a filter specification cannot be rendered."""
    pass


class TransportError(InfluxRangeException):
    """Raised when the InfluxDB request fails or returns an error status."""
    pass


class SchemaError(InfluxRangeException):
    """Raised when a query result lacks the expected time column."""
    pass


class ConfigurationError(InfluxRangeException):
    """Raised when connection settings are missing or invalid."""
    pass


class CacheDirectoryNotFoundError(InfluxRangeException):
    """Raised when the cache directory does not exist."""
    pass
