from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .enums.chunk_unit import ChunkUnit


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # InfluxDB Configuration
    influxdb_url: str = Field(default="", description="InfluxDB server URL, e.g. http://host:8086")
    influxdb_token: str = Field(default="", description="InfluxDB API token")
    influxdb_org: str = Field(default="", description="InfluxDB organisation")
    influxdb_bucket: str = Field(default="dp23", description="InfluxDB bucket")
    request_timeout: float = Field(default=60.0, description="HTTP timeout in seconds per chunk query")

    # Query Defaults
    timezone: str = Field(default="Australia/Sydney", description="Timezone for queries and returned data")
    default_start: str = Field(default="2023-12-01", description="Fallback start when no prior data exists")
    chunk_by: ChunkUnit = Field(default=ChunkUnit.MONTH, description="Chunking interval")
    default_fields: List[str] = Field(
        default=["value", "temperature", "humidity"],
        description="Field names kept by the field filter",
    )

    # Cache Settings
    output_dir: str = Field(default="data/raw/influx", description="Directory for cached .csv.gz chunks")

    # Scheduled Update
    update_schedule_enabled: bool = Field(default=False, description="Run a daily incremental update")
    update_measurements: List[str] = Field(default=[], description="Measurements refreshed by the scheduled update")
    update_hour: int = Field(default=3, ge=0, le=23, description="Hour of the scheduled update")
    update_minute: int = Field(default=0, ge=0, le=59, description="Minute of the scheduled update")

    # Compression Settings
    gzip_enabled: bool = True
    gzip_min_size: int = 2048      # 2 KiB
    gzip_level: int = 6

    # Application Settings
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Debug mode")

    # CORS Settings
    allowed_origins: str = Field(default="*", description="Allowed CORS origins")

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value!r}") from e
        return value

    def get_query_defaults(self) -> dict:
        """Return query defaults for clients of the API."""
        return {
            "bucket": self.influxdb_bucket,
            "timezone": self.timezone,
            "chunk_by": self.chunk_by.value,
            "default_start": self.default_start,
            "fields": list(self.default_fields),
        }

    def get_origins(self) -> List[str]:
        """Split the comma separated CORS origins."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


# Global settings instance
app_settings = AppSettings()
