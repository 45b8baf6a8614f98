import logging
import os
from pathlib import Path
from typing import Dict, Union

logger = logging.getLogger(__name__)

ENV_VARS = ("INFLUXDB_URL", "INFLUXDB_TOKEN", "INFLUXDB_ORG")


def mask_token(token: str) -> str:
    """Mask an API token, showing only the last 4 characters."""
    if len(token) <= 4:
        return token
    return "*" * (len(token) - 4) + token[-4:]


def _merge_lines(lines: list, values: Dict[str, str]) -> list:
    """Replace the first NAME= line of each variable, drop later duplicates, append missing ones."""
    for name, value in values.items():
        new_line = f"{name}={value}"
        indexes = [i for i, line in enumerate(lines) if line.startswith(f"{name}=")]
        if indexes:
            lines[indexes[0]] = new_line
            for i in reversed(indexes[1:]):
                del lines[i]
        else:
            lines.append(new_line)
    return lines


def write_env_file(url: str, token: str, org: str, path: Union[str, Path] = ".env") -> Dict[str, str]:
    """
    Persist InfluxDB credentials to an env file and the current process.

    Existing INFLUXDB_* lines are updated in place, other lines are kept.

    Args:
        url: InfluxDB server URL
        token: InfluxDB API token
        org: InfluxDB organisation
        path: Env file to update, created if missing

    Returns:
        Mapping of the written variables
    """
    values = {
        "INFLUXDB_URL": url,
        "INFLUXDB_TOKEN": token,
        "INFLUXDB_ORG": org,
    }

    env_path = Path(path)
    lines = env_path.read_text(encoding="utf-8").splitlines() if env_path.exists() else []
    lines = _merge_lines(lines, values)
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    os.environ.update(values)

    logger.info("Set InfluxDB environment variables:")
    logger.info(f"  INFLUXDB_URL   = {url}")
    logger.info(f"  INFLUXDB_TOKEN = {mask_token(token)}")
    logger.info(f"  INFLUXDB_ORG   = {org}")
    logger.info(f"Written to {env_path} and loaded in current process.")

    return values
