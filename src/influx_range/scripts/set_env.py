"""
Store InfluxDB credentials in a .env file.

    python -m influx_range.scripts.set_env --url http://host:8086 --token ... --org ...

Values not given on the command line are prompted for when attached to a
terminal; otherwise they must be passed explicitly.
"""

import argparse
import logging
import sys
from getpass import getpass
from typing import Callable, Optional

from influx_range.exceptions.influx_exceptions import ConfigurationError
from influx_range.utils.env_file import write_env_file

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def prompt_or_fail(
    var: str,
    label: str,
    interactive: bool,
    prompt: Callable[[str], str] = input,
) -> str:
    """Ask for a value on the terminal, or fail in non-interactive mode."""
    if not interactive:
        raise ConfigurationError(f"{var} must be provided in non-interactive mode.")
    value = prompt(f"{label}: ").strip()
    if not value:
        raise ConfigurationError(f"{var} cannot be empty.")
    return value


def main(argv: Optional[list] = None) -> int:
    """Collect credentials and write them to the env file."""
    parser = argparse.ArgumentParser(description="Store InfluxDB credentials in a .env file")
    parser.add_argument("--url", help="InfluxDB URL (e.g. http://host:8086)")
    parser.add_argument("--token", help="InfluxDB API token")
    parser.add_argument("--org", help="InfluxDB organisation")
    parser.add_argument("--env-file", default=".env", help="Env file to update")
    args = parser.parse_args(argv)

    interactive = sys.stdin.isatty()

    try:
        url = args.url or prompt_or_fail("INFLUXDB_URL", "InfluxDB URL (e.g. http://host:443)", interactive)
        token = args.token or prompt_or_fail("INFLUXDB_TOKEN", "InfluxDB API token", interactive, prompt=getpass)
        org = args.org or prompt_or_fail("INFLUXDB_ORG", "InfluxDB organisation", interactive)

        write_env_file(url=url, token=token, org=org, path=args.env_file)
        return 0

    except ConfigurationError as e:
        logger.error(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
