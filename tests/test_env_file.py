"""Tests for storing InfluxDB credentials."""

import io
import logging
import os

import pytest

from influx_range.exceptions.influx_exceptions import ConfigurationError
from influx_range.scripts import set_env
from influx_range.utils.env_file import ENV_VARS, mask_token, write_env_file


@pytest.fixture(autouse=True)
def restore_environ(monkeypatch):
    """write_env_file() updates os.environ; undo it after each test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    for name in ENV_VARS:
        os.environ.pop(name, None)


def test_mask_token_shows_last_four():
    assert mask_token("abcdefgh1234") == "********1234"
    assert mask_token("1234") == "1234"


def test_write_env_file_creates_file_and_sets_environ(tmp_path, caplog):
    path = tmp_path / ".env"

    with caplog.at_level(logging.INFO):
        values = write_env_file("http://influx:8086", "secret-token-9876", "house-lab", path=path)

    assert path.read_text(encoding="utf-8") == (
        "INFLUXDB_URL=http://influx:8086\nINFLUXDB_TOKEN=secret-token-9876\nINFLUXDB_ORG=house-lab\n"
    )
    assert values["INFLUXDB_ORG"] == "house-lab"
    assert os.environ["INFLUXDB_TOKEN"] == "secret-token-9876"
    assert mask_token("secret-token-9876") in caplog.text
    assert "secret-token-9876" not in caplog.text


def test_write_env_file_updates_existing_lines(tmp_path):
    path = tmp_path / ".env"
    path.write_text(
        "LOG_LEVEL=DEBUG\nINFLUXDB_URL=http://old:8086\nINFLUXDB_URL=http://older:8086\nTIMEZONE=UTC\n",
        encoding="utf-8",
    )

    write_env_file("http://new:8086", "tok", "org", path=path)

    assert path.read_text(encoding="utf-8").splitlines() == [
        "LOG_LEVEL=DEBUG",
        "INFLUXDB_URL=http://new:8086",
        "TIMEZONE=UTC",
        "INFLUXDB_TOKEN=tok",
        "INFLUXDB_ORG=org",
    ]


def test_prompt_or_fail_non_interactive():
    with pytest.raises(ConfigurationError, match="INFLUXDB_TOKEN must be provided in non-interactive mode."):
        set_env.prompt_or_fail("INFLUXDB_TOKEN", "InfluxDB API token", interactive=False)


def test_prompt_or_fail_rejects_empty_answer():
    with pytest.raises(ConfigurationError, match="INFLUXDB_ORG cannot be empty."):
        set_env.prompt_or_fail("INFLUXDB_ORG", "InfluxDB organisation", interactive=True, prompt=lambda _: "  ")


def test_prompt_or_fail_returns_stripped_answer():
    assert set_env.prompt_or_fail("INFLUXDB_ORG", "Org", interactive=True, prompt=lambda _: " lab \n") == "lab"


def test_set_env_main_with_arguments(tmp_path, monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO(""))
    path = tmp_path / ".env"

    code = set_env.main(["--url", "http://influx:8086", "--token", "tok-1234", "--org", "lab", "--env-file", str(path)])

    assert code == 0
    assert "INFLUXDB_TOKEN=tok-1234" in path.read_text(encoding="utf-8")


def test_set_env_main_fails_without_terminal(tmp_path, monkeypatch, caplog):
    monkeypatch.setattr("sys.stdin", io.StringIO(""))
    path = tmp_path / ".env"

    code = set_env.main(["--url", "http://influx:8086", "--env-file", str(path)])

    assert code == 1
    assert "INFLUXDB_TOKEN must be provided in non-interactive mode." in caplog.text
    assert not path.exists()
