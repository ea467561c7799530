from datetime import date, datetime
from pathlib import Path

import pytest

from backoffice.config import DEFAULT_API_BASE, ConsoleConfig
from backoffice.formatting import format_currency, format_date, format_datetime


def test_defaults_without_environment():
    config = ConsoleConfig.from_env({})
    assert config.api_base == DEFAULT_API_BASE
    assert config.page_size == 10
    assert config.timeout == 30.0


def test_environment_overrides(tmp_path):
    config = ConsoleConfig.from_env(
        {
            "BACKOFFICE_API_URL": "https://coop.example/api/",
            "BACKOFFICE_TIMEOUT": "5",
            "BACKOFFICE_PAGE_SIZE": "20",
            "BACKOFFICE_SESSION_FILE": str(tmp_path / "s.json"),
        }
    )
    assert config.api_base == "https://coop.example/api"
    assert config.timeout == 5.0
    assert config.page_size == 20
    assert config.session_file == Path(tmp_path / "s.json")


@pytest.mark.parametrize(
    "env",
    [
        {"BACKOFFICE_TIMEOUT": "0"},
        {"BACKOFFICE_PAGE_SIZE": "-1"},
        {"BACKOFFICE_PAGE_SIZE": "ten"},
        {"BACKOFFICE_API_URL": "ftp://coop.example"},
    ],
)
def test_bad_values_fail_fast(env):
    with pytest.raises(ValueError):
        ConsoleConfig.from_env(env)


def test_currency():
    assert format_currency(1234.5) == "ETB 1,234.50"
    assert format_currency(0) == "ETB 0.00"
    assert format_currency(None) == "ETB 0.00"


def test_dates():
    assert format_date("2024-03-05T10:00:00Z") == "Mar 05, 2024"
    assert format_date(date(2024, 1, 2)) == "Jan 02, 2024"
    assert format_date(None) == "N/A"
    assert format_datetime(datetime(2024, 3, 5, 14, 30)) == "Mar 05, 2024 02:30 PM"
