import pytest
from pydantic import ValidationError

from themepark_booking.config import Settings, get_settings


def test_adapters_config_has_one_entry_per_adapter():
    settings = Settings(_env_file=None, redeam_api_key="key", redeam_api_secret="secret")

    config = settings.adapters_config()

    assert sorted(config) == ["redeam.disney", "redeam.united_parks", "smartorder"]
    assert config["redeam.disney"]["park_type"] == "disney"
    assert config["redeam.disney"]["supplier_id"] == "20"
    assert config["redeam.united_parks"]["supplier_id"] is None
    assert config["redeam.united_parks"]["api_key"] == "key"
    assert config["smartorder"]["approved_suffix"] == "-2KNOW"
    assert config["smartorder"]["sales_program_id"] == 4638
    assert all(entry["enabled"] for entry in config.values())


def test_values_come_from_environment(monkeypatch):
    monkeypatch.setenv("SMARTORDER_CUSTOMER_ID", "134853")
    monkeypatch.setenv("REDEAM_UNITED_PARKS_ENABLED", "false")

    settings = Settings(_env_file=None)

    assert settings.smartorder_customer_id == "134853"
    assert settings.adapters_config()["smartorder"]["customer_id"] == "134853"
    assert settings.adapters_config()["redeam.united_parks"]["enabled"] is False


def test_breaker_settings_are_validated():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, breaker_fail_max=0)


def test_get_settings_is_cached():
    get_settings.cache_clear()

    assert get_settings() is get_settings()

    get_settings.cache_clear()
