"""
Settings Tests

Environment parsing and validation.
"""

import pytest

from core.config import TransportMode, WeightSettings, load_settings

ENV_KEYS = [
    "WEIGHT_TRANSPORT_MODE",
    "WEIGHT_DEFAULT_WAREHOUSE",
    "WEIGHT_CACHE_TTL_SECONDS",
    "WEIGHT_CONCURRENCY",
    "WEIGHT_WEIGHT_URLS",
    "WEIGHT_LOG_JSON",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestLoadSettings:

    def test_defaults(self):
        settings = load_settings()

        assert settings.transport_mode == TransportMode.DIRECT
        assert settings.default_warehouse == "IND8"
        assert settings.cache_ttl_seconds == 1800
        assert settings.ticket_ttl_seconds == 30
        assert settings.effective_concurrency == 5

    def test_navigate_mode_defaults_to_one_in_flight(self, monkeypatch):
        monkeypatch.setenv("WEIGHT_TRANSPORT_MODE", "navigate")

        assert load_settings().effective_concurrency == 1

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("WEIGHT_CONCURRENCY", "3")
        monkeypatch.setenv("WEIGHT_WEIGHT_URLS", "https://a.example/{warehouse}?s={key}, https://b.example/{warehouse}?s={key}")
        monkeypatch.setenv("WEIGHT_LOG_JSON", "true")

        settings = load_settings()

        assert settings.effective_concurrency == 3
        assert settings.weight_urls == [
            "https://a.example/{warehouse}?s={key}",
            "https://b.example/{warehouse}?s={key}",
        ]
        assert settings.log_json is True

    def test_unknown_mode(self, monkeypatch):
        monkeypatch.setenv("WEIGHT_TRANSPORT_MODE", "teleport")

        with pytest.raises(ValueError):
            load_settings()

    def test_invalid_concurrency(self, monkeypatch):
        monkeypatch.setenv("WEIGHT_CONCURRENCY", "0")

        with pytest.raises(ValueError):
            load_settings()

    def test_non_numeric_ttl(self, monkeypatch):
        monkeypatch.setenv("WEIGHT_CACHE_TTL_SECONDS", "soon")

        with pytest.raises(ValueError):
            load_settings()

    def test_validate_requires_templates(self):
        with pytest.raises(ValueError):
            WeightSettings(weight_urls=[]).validate()
