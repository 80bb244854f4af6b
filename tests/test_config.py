"""Tests for environment configuration."""

import pytest

from procurement_agent.agent.quote_engine import PricingConfig
from procurement_agent.config import MAX_PRIMARY_KEYS, Config, get_config, reset_config


@pytest.fixture
def clean_env(monkeypatch):
    for index in range(1, MAX_PRIMARY_KEYS + 1):
        monkeypatch.delenv(f"PRIMARY_API_KEY_{index}", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    reset_config()
    yield monkeypatch
    reset_config()


def test_numbered_keys_build_the_pool(clean_env):
    clean_env.setenv("PRIMARY_API_KEY_1", "sk-first-key-0001")
    clean_env.setenv("PRIMARY_API_KEY_3", "sk-third-key-0003")
    clean_env.setenv("OPENAI_API_KEY", "sk-ignored-key-9999")

    assert Config.from_env().primary_api_keys == ["sk-first-key-0001", "sk-third-key-0003"]


def test_single_key_fallback(clean_env):
    clean_env.setenv("OPENAI_API_KEY", "sk-single-key-0001")

    assert Config.from_env().primary_api_keys == ["sk-single-key-0001"]


def test_global_config_is_cached_until_reset(clean_env):
    clean_env.setenv("SESSION_TTL_HOURS", "2")
    config = get_config()

    clean_env.setenv("SESSION_TTL_HOURS", "6")
    assert get_config() is config
    assert config.session_ttl_hours == 2.0

    reset_config()
    assert get_config().session_ttl_hours == 6.0


def test_validate_lists_missing_settings():
    assert Config().validate() == [
        "PRIMARY_API_KEY_1 (or OPENAI_API_KEY)",
        "SUPABASE_URL",
        "SUPABASE_KEY",
    ]
    assert Config(
        primary_api_keys=["sk-test-key-0001"],
        supabase_url="https://example.supabase.co",
        supabase_key="service-key",
    ).validate() == []


def test_pricing_overrides_from_env(clean_env):
    clean_env.setenv("TAX_RATE", "0.2")
    clean_env.setenv("PRICE_VARIANCE", "0.05")
    clean_env.setenv("SHIPPING_BASE", "55")

    pricing = PricingConfig.from_config(Config.from_env())

    assert pricing.tax_rate == 0.2
    assert pricing.variance == 0.05
    assert pricing.shipping_base == 55.0
