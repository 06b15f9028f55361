import logging

import pytest

from nftscout.config import DEFAULT_POLL_INTERVAL, load_config
from nftscout.errors import ConfigError

from tests.fakes import TEST_PRIVATE_KEY


def _env(**overrides):
    env = {
        "RPC_URL": "https://rpc.example",
        "PRIVATE_KEY": TEST_PRIVATE_KEY,
        "GAS_LIMIT": "300000",
    }
    env.update(overrides)
    return {k: v for k, v in env.items() if v is not None}


def test_defaults_applied():
    cfg = load_config(_env())

    assert cfg.gas_limit == 300000
    assert cfg.poll_interval == DEFAULT_POLL_INTERVAL
    assert cfg.queue_capacity == 4
    assert cfg.database_url == "sqlite:///nftscout.db"
    assert cfg.demo_collections
    assert cfg.demo_candidates


@pytest.mark.parametrize("missing", ["RPC_URL", "PRIVATE_KEY", "GAS_LIMIT"])
def test_missing_required_variable_is_fatal(missing):
    with pytest.raises(ConfigError) as excinfo:
        load_config(_env(**{missing: None}))
    assert "Invalid configuration" in str(excinfo.value)


@pytest.mark.parametrize(
    "overrides",
    [
        {"GAS_LIMIT": "0"},
        {"GAS_LIMIT": "lots"},
        {"RPC_URL": "ftp://rpc.example"},
        {"PRIVATE_KEY": "0x1234"},
        {"PRIVATE_KEY": "zz" * 32},
        {"QUEUE_CAPACITY": "0"},
        {"LOG_LEVEL": "CHATTY"},
    ],
)
def test_invalid_values_rejected(overrides):
    with pytest.raises(ConfigError):
        load_config(_env(**overrides))


def test_fetch_duration_override():
    assert load_config(_env(FETCH_DURATION="15")).poll_interval == 15.0


@pytest.mark.parametrize("raw", ["soon", "0", "-5"])
def test_bad_fetch_duration_falls_back_to_default(raw, caplog):
    with caplog.at_level(logging.WARNING, logger="nftscout.config"):
        cfg = load_config(_env(FETCH_DURATION=raw))
    assert cfg.poll_interval == DEFAULT_POLL_INTERVAL
    assert "FETCH_DURATION" in caplog.text


def test_provider_keys_disable_demo_mode():
    cfg = load_config(
        _env(OPENSEA_API_KEY="key", MINT_FEED_URL="https://feed.example/mints", LOG_LEVEL="debug")
    )
    assert not cfg.demo_collections
    assert not cfg.demo_candidates
    assert cfg.log_level == "DEBUG"


def test_blank_optional_values_count_as_unset():
    cfg = load_config(_env(ALCHEMY_API_KEY="  ", MINT_FEED_URL=""))
    assert cfg.alchemy_api_key is None
    assert cfg.mint_feed_url is None


def test_repr_hides_private_key():
    cfg = load_config(_env())
    assert TEST_PRIVATE_KEY not in repr(cfg)
    assert TEST_PRIVATE_KEY[2:] not in repr(cfg)


def test_blank_numeric_values_fall_back_to_defaults():
    cfg = load_config(_env(QUEUE_CAPACITY="", HTTP_TIMEOUT_SEC="  ", LOG_LEVEL=""))
    assert cfg.queue_capacity == 4
    assert cfg.http_timeout == 10.0
    assert cfg.log_level == "INFO"
