import pytest

from airdrop_lens.config import DEFAULT_CHAIN_ID, load_config


def test_load_config_defaults(monkeypatch):
    for name in ("ETHERSCAN_API_KEY", "DEFAULT_CHAIN_ID", "REQUEST_TIMEOUT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    config = load_config()

    assert config.etherscan_api_key is None
    assert config.has_etherscan_key is False
    assert config.default_chain_id == DEFAULT_CHAIN_ID
    assert config.log_page_size == 1000
    assert config.log_max_pages == 500
    assert config.log_page_delay == 0.35
    assert config.rate_limit_backoff == 1.5
    assert config.rate_limit_retries == 3


def test_load_config_reads_environment(monkeypatch):
    monkeypatch.setenv("ETHERSCAN_API_KEY", "  abc  ")
    monkeypatch.setenv("DEFAULT_CHAIN_ID", "8453")
    monkeypatch.setenv("ETHERSCAN_BASE_URL", "https://example.test/v2/api/")
    monkeypatch.setenv("RPC_URL_1", "https://eth.example/rpc")
    monkeypatch.setenv("RPC_URL_not_a_chain", "https://ignored")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = load_config()

    assert config.etherscan_api_key == "abc"
    assert config.default_chain_id == 8453
    assert config.etherscan_base_url == "https://example.test/v2/api"
    assert config.rpc_overrides == {1: "https://eth.example/rpc"}
    assert config.log_level == "DEBUG"


def test_blank_api_key_counts_as_missing(monkeypatch):
    monkeypatch.setenv("ETHERSCAN_API_KEY", "   ")
    assert load_config().has_etherscan_key is False


def test_malformed_number_raises(monkeypatch):
    monkeypatch.setenv("REQUEST_TIMEOUT", "ten")
    with pytest.raises(ValueError):
        load_config()
