import json

import pytest
from eth_account import Account

from conftest import TEST_PRIVATE_KEY
from x402_negotiator.core.config import (
    ConfigError,
    NegotiatorConfig,
    load_negotiator_config,
    load_private_key_file,
)
from x402_negotiator.core.environment import build_environment

PAYER = Account.from_key(TEST_PRIVATE_KEY).address


def test_defaults_allow_probe_only_configuration():
    config = NegotiatorConfig.from_mapping({})

    assert not config.can_pay
    assert config.payer_address is None
    assert config.network is None
    assert config.request_timeout_seconds == 30
    assert config.backdate_seconds == 600


def test_private_key_derives_payer_address():
    config = NegotiatorConfig.from_mapping({"X402_PAYER_PRIVATE_KEY": "11" * 32})

    assert config.payer_private_key == TEST_PRIVATE_KEY
    assert config.payer_address == PAYER
    assert config.can_pay


def test_declared_address_must_match_key():
    with pytest.raises(ConfigError):
        NegotiatorConfig.from_mapping(
            {
                "X402_PAYER_PRIVATE_KEY": TEST_PRIVATE_KEY,
                "X402_PAYER_ADDRESS": "0x" + "33" * 20,
            }
        )


@pytest.mark.parametrize(
    "values",
    [
        {"X402_PAYER_PRIVATE_KEY": "0x1234"},
        {"X402_PAYER_PRIVATE_KEY": "zz" * 32},
        {"X402_PAYER_ADDRESS": "0x1234"},
        {"X402_REQUEST_TIMEOUT_SECONDS": "soon"},
        {"X402_PAYMENT_BACKDATE_SECONDS": "-5"},
    ],
)
def test_invalid_settings_raise_config_error(values):
    with pytest.raises(ConfigError):
        NegotiatorConfig.from_mapping(values)


def test_layering_env_file_overrides_and_keywords(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# payer settings\n"
        "X402_NETWORK=base\n"
        "export X402_REQUEST_TIMEOUT_SECONDS=\"10\"\n"
        "X402_PAYMENT_BACKDATE_SECONDS=60\n"
    )

    config = load_negotiator_config(
        env_file=str(env_file),
        base={"X402_PAYMENT_BACKDATE_SECONDS": "120"},
        overrides={"X402_NETWORK": "bsc"},
        network="base-sepolia",
    )

    assert config.network == "base-sepolia"
    assert config.request_timeout_seconds == 10
    assert config.backdate_seconds == 120


def test_build_environment_without_file():
    environment = build_environment(
        env_file=None, base={"A": "1"}, overrides={"B": "2"}
    )
    assert dict(environment.variables) == {"A": "1", "B": "2"}


def test_env_file_does_not_replace_base_keys(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("A=from-file\nB=from-file\n")

    environment = build_environment(env_file=str(env_file), base={"A": "existing"})

    assert dict(environment.variables) == {"A": "existing", "B": "from-file"}


def test_load_private_key_file_accepts_hex_and_json(tmp_path):
    hex_file = tmp_path / "key.txt"
    hex_file.write_text("11" * 32 + "\n")
    json_file = tmp_path / "key.json"
    json_file.write_text(json.dumps({"privateKey": TEST_PRIVATE_KEY}))

    assert load_private_key_file(str(hex_file)) == TEST_PRIVATE_KEY
    assert load_private_key_file(str(json_file)) == TEST_PRIVATE_KEY


def test_load_private_key_file_errors(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_private_key_file(str(tmp_path / "missing.json"))

    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    with pytest.raises(ConfigError):
        load_private_key_file(str(broken))

    solana_style = tmp_path / "id.json"
    solana_style.write_text(json.dumps([1, 2, 3]))
    with pytest.raises(ConfigError):
        load_private_key_file(str(solana_style))
