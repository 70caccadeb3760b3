"""Tests for ClientConfig loading."""

import pytest
from web3 import Web3

from ct_api.constants import DEFAULT_TOKEN_ADDRESS, HARDHAT_CHAIN_ID
from ct_api.evm.config import DEFAULT_POLL_LATENCY, DEFAULT_RECEIPT_TIMEOUT, ClientConfig
from ct_api.exceptions import ValidationError


def test_defaults_target_local_node() -> None:
    """Test defaults target local node."""
    config = ClientConfig.from_env({})
    assert config.token_address == DEFAULT_TOKEN_ADDRESS
    assert config.expected_chain_id == HARDHAT_CHAIN_ID
    assert config.receipt_timeout == DEFAULT_RECEIPT_TIMEOUT
    assert config.poll_latency == DEFAULT_POLL_LATENCY
    assert any(entry.get("name") == "createVesting" for entry in config.abi)


def test_reads_environment() -> None:
    """Test reads environment."""
    config = ClientConfig.from_env(
        {
            "CT_TOKEN_ADDRESS": "0x" + "ab" * 20,
            "CT_CHAIN_ID": "0xaa36a7",
            "CT_RECEIPT_TIMEOUT": "30",
            "CT_POLL_LATENCY": "0.5",
        }
    )
    assert config.token_address == Web3.to_checksum_address("0x" + "ab" * 20)
    assert config.expected_chain_id == 11155111
    assert config.receipt_timeout == 30.0
    assert config.poll_latency == 0.5


@pytest.mark.parametrize(
    "env",
    [
        {"CT_TOKEN_ADDRESS": "0x1234"},
        {"CT_CHAIN_ID": "hardhat"},
        {"CT_RECEIPT_TIMEOUT": "soon"},
    ],
)
def test_invalid_values(env: dict[str, str]) -> None:
    """Test that malformed settings raise ValidationError."""
    with pytest.raises(ValidationError):
        ClientConfig.from_env(env)


def test_config_is_frozen() -> None:
    """Test config is frozen."""
    config = ClientConfig()
    with pytest.raises(AttributeError):
        config.expected_chain_id = 1  # type: ignore[misc]
