"""Configuration containers for the ControlledToken client."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from web3 import Web3
from web3.types import ChecksumAddress

from ..abi import ControlledToken_abi
from ..constants import DEFAULT_TOKEN_ADDRESS, HARDHAT_CHAIN_ID
from ..exceptions import ValidationError

DEFAULT_RECEIPT_TIMEOUT = 120.0
DEFAULT_POLL_LATENCY = 1.0
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_RPC_URL = "http://127.0.0.1:8545"


@dataclass(frozen=True)
class ClientConfig:
    """Settings shared by the session manager, facade and orchestrator."""

    token_address: ChecksumAddress = Web3.to_checksum_address(DEFAULT_TOKEN_ADDRESS)
    expected_chain_id: int = HARDHAT_CHAIN_ID
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    poll_latency: float = DEFAULT_POLL_LATENCY
    abi: Sequence[Mapping[str, Any]] = field(default_factory=lambda: list(ControlledToken_abi))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClientConfig:
        """Build a config from ``CT_*`` environment variables."""

        env = os.environ if environ is None else environ

        address = env.get("CT_TOKEN_ADDRESS", DEFAULT_TOKEN_ADDRESS)
        if not Web3.is_address(address):
            raise ValidationError(
                "CT_TOKEN_ADDRESS is not a valid address", field="token_address", value=address
            )

        try:
            chain_id = int(env.get("CT_CHAIN_ID", str(HARDHAT_CHAIN_ID)), 0)
            receipt_timeout = float(env.get("CT_RECEIPT_TIMEOUT", DEFAULT_RECEIPT_TIMEOUT))
            poll_latency = float(env.get("CT_POLL_LATENCY", DEFAULT_POLL_LATENCY))
        except ValueError as exc:
            raise ValidationError(
                "Invalid numeric client setting", details={"error": str(exc)}
            ) from exc

        return cls(
            token_address=Web3.to_checksum_address(address),
            expected_chain_id=chain_id,
            receipt_timeout=receipt_timeout,
            poll_latency=poll_latency,
        )
