"""Type definitions and data models for the ControlledToken client."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from hexbytes import HexBytes
from web3.types import ChecksumAddress

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .evm.connections import ProviderBinding, WalletSigner


class TxKind(str, Enum):
    """State-changing operations exposed by the token contract."""

    TRANSFER = "transfer"
    SET_TRADING = "setTrading"
    SET_WHITELIST = "setWhitelist"
    FREEZE = "freeze"
    UNFREEZE = "unfreeze"
    CREATE_VESTING = "createVesting"
    CLAIM_VESTING = "claimVesting"


class RefreshTarget(str, Enum):
    """View state fields that are re-read after a confirmed transaction."""

    BALANCE = "balance"
    TRADING_ENABLED = "tradingEnabled"


@dataclass(frozen=True)
class TokenMetadata:
    symbol: str
    decimals: int


@dataclass(frozen=True)
class TokenSnapshot:
    """Values read together when a session is (re)bound."""

    metadata: TokenMetadata
    balance: int
    trading_enabled: bool


@dataclass(frozen=True)
class SessionBinding:
    """An authenticated wallet connection.

    A session either holds one complete binding or none at all.
    """

    provider: ProviderBinding
    signer: WalletSigner
    account: ChecksumAddress
    contract: Any
    chain_id: int


@dataclass(frozen=True)
class PendingTransaction:
    """A submitted call awaiting confirmation."""

    kind: TxKind
    tx_hash: HexBytes
    refresh: frozenset[RefreshTarget]
    binding: SessionBinding
    epoch: int
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def tx_hex(self) -> str:
        return self.tx_hash.to_0x_hex()


@dataclass
class Response:
    """Generic response for all client operations."""

    success: bool
    action: str | None = None
    transaction_hash: str | None = None
    error: str | None = None
    message: str | None = None
    refreshed: tuple[str, ...] = ()
    block_number: int | None = None
    raw_response: dict[str, Any] | None = None


Address = str  # EVM address, checksummed or not
Units = int  # token amount in base units
