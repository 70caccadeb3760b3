"""Wallet session and transaction orchestration over web3.py."""

from .client import TokenClient
from .config import ClientConfig
from .connections import InjectedWalletProvider, ProviderBinding, WalletSigner
from .contract import TokenContract, read_token_snapshot
from .jsonrpc import JsonRpcWallet
from .session import SessionManager, SessionState
from .state import ViewState
from .transactions import BusyGate, Confirmation, TransactionOrchestrator, classify_error

__all__ = [
    "TokenClient",
    "ClientConfig",
    "InjectedWalletProvider",
    "ProviderBinding",
    "WalletSigner",
    "TokenContract",
    "read_token_snapshot",
    "JsonRpcWallet",
    "SessionManager",
    "SessionState",
    "ViewState",
    "BusyGate",
    "Confirmation",
    "TransactionOrchestrator",
    "classify_error",
]
