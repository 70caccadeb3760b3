"""ControlledToken client - wallet session and transaction orchestration.

This library binds an injected wallet account to a deployed ControlledToken
contract, keeps that binding in step with the wallet, and runs transfers and
administrative transactions one at a time.
"""

from .base import WalletProvider
from .evm import (
    BusyGate,
    ClientConfig,
    JsonRpcWallet,
    ProviderBinding,
    SessionManager,
    SessionState,
    TokenClient,
    TokenContract,
    TransactionOrchestrator,
    ViewState,
    classify_error,
)
from .exceptions import (
    CTProtocolError,
    InvalidAddressError,
    InvalidAmountError,
    NetworkError,
    NetworkMismatchError,
    NotConnectedError,
    OperationInProgressError,
    ProviderUnavailableError,
    SessionResetError,
    TransactionFailedToConfirmError,
    TransactionRevertedError,
    UserRejectedError,
    ValidationError,
    WalletRequestError,
)
from .types import (
    Address,
    PendingTransaction,
    RefreshTarget,
    Response,
    SessionBinding,
    TokenMetadata,
    TokenSnapshot,
    TxKind,
    Units,
)
from .utils import (
    decode_revert_reason,
    format_amount,
    is_valid_address,
    parse_amount,
    parse_seconds,
    require_address,
    resolve_start_timestamp,
)

__version__ = "0.1.0"

__all__ = [
    # Client and components
    "TokenClient",
    "ClientConfig",
    "SessionManager",
    "SessionState",
    "ProviderBinding",
    "TokenContract",
    "TransactionOrchestrator",
    "BusyGate",
    "ViewState",
    "WalletProvider",
    "JsonRpcWallet",
    "classify_error",
    # Types and enums
    "TxKind",
    "RefreshTarget",
    "TokenMetadata",
    "TokenSnapshot",
    "SessionBinding",
    "PendingTransaction",
    "Response",
    "Address",
    "Units",
    # Exceptions
    "CTProtocolError",
    "ProviderUnavailableError",
    "UserRejectedError",
    "ValidationError",
    "InvalidAddressError",
    "InvalidAmountError",
    "NetworkMismatchError",
    "NetworkError",
    "TransactionFailedToConfirmError",
    "TransactionRevertedError",
    "NotConnectedError",
    "OperationInProgressError",
    "SessionResetError",
    "WalletRequestError",
    # Utility functions
    "is_valid_address",
    "require_address",
    "parse_amount",
    "format_amount",
    "parse_seconds",
    "resolve_start_timestamp",
    "decode_revert_reason",
]
