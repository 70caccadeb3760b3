"""Exception hierarchy for the ControlledToken client."""

from typing import Any


class CTProtocolError(Exception):
    """Base exception for all ControlledToken client errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ProviderUnavailableError(CTProtocolError):
    """Raised when no wallet provider is injected."""

    def __init__(self, message: str = "No wallet provider available", details: dict | None = None):
        super().__init__(message, details)


class UserRejectedError(CTProtocolError):
    """Raised when the user declines an authorization or signing prompt."""

    def __init__(
        self,
        message: str = "Request rejected by user",
        method: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.method = method


class ValidationError(CTProtocolError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.field = field
        self.value = value


class InvalidAddressError(ValidationError):
    """Raised when an address string is not a valid EVM address."""

    pass


class InvalidAmountError(ValidationError):
    """Raised when a decimal amount cannot be converted to base units."""

    pass


class NetworkMismatchError(CTProtocolError):
    """Reported (not raised) when the wallet is on an unexpected chain."""

    def __init__(self, expected_chain_id: int, actual_chain_id: int):
        super().__init__(
            f"Wallet is on chain {actual_chain_id}, expected chain {expected_chain_id}",
            details={"expected": expected_chain_id, "actual": actual_chain_id},
        )
        self.expected_chain_id = expected_chain_id
        self.actual_chain_id = actual_chain_id


class NetworkError(CTProtocolError):
    """Raised when network/connection issues occur."""

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class TransactionFailedToConfirmError(NetworkError):
    """Raised when a submitted transaction never reaches a terminal state."""

    def __init__(self, message: str, tx_hash: str | None = None, details: dict | None = None):
        super().__init__(message, details=details)
        self.tx_hash = tx_hash


class TransactionRevertedError(CTProtocolError):
    """Raised when the contract rejects a call."""

    def __init__(
        self,
        message: str = "Transaction reverted",
        reason: str | None = None,
        tx_hash: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.reason = reason
        self.tx_hash = tx_hash


class NotConnectedError(CTProtocolError):
    """Raised when an operation needs a session binding and none exists."""

    def __init__(self, message: str = "Wallet is not connected"):
        super().__init__(message)


class OperationInProgressError(CTProtocolError):
    """Raised when a write is attempted while another one is in flight."""

    def __init__(self, action: str, active: str | None = None):
        super().__init__(
            f"Cannot start '{action}' while another operation is in progress",
            details={"action": action, "active": active},
        )
        self.action = action
        self.active = active


class SessionResetError(CTProtocolError):
    """Raised when the session was reset while an operation was suspended."""

    pass


class WalletRequestError(CTProtocolError):
    """Error raised by a wallet provider for a failed request (EIP-1193)."""

    def __init__(
        self,
        message: str,
        code: int | None = None,
        data: Any | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.code = code
        self.data = data
