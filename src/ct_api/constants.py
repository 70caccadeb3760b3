"""Constants for the ControlledToken client."""

from .types import RefreshTarget, TxKind

# Hardhat local network and the address of its first contract deployment
HARDHAT_CHAIN_ID = 31337
DEFAULT_TOKEN_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
DEFAULT_DECIMALS = 18

# Wallet events (EIP-1193)
ACCOUNTS_CHANGED = "accountsChanged"
CHAIN_CHANGED = "chainChanged"
WALLET_EVENTS = frozenset({ACCOUNTS_CHANGED, CHAIN_CHANGED})

# EIP-1193 provider error codes
USER_REJECTED_REQUEST = 4001
UNAUTHORIZED = 4100
USER_REJECTED_CODES = frozenset({USER_REJECTED_REQUEST, UNAUTHORIZED})

REFRESH_TARGETS: dict[TxKind, frozenset[RefreshTarget]] = {
    TxKind.TRANSFER: frozenset({RefreshTarget.BALANCE}),
    TxKind.SET_TRADING: frozenset({RefreshTarget.TRADING_ENABLED}),
    TxKind.SET_WHITELIST: frozenset(),
    TxKind.FREEZE: frozenset(),
    TxKind.UNFREEZE: frozenset(),
    TxKind.CREATE_VESTING: frozenset(),
    TxKind.CLAIM_VESTING: frozenset({RefreshTarget.BALANCE}),
}

# Solidity revert payload selectors
ERROR_STRING_SELECTOR = bytes.fromhex("08c379a0")
PANIC_SELECTOR = bytes.fromhex("4e487b71")

PANIC_CODES = {
    0x01: "assertion failed",
    0x11: "arithmetic overflow or underflow",
    0x12: "division or modulo by zero",
    0x21: "invalid enum value",
    0x31: "pop on empty array",
    0x32: "array index out of bounds",
    0x41: "out of memory",
    0x51: "call to uninitialized function",
}


def get_refresh_targets(kind: TxKind) -> frozenset[RefreshTarget]:
    """Get the view state fields refreshed after ``kind`` confirms.

    Args:
        kind: Transaction kind

    Returns:
        Set of refresh targets (possibly empty)
    """
    return REFRESH_TARGETS[kind]
