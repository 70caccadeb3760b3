"""Validation and conversion helpers for the ControlledToken client."""

from __future__ import annotations

import logging
import math
import re
import time
from collections.abc import Mapping, Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any

from eth_abi import decode as abi_decode
from eth_typing import HexStr
from hexbytes import HexBytes
from web3 import Web3
from web3.types import ChecksumAddress

from .constants import ERROR_STRING_SELECTOR, PANIC_CODES, PANIC_SELECTOR
from .exceptions import InvalidAddressError, InvalidAmountError, ValidationError

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_AMOUNT_RE = re.compile(r"^(?P<whole>[0-9]*)(?:\.(?P<frac>[0-9]*))?$")
_INTEGER_RE = re.compile(r"^[0-9]+$")


def is_valid_address(value: Any) -> bool:
    """Return True if ``value`` is a 0x-prefixed 20 byte hex address (any case)."""
    return isinstance(value, str) and _ADDRESS_RE.match(value.strip()) is not None


def require_address(value: Any, field: str = "address") -> ChecksumAddress:
    """Return the checksum form of ``value`` or raise InvalidAddressError."""
    if not is_valid_address(value):
        raise InvalidAddressError(f"Invalid '{field}' address", field=field, value=value)
    return Web3.to_checksum_address(value.strip())


def parse_amount(amount: str | int | Decimal | None, decimals: int) -> int:
    """Convert a decimal amount string to base units.

    Blank input is zero. The conversion is exact: no more than ``decimals``
    fractional digits are accepted.
    """
    if decimals < 0:
        raise InvalidAmountError("Decimals must be non-negative", field="decimals", value=decimals)

    if amount is None:
        return 0
    if isinstance(amount, bool):
        raise InvalidAmountError("Amount must be a decimal number", field="amount", value=amount)
    if isinstance(amount, Decimal):
        text = format(amount, "f")
    else:
        text = str(amount)

    text = text.strip()
    if not text:
        return 0
    if text.startswith("-"):
        raise InvalidAmountError("Amount cannot be negative", field="amount", value=amount)

    match = _AMOUNT_RE.match(text)
    if match is None or not (match.group("whole") or match.group("frac")):
        raise InvalidAmountError("Amount must be a decimal number", field="amount", value=amount)

    whole = match.group("whole") or "0"
    frac = match.group("frac") or ""
    if len(frac) > decimals:
        raise InvalidAmountError(
            f"Amount has more than {decimals} fractional digits",
            field="amount",
            value=amount,
            details={"decimals": decimals},
        )

    return int(whole) * 10**decimals + int(frac.ljust(decimals, "0") or "0")


def format_amount(units: int, decimals: int) -> str:
    """Format base units as a decimal string by shifting the decimal point."""
    if decimals < 0:
        raise InvalidAmountError("Decimals must be non-negative", field="decimals", value=decimals)

    sign = "-" if units < 0 else ""
    units = abs(int(units))
    if decimals == 0:
        return f"{sign}{units}"

    whole, frac = divmod(units, 10**decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{frac_str}"


def parse_seconds(value: str | int | None, field: str = "seconds") -> int:
    """Parse a non-negative whole number of seconds; blank is zero."""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValidationError(f"'{field}' must be a whole number", field=field, value=value)
    if isinstance(value, int):
        seconds = value
    else:
        text = str(value).strip()
        if not text:
            return 0
        if not _INTEGER_RE.match(text):
            raise ValidationError(
                f"'{field}' must be a non-negative whole number", field=field, value=value
            )
        seconds = int(text)

    if seconds < 0:
        raise ValidationError(f"'{field}' cannot be negative", field=field, value=value)
    return seconds


def resolve_start_timestamp(
    value: str | int | datetime | None, now: float | None = None
) -> int:
    """Resolve a vesting start to unix seconds, defaulting to the current time.

    Naive datetimes and ISO strings without an offset are read as local time.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return math.floor(time.time() if now is None else now)

    if isinstance(value, datetime):
        return math.floor(value.timestamp())

    if isinstance(value, int) and not isinstance(value, bool):
        if value < 0:
            raise ValidationError("Start timestamp cannot be negative", field="start", value=value)
        return value

    text = str(value).strip()
    if _INTEGER_RE.match(text):
        return int(text)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError(
            "Start must be a unix timestamp or an ISO-8601 datetime",
            field="start",
            value=value,
        ) from exc
    return math.floor(parsed.timestamp())


def decode_revert_reason(data: bytes | str | None) -> str | None:
    """Decode an ``Error(string)`` or ``Panic(uint256)`` revert payload."""
    if not data:
        return None

    try:
        raw = HexBytes(HexStr(data)) if isinstance(data, str) else HexBytes(data)
    except (TypeError, ValueError):
        return None

    selector, payload = bytes(raw[:4]), bytes(raw[4:])
    try:
        if selector == ERROR_STRING_SELECTOR:
            (reason,) = abi_decode(["string"], payload)
            return str(reason)
        if selector == PANIC_SELECTOR:
            (code,) = abi_decode(["uint256"], payload)
            description = PANIC_CODES.get(int(code), "unknown panic")
            return f"panic: {description} (0x{int(code):02x})"
    except Exception as exc:
        logger.debug("Unable to decode revert payload %s: %s", raw.to_0x_hex(), exc)
    return None


def serialise_receipt(receipt: Any) -> Any:
    """Serialise web3 receipt objects into JSON-friendly structures."""
    if receipt is None:
        return None
    if isinstance(receipt, Mapping):
        return {key: serialise_receipt(value) for key, value in receipt.items()}
    if isinstance(receipt, Sequence) and not isinstance(
        receipt, str | bytes | bytearray | HexBytes
    ):
        return [serialise_receipt(item) for item in receipt]
    if isinstance(receipt, bytes | bytearray | HexBytes):
        return HexBytes(receipt).to_0x_hex()
    return receipt
