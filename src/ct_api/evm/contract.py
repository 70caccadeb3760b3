"""Typed read and write access to the ControlledToken contract."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from hexbytes import HexBytes

from ..constants import get_refresh_targets
from ..exceptions import CTProtocolError, InvalidAmountError, NetworkError, ValidationError
from ..types import PendingTransaction, SessionBinding, TokenMetadata, TokenSnapshot, TxKind
from ..utils import parse_amount, parse_seconds, require_address, resolve_start_timestamp

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .session import SessionManager

logger = logging.getLogger(__name__)

AmountInput = str | int | Decimal | None


async def read_token_snapshot(binding: SessionBinding) -> TokenSnapshot:
    """Read metadata, the bound account's balance and the trading flag together."""

    functions = binding.contract.functions
    try:
        symbol, decimals, balance, trading = await asyncio.gather(
            functions.symbol().call(),
            functions.decimals().call(),
            functions.balanceOf(binding.account).call(),
            functions.tradingEnabled().call(),
        )
    except CTProtocolError:
        raise
    except Exception as exc:
        raise NetworkError(
            "Failed to read token state",
            endpoint="eth_call",
            details={"account": binding.account, "error": str(exc)},
        ) from exc

    return TokenSnapshot(
        metadata=TokenMetadata(symbol=str(symbol), decimals=int(decimals)),
        balance=int(balance),
        trading_enabled=bool(trading),
    )


class TokenContract:
    """Facade over the bound contract handle.

    The binding is looked up from the session on every call and never kept.
    Writes validate their arguments before anything is sent and return as soon
    as the wallet hands back a transaction hash.
    """

    def __init__(self, session: SessionManager) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def symbol(self, binding: SessionBinding | None = None) -> str:
        return str(await self._read(binding, "symbol"))

    async def decimals(self, binding: SessionBinding | None = None) -> int:
        return int(await self._read(binding, "decimals"))

    async def balance_of(
        self, address: str | None = None, binding: SessionBinding | None = None
    ) -> int:
        binding = binding or self._session.require_binding()
        owner = binding.account if address is None else require_address(address, field="owner")
        return int(await self._read(binding, "balanceOf", owner))

    async def trading_enabled(self, binding: SessionBinding | None = None) -> bool:
        return bool(await self._read(binding, "tradingEnabled"))

    async def snapshot(self, binding: SessionBinding | None = None) -> TokenSnapshot:
        return await read_token_snapshot(binding or self._session.require_binding())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def transfer(self, to: str, amount: AmountInput) -> PendingTransaction:
        binding = self._session.require_binding()
        recipient = require_address(to, field="to")
        metadata = self._session.require_metadata()
        units = parse_amount(amount, metadata.decimals)
        if units <= 0:
            raise InvalidAmountError(
                "Transfer amount must be positive", field="amount", value=amount
            )

        return await self._submit(
            binding,
            TxKind.TRANSFER,
            "transfer",
            [recipient, units],
            context={"to": recipient, "amount": units, "decimals": metadata.decimals},
        )

    async def set_trading_enabled(self, enabled: bool) -> PendingTransaction:
        binding = self._session.require_binding()
        if not isinstance(enabled, bool):
            raise ValidationError("Trading flag must be a boolean", field="enabled", value=enabled)

        return await self._submit(
            binding,
            TxKind.SET_TRADING,
            "setTradingEnabled",
            [enabled],
            context={"enabled": enabled},
        )

    async def set_whitelist(self, address: str, allowed: bool = True) -> PendingTransaction:
        binding = self._session.require_binding()
        account = require_address(address, field="whitelist")
        if not isinstance(allowed, bool):
            raise ValidationError(
                "Whitelist flag must be a boolean", field="allowed", value=allowed
            )

        return await self._submit(
            binding,
            TxKind.SET_WHITELIST,
            "setWhitelist",
            [account, allowed],
            context={"account": account, "allowed": allowed},
        )

    async def freeze(self, address: str, seconds: str | int | None = "0") -> PendingTransaction:
        """Freeze ``address`` for ``seconds``; zero freezes it permanently."""

        binding = self._session.require_binding()
        account = require_address(address, field="freeze")
        duration = parse_seconds(seconds, field="seconds")

        return await self._submit(
            binding,
            TxKind.FREEZE,
            "freeze",
            [account, duration],
            context={"account": account, "seconds": duration, "permanent": duration == 0},
        )

    async def unfreeze(self, address: str) -> PendingTransaction:
        binding = self._session.require_binding()
        account = require_address(address, field="freeze")

        return await self._submit(
            binding,
            TxKind.UNFREEZE,
            "unfreeze",
            [account],
            context={"account": account},
        )

    async def create_vesting(
        self,
        beneficiary: str,
        amount: AmountInput,
        start: str | int | datetime | None = None,
        cliff: str | int | None = "0",
        duration: str | int | None = "0",
    ) -> PendingTransaction:
        # Resolve before anything can suspend so a blank start means "now".
        start_ts = resolve_start_timestamp(start)

        binding = self._session.require_binding()
        account = require_address(beneficiary, field="beneficiary")
        metadata = self._session.require_metadata()
        units = parse_amount(amount, metadata.decimals)
        cliff_secs = parse_seconds(cliff, field="cliff")
        duration_secs = parse_seconds(duration, field="duration")

        return await self._submit(
            binding,
            TxKind.CREATE_VESTING,
            "createVesting",
            [account, units, start_ts, cliff_secs, duration_secs],
            context={
                "beneficiary": account,
                "amount": units,
                "start": start_ts,
                "cliff": cliff_secs,
                "duration": duration_secs,
            },
        )

    async def claim_vested(self) -> PendingTransaction:
        binding = self._session.require_binding()
        return await self._submit(binding, TxKind.CLAIM_VESTING, "claimVested", [], context={})

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _read(self, binding: SessionBinding | None, function_name: str, *args: Any) -> Any:
        binding = binding or self._session.require_binding()
        try:
            return await getattr(binding.contract.functions, function_name)(*args).call()
        except CTProtocolError:
            raise
        except Exception as exc:
            raise NetworkError(
                f"Failed to read {function_name}",
                endpoint="eth_call",
                details={"args": list(args), "error": str(exc)},
            ) from exc

    async def _submit(
        self,
        binding: SessionBinding,
        kind: TxKind,
        function_name: str,
        args: Sequence[Any],
        *,
        context: Mapping[str, Any],
    ) -> PendingTransaction:
        epoch = self._session.epoch
        contract_function = getattr(binding.contract.functions, function_name)(*args)
        logger.info("Dispatching %s via %s", kind.value, function_name)

        tx_hash = await contract_function.transact({"from": binding.account})

        pending = PendingTransaction(
            kind=kind,
            tx_hash=HexBytes(tx_hash),
            refresh=get_refresh_targets(kind),
            binding=binding,
            epoch=epoch,
            context=dict(context),
        )
        logger.info("Transaction sent for action=%s hash=%s", kind.value, pending.tx_hex)
        return pending
