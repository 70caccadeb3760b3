"""Wallet provider binding and web3 wiring for the ControlledToken client."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping, Sequence
from typing import Any, cast

from hexbytes import HexBytes
from web3 import AsyncWeb3
from web3.contract import AsyncContract
from web3.providers import AsyncBaseProvider
from web3.types import ChecksumAddress, RPCEndpoint, RPCResponse, TxReceipt

from ..base import EventHandler, WalletProvider
from ..constants import USER_REJECTED_CODES, WALLET_EVENTS
from ..exceptions import (
    NetworkError,
    ProviderUnavailableError,
    UserRejectedError,
    ValidationError,
    WalletRequestError,
)
from ..utils import require_address

logger = logging.getLogger(__name__)


class InjectedWalletProvider(AsyncBaseProvider):
    """Expose a wallet's ``request`` channel as an async web3.py provider."""

    def __init__(self, wallet: WalletProvider) -> None:
        super().__init__()
        self._wallet = wallet
        self._ids = itertools.count(1)

    async def make_request(self, method: RPCEndpoint, params: Any) -> RPCResponse:
        request_id = next(self._ids)
        try:
            result = await self._wallet.request(str(method), list(params or []))
        except WalletRequestError as exc:
            if exc.code in USER_REJECTED_CODES:
                raise UserRejectedError(exc.message, method=str(method)) from exc
            error: dict[str, Any] = {"code": exc.code if exc.code is not None else -32603}
            error["message"] = exc.message
            if exc.data is not None:
                error["data"] = exc.data
            return cast(RPCResponse, {"jsonrpc": "2.0", "id": request_id, "error": error})

        return cast(RPCResponse, {"jsonrpc": "2.0", "id": request_id, "result": result})

    async def is_connected(self, show_traceback: bool = False) -> bool:
        try:
            await self._wallet.request("eth_chainId", [])
        except Exception:
            if show_traceback:
                logger.exception("Wallet provider is not reachable")
            return False
        return True


class WalletSigner:
    """Account selected in the wallet; the wallet signs on its behalf."""

    def __init__(self, web3: AsyncWeb3, address: ChecksumAddress) -> None:
        self._web3 = web3
        self.address = address

    async def wait_for_receipt(
        self, tx_hash: HexBytes, *, timeout: float, poll_latency: float
    ) -> TxReceipt:
        return await self._web3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=timeout, poll_latency=poll_latency
        )

    def __repr__(self) -> str:
        return f"WalletSigner({self.address})"


class ProviderBinding:
    """Request/response and event access to the injected wallet."""

    def __init__(self, wallet: WalletProvider | None) -> None:
        self._wallet = wallet
        self._web3: AsyncWeb3 | None = None
        self._handlers: dict[str, list[EventHandler]] = {event: [] for event in WALLET_EVENTS}

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def available(self) -> bool:
        return self._wallet is not None

    @property
    def wallet(self) -> WalletProvider:
        if self._wallet is None:
            raise ProviderUnavailableError("No wallet provider injected; install a wallet first")
        return self._wallet

    @property
    def web3(self) -> AsyncWeb3:
        if self._web3 is None:
            self._web3 = AsyncWeb3(InjectedWalletProvider(self.wallet))
        return self._web3

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        wallet = self.wallet
        try:
            return await wallet.request(method, list(params or []))
        except WalletRequestError as exc:
            if exc.code in USER_REJECTED_CODES:
                raise UserRejectedError(
                    exc.message or "Request rejected by user",
                    method=method,
                    details={"code": exc.code},
                ) from exc
            raise NetworkError(
                f"Wallet request {method} failed: {exc.message}",
                endpoint=method,
                details={"code": exc.code, "data": exc.data},
            ) from exc

    async def request_accounts(self) -> list[ChecksumAddress]:
        """Ask the wallet to authorize account access."""

        accounts = self._normalise_accounts(await self.request("eth_requestAccounts"))
        if not accounts:
            raise UserRejectedError(
                "Wallet did not authorize any account", method="eth_requestAccounts"
            )
        return accounts

    async def get_accounts(self) -> list[ChecksumAddress]:
        return self._normalise_accounts(await self.request("eth_accounts"))

    async def get_network(self) -> int:
        raw = await self.request("eth_chainId")
        try:
            return int(raw, 16) if isinstance(raw, str) else int(raw)
        except (TypeError, ValueError) as exc:
            raise NetworkError(
                "Wallet returned an invalid chain id",
                endpoint="eth_chainId",
                details={"value": raw},
            ) from exc

    async def get_signer(self, address: str | None = None) -> WalletSigner:
        """Return a signer for ``address`` or the wallet's first account."""

        if address is None:
            accounts = await self.get_accounts()
            if not accounts:
                raise UserRejectedError("Wallet has no authorized account", method="eth_accounts")
            selected = accounts[0]
        else:
            selected = self._checksum(address)
        return WalletSigner(self.web3, selected)

    def contract_for(
        self,
        signer: WalletSigner,
        address: ChecksumAddress,
        abi: Sequence[Mapping[str, Any]],
    ) -> AsyncContract:
        web3 = self.web3
        web3.eth.default_account = signer.address
        return web3.eth.contract(address=address, abi=list(abi))

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def subscribe(self, event: str, handler: EventHandler) -> None:
        handlers = self._handlers_for(event)
        if handler in handlers:
            return
        self.wallet.on(event, handler)
        handlers.append(handler)
        logger.debug("Subscribed to wallet event %s", event)

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        handlers = self._handlers_for(event)
        if handler not in handlers:
            return
        handlers.remove(handler)
        if self._wallet is not None:
            self._wallet.remove_listener(event, handler)
        logger.debug("Unsubscribed from wallet event %s", event)

    def teardown(self) -> None:
        """Drop every subscription and forget the wallet."""

        for event, handlers in self._handlers.items():
            for handler in list(handlers):
                self.unsubscribe(event, handler)
        self._wallet = None
        self._web3 = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _handlers_for(self, event: str) -> list[EventHandler]:
        if event not in self._handlers:
            raise ValidationError(f"Unsupported wallet event '{event}'", field="event", value=event)
        return self._handlers[event]

    def _normalise_accounts(self, raw: Any) -> list[ChecksumAddress]:
        if not isinstance(raw, Sequence) or isinstance(raw, str):
            raise NetworkError("Wallet returned an invalid account list", details={"value": raw})
        return [self._checksum(item) for item in raw]

    @staticmethod
    def _checksum(address: Any) -> ChecksumAddress:
        return require_address(address, field="account")
