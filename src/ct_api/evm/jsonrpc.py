"""Wallet provider backed by a development node with unlocked accounts."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import defaultdict
from collections.abc import Sequence
from typing import Any

import requests

from ..base import EventHandler, WalletProvider
from ..constants import ACCOUNTS_CHANGED, CHAIN_CHANGED, USER_REJECTED_REQUEST
from ..exceptions import WalletRequestError
from ..utils import require_address
from .config import DEFAULT_REQUEST_TIMEOUT, DEFAULT_RPC_URL

logger = logging.getLogger(__name__)

PROVIDER_DISCONNECTED = 4900


class JsonRpcWallet(WalletProvider):
    """Forward wallet requests to a node such as ``npx hardhat node``.

    The node signs ``eth_sendTransaction`` with its unlocked accounts. Account
    and chain switches are driven by the operator and announced through the
    usual wallet events.
    """

    def __init__(
        self,
        rpc_url: str = DEFAULT_RPC_URL,
        *,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: requests.Session | None = None,
        approve_requests: bool = True,
    ) -> None:
        self._rpc_url = rpc_url
        self._timeout = request_timeout
        self._session = session or requests.Session()
        self._approve_requests = approve_requests
        self._listeners: dict[str, list[EventHandler]] = defaultdict(list)
        self._ids = itertools.count(1)
        self._authorized = False
        self._selected: str | None = None

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    # ------------------------------------------------------------------
    # WalletProvider
    # ------------------------------------------------------------------
    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        if method == "eth_requestAccounts":
            if not self._approve_requests:
                raise WalletRequestError("User rejected the request.", code=USER_REJECTED_REQUEST)
            self._authorized = True
            return await self._exposed_accounts()
        if method == "eth_accounts":
            return await self._exposed_accounts() if self._authorized else []
        return await self._rpc(method, list(params or []))

    def on(self, event: str, handler: EventHandler) -> None:
        if handler not in self._listeners[event]:
            self._listeners[event].append(handler)

    def remove_listener(self, event: str, handler: EventHandler) -> None:
        if handler in self._listeners[event]:
            self._listeners[event].remove(handler)

    # ------------------------------------------------------------------
    # Operator controls
    # ------------------------------------------------------------------
    async def switch_account(self, address: str) -> None:
        """Select ``address`` and announce the new account order."""

        self._selected = require_address(address, field="account")
        if self._authorized:
            self.emit(ACCOUNTS_CHANGED, await self._exposed_accounts())

    def revoke(self) -> None:
        """Withdraw account access, as a wallet "disconnect site" action does."""

        self._authorized = False
        self.emit(ACCOUNTS_CHANGED, [])

    async def switch_network(self, rpc_url: str) -> None:
        """Point the wallet at another node and announce its chain id."""

        self._rpc_url = rpc_url
        chain_id = await self._rpc("eth_chainId", [])
        self.emit(CHAIN_CHANGED, chain_id)

    def emit(self, event: str, payload: Any) -> None:
        for handler in list(self._listeners[event]):
            handler(payload)

    def close(self) -> None:
        self._listeners.clear()
        self._session.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _exposed_accounts(self) -> list[str]:
        accounts = list(await self._rpc("eth_accounts", []) or [])
        if self._selected is None:
            return accounts

        selected = self._selected.lower()
        ordered = [acct for acct in accounts if str(acct).lower() == selected]
        ordered += [acct for acct in accounts if str(acct).lower() != selected]
        return ordered or [self._selected]

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await asyncio.to_thread(
                self._session.post, self._rpc_url, json=payload, timeout=self._timeout
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as exc:
            logger.error("RPC request %s to %s failed: %s", method, self._rpc_url, exc)
            raise WalletRequestError(
                f"RPC request {method} failed",
                code=PROVIDER_DISCONNECTED,
                details={"error": str(exc)},
            ) from exc
        except ValueError as exc:
            raise WalletRequestError(
                f"Invalid JSON response for {method}", details={"error": str(exc)}
            ) from exc

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            raise WalletRequestError(
                str(error.get("message", "RPC error")),
                code=error.get("code"),
                data=error.get("data"),
            )
        return body.get("result") if isinstance(body, dict) else None
