"""Session state machine binding a wallet account to the token contract."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine, Sequence
from enum import Enum
from typing import Any

from ..constants import ACCOUNTS_CHANGED, CHAIN_CHANGED
from ..exceptions import (
    NetworkMismatchError,
    NotConnectedError,
    ProviderUnavailableError,
    SessionResetError,
)
from ..types import SessionBinding, TokenMetadata, TokenSnapshot
from ..utils import require_address
from .config import ClientConfig
from .connections import ProviderBinding, WalletSigner
from .contract import read_token_snapshot
from .state import ViewState

logger = logging.getLogger(__name__)

ContractFactory = Callable[[ProviderBinding, WalletSigner, ClientConfig], Any]
WarningHook = Callable[[NetworkMismatchError], None]


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


def default_contract_factory(
    provider: ProviderBinding, signer: WalletSigner, config: ClientConfig
) -> Any:
    return provider.contract_for(signer, config.token_address, config.abi)


class SessionManager:
    """Own the current session binding and every transition of it.

    Transitions that suspend (connect, account re-bind) are serialized. Resets
    (empty account list, chain change, teardown) apply immediately and bump
    the session epoch, which makes any suspended transition or pending
    transaction discard its result.
    """

    def __init__(
        self,
        provider: ProviderBinding,
        config: ClientConfig | None = None,
        *,
        view: ViewState | None = None,
        contract_factory: ContractFactory | None = None,
        on_warning: WarningHook | None = None,
    ) -> None:
        self._provider = provider
        self._config = config or ClientConfig()
        self._view = view if view is not None else ViewState()
        self._contract_factory = contract_factory or default_contract_factory
        self._on_warning = on_warning
        self._binding: SessionBinding | None = None
        self._metadata: TokenMetadata | None = None
        self._network_warning: NetworkMismatchError | None = None
        self._epoch = 0
        self._transition_lock = asyncio.Lock()
        self._reset_signal = asyncio.Event()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._attached = False

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return SessionState.CONNECTED if self._binding is not None else SessionState.DISCONNECTED

    @property
    def binding(self) -> SessionBinding | None:
        return self._binding

    @property
    def metadata(self) -> TokenMetadata | None:
        return self._metadata

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def view(self) -> ViewState:
        return self._view

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def provider(self) -> ProviderBinding:
        return self._provider

    @property
    def network_warning(self) -> NetworkMismatchError | None:
        return self._network_warning

    @property
    def reset_signal(self) -> asyncio.Event:
        """Event set by the next reset; a fresh one is issued after each reset."""
        return self._reset_signal

    def is_connected(self) -> bool:
        return self._binding is not None

    def require_binding(self) -> SessionBinding:
        if self._binding is None:
            raise NotConnectedError()
        return self._binding

    def require_metadata(self) -> TokenMetadata:
        if self._metadata is None:
            raise NotConnectedError("Token metadata not loaded; connect first")
        return self._metadata

    def is_current(self, binding: SessionBinding, epoch: int) -> bool:
        return self._binding is binding and self._epoch == epoch

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def attach(self) -> None:
        """Subscribe to wallet events if a wallet is present."""

        if self._attached or not self._provider.available:
            return
        self._provider.subscribe(ACCOUNTS_CHANGED, self._on_accounts_changed)
        self._provider.subscribe(CHAIN_CHANGED, self._on_chain_changed)
        self._attached = True

    def detach(self) -> None:
        if not self._attached:
            return
        self._provider.unsubscribe(ACCOUNTS_CHANGED, self._on_accounts_changed)
        self._provider.unsubscribe(CHAIN_CHANGED, self._on_chain_changed)
        self._attached = False

    def close(self) -> None:
        """Tear the provider down and drop the session."""

        self.detach()
        self._provider.teardown()
        self._reset("provider teardown")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    async def connect(self) -> SessionBinding:
        """Authorize an account and bind it to the token contract.

        Nothing is committed until every step succeeded.
        """

        provider = self._provider
        if not provider.available:
            raise ProviderUnavailableError()
        self.attach()

        async with self._transition_lock:
            epoch = self._epoch
            await provider.request_accounts()
            chain_id = await provider.get_network()
            warning = self._check_network(chain_id)

            signer = await provider.get_signer()
            contract = self._contract_factory(provider, signer, self._config)
            binding = SessionBinding(
                provider=provider,
                signer=signer,
                account=signer.address,
                contract=contract,
                chain_id=chain_id,
            )
            snapshot = await read_token_snapshot(binding)

            self._ensure_epoch(epoch, "connect")
            self._commit(binding, snapshot, warning)

        logger.info("Connected account %s on chain %s", binding.account, chain_id)
        return binding

    async def handle_accounts_changed(self, accounts: Sequence[str]) -> SessionBinding | None:
        """Follow the wallet's selected account.

        A change reported while a connect is in flight waits for it and then
        applies to whatever that connect committed.
        """

        if not accounts:
            self.disconnect("wallet reported no accounts")
            return None
        if self._binding is None and not self._transition_lock.locked():
            logger.debug("Ignoring account change while disconnected")
            return None

        async with self._transition_lock:
            current = self._binding
            if current is None:
                return None
            epoch = self._epoch
            account = require_address(accounts[0], field="account")

            if account == current.account:
                snapshot = await read_token_snapshot(current)
                if self.is_current(current, epoch):
                    self._commit(current, snapshot, self._network_warning)
                return current

            try:
                signer = await current.provider.get_signer(account)
                contract = self._contract_factory(current.provider, signer, self._config)
                binding = SessionBinding(
                    provider=current.provider,
                    signer=signer,
                    account=signer.address,
                    contract=contract,
                    chain_id=current.chain_id,
                )
                snapshot = await read_token_snapshot(binding)
            except Exception:
                if self._epoch == epoch:
                    self._reset("account re-bind failed")
                raise

            self._ensure_epoch(epoch, "account re-bind")
            self._commit(binding, snapshot, self._network_warning)

        logger.info("Re-bound session to account %s", binding.account)
        return binding

    def handle_chain_changed(self, chain_id: Any = None) -> None:
        """Reset everything; balances and addresses are chain specific."""

        logger.info("Wallet switched to chain %s; resetting session", chain_id)
        self._reset("chain changed")

    def disconnect(self, reason: str = "disconnect requested") -> None:
        self._reset(reason)

    # ------------------------------------------------------------------
    # Wallet callbacks
    # ------------------------------------------------------------------
    def _on_accounts_changed(self, accounts: Sequence[str]) -> None:
        if not accounts:
            self.disconnect("wallet reported no accounts")
            return
        self._spawn(self.handle_accounts_changed(list(accounts)), ACCOUNTS_CHANGED)

    def _on_chain_changed(self, chain_id: Any) -> None:
        self.handle_chain_changed(chain_id)

    def _spawn(self, coro: Coroutine[Any, Any, Any], label: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.error("Dropped %s event: no running event loop", label)
            return

        task = loop.create_task(coro, name=f"ct-session-{label}")
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if isinstance(exc, SessionResetError):
            logger.info("Discarded %s: %s", task.get_name(), exc)
        elif exc is not None:
            logger.error("Wallet event handler %s failed: %s", task.get_name(), exc)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _check_network(self, chain_id: int) -> NetworkMismatchError | None:
        expected = self._config.expected_chain_id
        if chain_id == expected:
            return None

        warning = NetworkMismatchError(expected, chain_id)
        logger.warning("Wallet is on chain %s, expected %s; continuing", chain_id, expected)
        if self._on_warning is not None:
            self._on_warning(warning)
        return warning

    def _ensure_epoch(self, epoch: int, action: str) -> None:
        if self._epoch != epoch:
            raise SessionResetError(
                f"Session was reset during {action}; result discarded",
                details={"action": action},
            )

    def _commit(
        self,
        binding: SessionBinding,
        snapshot: TokenSnapshot,
        network_warning: NetworkMismatchError | None,
    ) -> None:
        if binding is not self._binding:
            self._binding = binding
            self._epoch += 1
        self._metadata = snapshot.metadata
        self._network_warning = network_warning
        self._view.apply_snapshot(binding.account, snapshot)

    def _reset(self, reason: str) -> None:
        was_connected = self._binding is not None
        self._binding = None
        self._metadata = None
        self._network_warning = None
        self._epoch += 1
        self._reset_signal.set()
        self._reset_signal = asyncio.Event()
        self._view.reset()
        if was_connected:
            logger.info("Session disconnected (%s)", reason)
