"""Application root wiring the session, contract facade and orchestrator."""

from __future__ import annotations

import logging
from datetime import datetime

from web3 import Web3

from ..base import WalletProvider
from ..constants import DEFAULT_TOKEN_ADDRESS, HARDHAT_CHAIN_ID
from ..exceptions import NetworkMismatchError
from ..types import RefreshTarget, Response, TokenMetadata
from ..utils import format_amount
from .config import DEFAULT_POLL_LATENCY, DEFAULT_RECEIPT_TIMEOUT, ClientConfig
from .connections import ProviderBinding
from .contract import AmountInput, TokenContract
from .session import ContractFactory, SessionManager, WarningHook
from .state import ViewState
from .transactions import Notifier, TransactionOrchestrator

logger = logging.getLogger(__name__)


class TokenClient:
    """Operate a ControlledToken deployment through a wallet provider."""

    def __init__(
        self,
        wallet: WalletProvider | None,
        token_address: str = DEFAULT_TOKEN_ADDRESS,
        *,
        expected_chain_id: int = HARDHAT_CHAIN_ID,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT,
        poll_latency: float = DEFAULT_POLL_LATENCY,
        config: ClientConfig | None = None,
        notifier: Notifier | None = None,
        on_warning: WarningHook | None = None,
        contract_factory: ContractFactory | None = None,
    ) -> None:
        if config is None:
            config = ClientConfig(
                token_address=Web3.to_checksum_address(token_address),
                expected_chain_id=expected_chain_id,
                receipt_timeout=receipt_timeout,
                poll_latency=poll_latency,
            )

        self._config = config
        self._view = ViewState()
        self._provider = ProviderBinding(wallet)
        self._session = SessionManager(
            self._provider,
            config,
            view=self._view,
            contract_factory=contract_factory,
            on_warning=on_warning or self._warn,
        )
        self._contract = TokenContract(self._session)
        self._orchestrator = TransactionOrchestrator(
            self._session, self._contract, notifier=notifier
        )
        self._session.attach()

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------
    async def connect(self) -> Response:
        try:
            async with self._orchestrator.gate.hold("connect"):
                binding = await self._session.connect()
        except Exception as exc:
            return self._orchestrator.failure_response("connect", exc)

        return Response(
            success=True,
            action="connect",
            message=f"Connected {binding.account}",
            raw_response={"account": binding.account, "chain_id": binding.chain_id},
        )

    def disconnect(self) -> None:
        self._session.disconnect()

    def close(self) -> None:
        logger.info("Closing token client for %s", self._config.token_address)
        self._session.close()

    def is_connected(self) -> bool:
        return self._session.is_connected()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def refresh_balance(self) -> Response:
        """Re-read the connected account's balance; not subject to the busy gate."""

        try:
            refreshed = await self._orchestrator.refresh(
                frozenset({RefreshTarget.BALANCE}), binding=self._session.require_binding()
            )
        except Exception as exc:
            return self._orchestrator.failure_response("refresh_balance", exc)

        return Response(
            success=True,
            action="refresh_balance",
            refreshed=tuple(sorted(target.value for target in refreshed)),
            message=f"Balance: {self._view.balance} {self._view.symbol}",
        )

    async def balance_of(self, address: str) -> str:
        units = await self._contract.balance_of(address)
        return format_amount(units, self._session.require_metadata().decimals)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def transfer(self, to: str, amount: AmountInput) -> Response:
        return await self._orchestrator.execute(
            "transfer",
            lambda: self._contract.transfer(to, amount),
            success_message="Transfer done",
        )

    async def set_trading_enabled(self, enabled: bool) -> Response:
        return await self._orchestrator.execute(
            "set_trading_enabled",
            lambda: self._contract.set_trading_enabled(enabled),
            success_message=f"Trading {'enabled' if enabled else 'disabled'}",
        )

    async def toggle_trading(self) -> Response:
        return await self._orchestrator.execute(
            "toggle_trading",
            lambda: self._contract.set_trading_enabled(not self._view.trading_enabled),
            success_message="Trading toggled",
        )

    async def set_whitelist(self, address: str, allowed: bool = True) -> Response:
        return await self._orchestrator.execute(
            "set_whitelist",
            lambda: self._contract.set_whitelist(address, allowed),
            success_message="Whitelist updated",
        )

    async def freeze(self, address: str, seconds: str | int | None = "0") -> Response:
        return await self._orchestrator.execute(
            "freeze",
            lambda: self._contract.freeze(address, seconds),
            success_message="Freeze done (0 = permanent)",
        )

    async def unfreeze(self, address: str) -> Response:
        return await self._orchestrator.execute(
            "unfreeze",
            lambda: self._contract.unfreeze(address),
            success_message="Unfreeze done",
        )

    async def create_vesting(
        self,
        beneficiary: str,
        amount: AmountInput,
        start: str | int | datetime | None = None,
        cliff: str | int | None = "0",
        duration: str | int | None = "0",
    ) -> Response:
        return await self._orchestrator.execute(
            "create_vesting",
            lambda: self._contract.create_vesting(beneficiary, amount, start, cliff, duration),
            success_message="Vesting created",
        )

    async def claim_vested(self) -> Response:
        return await self._orchestrator.execute(
            "claim_vested",
            self._contract.claim_vested,
            success_message="Vesting claimed",
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _warn(self, warning: NetworkMismatchError) -> None:
        self._orchestrator.notify(
            f"Select the expected network (chain id {self._config.expected_chain_id}); "
            f"wallet is on chain {warning.actual_chain_id}"
        )

    # ------------------------------------------------------------------
    # Connection-backed properties
    # ------------------------------------------------------------------
    @property
    def view(self) -> ViewState:
        return self._view

    @property
    def session(self) -> SessionManager:
        return self._session

    @property
    def contract(self) -> TokenContract:
        return self._contract

    @property
    def orchestrator(self) -> TransactionOrchestrator:
        return self._orchestrator

    @property
    def busy(self) -> bool:
        return self._orchestrator.busy

    @property
    def account(self) -> str | None:
        binding = self._session.binding
        return binding.account if binding is not None else None

    @property
    def metadata(self) -> TokenMetadata | None:
        return self._session.metadata

    @property
    def config(self) -> ClientConfig:
        return self._config
