from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Callable, Sequence
from typing import Any

import pytest
from hexbytes import HexBytes
from web3 import Web3

from ct_api.base import EventHandler, WalletProvider
from ct_api.evm.config import ClientConfig
from ct_api.evm.connections import ProviderBinding, WalletSigner
from ct_api.evm.session import SessionManager
from ct_api.exceptions import WalletRequestError

ACCOUNT_A = "0x" + "aa" * 20
ACCOUNT_B = "0x" + "bb" * 20
ACCOUNT_C = "0x" + "cc" * 20
CHECKSUM_A = Web3.to_checksum_address(ACCOUNT_A)
CHECKSUM_B = Web3.to_checksum_address(ACCOUNT_B)
CHECKSUM_C = Web3.to_checksum_address(ACCOUNT_C)
ONE_TOKEN = 10**18


class FakeWallet(WalletProvider):
    """In-memory EIP-1193 wallet."""

    def __init__(
        self,
        accounts: Sequence[str] = (ACCOUNT_A,),
        chain_id: int = 31337,
        *,
        reject: bool = False,
    ) -> None:
        self.accounts = list(accounts)
        self.chain_id = chain_id
        self.reject = reject
        self.calls: list[str] = []
        self.listeners: dict[str, list[EventHandler]] = defaultdict(list)
        self.approval: asyncio.Event | None = None

    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        self.calls.append(method)
        if method == "eth_requestAccounts":
            if self.approval is not None:
                await self.approval.wait()
            if self.reject:
                raise WalletRequestError("User rejected the request.", code=4001)
            return list(self.accounts)
        if method == "eth_accounts":
            return list(self.accounts)
        if method == "eth_chainId":
            return hex(self.chain_id)
        raise WalletRequestError(f"Method {method} not supported", code=-32601)

    def on(self, event: str, handler: EventHandler) -> None:
        self.listeners[event].append(handler)

    def remove_listener(self, event: str, handler: EventHandler) -> None:
        self.listeners[event].remove(handler)

    def emit(self, event: str, payload: Any) -> None:
        for handler in list(self.listeners[event]):
            handler(payload)


class FakeCall:
    def __init__(self, contract: FakeContract, name: str, args: tuple[Any, ...]) -> None:
        self._contract = contract
        self.name = name
        self.args = args

    async def call(self) -> Any:
        contract = self._contract
        contract.reads.append((self.name, self.args))
        if contract.read_gate is not None:
            await contract.read_gate.wait()
        if self.name in contract.read_errors:
            raise contract.read_errors[self.name]
        if self.name == "symbol":
            return contract.symbol
        if self.name == "decimals":
            return contract.decimals
        if self.name == "balanceOf":
            return contract.balances.get(Web3.to_checksum_address(self.args[0]), 0)
        if self.name == "tradingEnabled":
            return contract.trading
        raise AttributeError(self.name)

    async def transact(self, transaction: dict[str, Any] | None = None) -> HexBytes:
        contract = self._contract
        contract.transactions.append((self.name, self.args, dict(transaction or {})))
        if contract.transact_error is not None:
            raise contract.transact_error
        sender = (transaction or {}).get("from")
        contract.apply_effect(self.name, self.args, sender)
        return HexBytes(bytes([len(contract.transactions)]) * 32)


class FakeFunctions:
    def __init__(self, contract: FakeContract) -> None:
        self._contract = contract

    def __getattr__(self, name: str) -> Callable[..., FakeCall]:
        return lambda *args: FakeCall(self._contract, name, args)


class FakeContract:
    """Token contract double whose state changes when transactions are sent."""

    def __init__(
        self,
        *,
        symbol: str = "TT",
        decimals: int = 18,
        balances: dict[str, int] | None = None,
        trading: bool = False,
    ) -> None:
        self.symbol = symbol
        self.decimals = decimals
        self.balances = {Web3.to_checksum_address(k): v for k, v in (balances or {}).items()}
        self.trading = trading
        self.vested: dict[str, int] = {}
        self.functions = FakeFunctions(self)
        self.reads: list[tuple[str, tuple[Any, ...]]] = []
        self.transactions: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.read_errors: dict[str, Exception] = {}
        self.read_gate: asyncio.Event | None = None
        self.transact_error: Exception | None = None

    def apply_effect(self, name: str, args: tuple[Any, ...], sender: str | None) -> None:
        if name == "transfer" and sender is not None:
            to, amount = args
            self.balances[sender] = self.balances.get(sender, 0) - amount
            self.balances[to] = self.balances.get(to, 0) + amount
        elif name == "setTradingEnabled":
            self.trading = args[0]
        elif name == "createVesting":
            self.vested[args[0]] = self.vested.get(args[0], 0) + args[1]
        elif name == "claimVested" and sender is not None:
            self.balances[sender] = self.balances.get(sender, 0) + self.vested.pop(sender, 0)

    def read_names(self) -> list[str]:
        return [name for name, _ in self.reads]


class FakeChain:
    """Stands in for receipt polling on ``WalletSigner``."""

    def __init__(self) -> None:
        self.status = 1
        self.error: BaseException | None = None
        self.gate: asyncio.Event | None = None
        self.waited: list[HexBytes] = []
        self.block_number = 7

    async def wait_for_receipt(
        self, signer: WalletSigner, tx_hash: HexBytes, *, timeout: float, poll_latency: float
    ) -> dict[str, Any]:
        self.waited.append(tx_hash)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return {
            "transactionHash": HexBytes(tx_hash),
            "blockNumber": self.block_number,
            "status": self.status,
            "from": signer.address,
        }


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def token() -> FakeContract:
    return FakeContract(balances={ACCOUNT_A: 100 * ONE_TOKEN, ACCOUNT_B: 5 * ONE_TOKEN})


@pytest.fixture
def chain(monkeypatch: pytest.MonkeyPatch) -> FakeChain:
    fake = FakeChain()

    async def wait_for_receipt(
        self: WalletSigner, tx_hash: HexBytes, *, timeout: float, poll_latency: float
    ) -> dict[str, Any]:
        return await fake.wait_for_receipt(
            self, tx_hash, timeout=timeout, poll_latency=poll_latency
        )

    monkeypatch.setattr(WalletSigner, "wait_for_receipt", wait_for_receipt)
    return fake


@pytest.fixture
def warnings_seen() -> list[Any]:
    return []


@pytest.fixture
def session(wallet: FakeWallet, token: FakeContract, warnings_seen: list[Any]) -> SessionManager:
    manager = SessionManager(
        ProviderBinding(wallet),
        ClientConfig(receipt_timeout=5.0, poll_latency=0.01),
        contract_factory=lambda provider, signer, config: token,
        on_warning=warnings_seen.append,
    )
    manager.attach()
    return manager


async def settle() -> None:
    """Let tasks spawned by wallet callbacks run to completion."""

    for _ in range(10):
        await asyncio.sleep(0)
