"""Transaction orchestration for the ControlledToken client."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError

from ..constants import USER_REJECTED_CODES
from ..exceptions import (
    CTProtocolError,
    NetworkError,
    OperationInProgressError,
    SessionResetError,
    TransactionFailedToConfirmError,
    TransactionRevertedError,
    UserRejectedError,
    ValidationError,
    WalletRequestError,
)
from ..types import PendingTransaction, RefreshTarget, Response, SessionBinding
from ..utils import decode_revert_reason, format_amount, serialise_receipt

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .contract import TokenContract
    from .session import SessionManager
    from .state import ViewState

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]

_REVERT_PREFIX = "execution reverted"
_EXPECTED_FAILURES = (
    UserRejectedError,
    ValidationError,
    OperationInProgressError,
    SessionResetError,
)
_KNOWN_FAILURES = (CTProtocolError, ContractLogicError, TimeExhausted, Web3RPCError)


class BusyGate:
    """Single-slot gate allowing one user-initiated operation at a time.

    A second caller is rejected instead of queued.
    """

    def __init__(self, view: ViewState | None = None) -> None:
        self._slot = asyncio.Semaphore(1)
        self._view = view
        self._active: str | None = None

    @property
    def busy(self) -> bool:
        return self._slot.locked()

    @property
    def active(self) -> str | None:
        return self._active

    @asynccontextmanager
    async def hold(self, action: str) -> AsyncIterator[None]:
        if self._slot.locked():
            raise OperationInProgressError(action, self._active)

        await self._slot.acquire()
        self._active = action
        self._set_busy(True)
        try:
            yield
        finally:
            self._active = None
            self._slot.release()
            self._set_busy(False)

    def _set_busy(self, value: bool) -> None:
        if self._view is not None:
            self._view.apply(busy=value)


@dataclass(frozen=True)
class Confirmation:
    receipt: Any
    refreshed: frozenset[RefreshTarget]
    block_number: int | None = None
    discarded: bool = False


def classify_error(
    exc: BaseException, *, phase: str = "submit", tx_hash: str | None = None
) -> CTProtocolError:
    """Map wallet, web3 and transport failures onto the client taxonomy.

    ``phase`` is ``"submit"`` while the wallet is signing/sending and
    ``"confirm"`` while waiting for the receipt.
    """

    if isinstance(exc, WalletRequestError):
        if exc.code in USER_REJECTED_CODES:
            return UserRejectedError(exc.message, details={"code": exc.code})
        if phase == "confirm":
            return TransactionFailedToConfirmError(
                exc.message, tx_hash=tx_hash, details={"code": exc.code}
            )
        return NetworkError(exc.message, details={"code": exc.code, "data": exc.data})

    if isinstance(exc, CTProtocolError):
        return exc

    if isinstance(exc, TimeExhausted):
        return TransactionFailedToConfirmError(
            "Transaction was not confirmed in time", tx_hash=tx_hash, details={"error": str(exc)}
        )

    if isinstance(exc, ContractLogicError):
        reason = decode_revert_reason(_as_hex(exc.data)) or _strip_revert_prefix(exc.message)
        return _reverted(reason, tx_hash)

    if isinstance(exc, Web3RPCError):
        rpc_response = getattr(exc, "rpc_response", None) or {}
        error = rpc_response.get("error") if isinstance(rpc_response, Mapping) else None
        error = error if isinstance(error, Mapping) else {}
        code = error.get("code")
        message = str(error.get("message") or exc)
        if code in USER_REJECTED_CODES:
            return UserRejectedError(message, details={"code": code})
        if _REVERT_PREFIX in message.lower():
            reason = decode_revert_reason(_as_hex(error.get("data")))
            reason = reason or _strip_revert_prefix(message)
            return _reverted(reason, tx_hash)
        if phase == "confirm":
            return TransactionFailedToConfirmError(message, tx_hash=tx_hash, details={"code": code})
        return NetworkError(message, details={"code": code})

    if getattr(exc, "code", None) in USER_REJECTED_CODES:
        return UserRejectedError(str(exc) or "Request rejected by user")

    if phase == "confirm":
        return TransactionFailedToConfirmError(
            f"Transaction confirmation failed: {exc}", tx_hash=tx_hash, details={"error": repr(exc)}
        )
    return NetworkError(str(exc) or type(exc).__name__, details={"error": repr(exc)})


class TransactionOrchestrator:
    """Run writes one at a time and reconcile the view after confirmation."""

    def __init__(
        self,
        session: SessionManager,
        contract: TokenContract,
        *,
        gate: BusyGate | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._session = session
        self._contract = contract
        self._gate = gate or BusyGate(session.view)
        self._notifier = notifier

    @property
    def gate(self) -> BusyGate:
        return self._gate

    @property
    def busy(self) -> bool:
        return self._gate.busy

    # ------------------------------------------------------------------
    # Operation boundary
    # ------------------------------------------------------------------
    async def execute(
        self,
        action: str,
        submit: Callable[[], Awaitable[PendingTransaction]],
        *,
        success_message: str | None = None,
    ) -> Response:
        """Submit, confirm and refresh under the busy gate.

        Never raises for operation failures; they come back as an unsuccessful
        ``Response`` and are reported to the notifier.
        """

        try:
            async with self._gate.hold(action):
                reset_signal = self._session.reset_signal
                try:
                    pending = await submit()
                except Exception as exc:
                    error = classify_error(exc, phase="submit")
                    if error is exc:
                        raise
                    raise error from exc
                confirmation = await self.submit_and_confirm(pending, reset_signal=reset_signal)
        except Exception as exc:
            return self.failure_response(action, exc)

        if confirmation.discarded:
            return Response(
                success=False,
                action=action,
                transaction_hash=pending.tx_hex,
                error="Session was reset; result discarded",
                raw_response={
                    "tx_hash": pending.tx_hex,
                    "action": pending.kind.value,
                    "discarded": True,
                },
            )

        message = success_message or f"{action} confirmed"
        self.notify(message)
        return Response(
            success=True,
            action=action,
            transaction_hash=pending.tx_hex,
            message=message,
            refreshed=tuple(sorted(target.value for target in confirmation.refreshed)),
            block_number=confirmation.block_number,
            raw_response={
                "tx_hash": pending.tx_hex,
                "action": pending.kind.value,
                "context": dict(pending.context),
                "receipt": serialise_receipt(confirmation.receipt),
            },
        )

    def failure_response(self, action: str, exc: BaseException) -> Response:
        error = classify_error(exc)
        root = exc.__cause__ if exc.__cause__ is not None else exc
        if isinstance(error, _EXPECTED_FAILURES):
            logger.warning("%s failed: %s", action, error.message)
        elif isinstance(root, _KNOWN_FAILURES):
            logger.error("%s failed: %s", action, error.message)
        else:
            logger.exception("Unexpected %s failure", action)

        self.notify(error.message)
        return Response(
            success=False,
            action=action,
            transaction_hash=getattr(error, "tx_hash", None),
            error=error.message,
            raw_response={"error_type": type(error).__name__, "details": dict(error.details)},
        )

    def notify(self, message: str) -> None:
        if self._notifier is None:
            logger.info("%s", message)
            return
        try:
            self._notifier(message)
        except Exception:
            logger.exception("Notifier failed for message %r", message)

    # ------------------------------------------------------------------
    # Confirmation and refresh
    # ------------------------------------------------------------------
    async def submit_and_confirm(
        self, pending: PendingTransaction, *, reset_signal: asyncio.Event | None = None
    ) -> Confirmation:
        """Wait for ``pending`` to reach a terminal state, then refresh its targets.

        The wait is abandoned as soon as the session is reset (``reset_signal``
        defaults to the current session's); the result is then marked discarded.
        """

        config = self._session.config
        if reset_signal is None:
            reset_signal = self._session.reset_signal
        if reset_signal.is_set():
            return self._discard(pending)

        receipt_wait = asyncio.ensure_future(
            pending.binding.signer.wait_for_receipt(
                pending.tx_hash,
                timeout=config.receipt_timeout,
                poll_latency=config.poll_latency,
            )
        )
        reset_wait = asyncio.ensure_future(reset_signal.wait())
        try:
            done, _ = await asyncio.wait(
                {receipt_wait, reset_wait}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (receipt_wait, reset_wait):
                if not task.done():
                    task.cancel()

        if receipt_wait not in done:
            return self._discard(pending)

        try:
            receipt = receipt_wait.result()
        except Exception as exc:
            error = classify_error(exc, phase="confirm", tx_hash=pending.tx_hex)
            if error is exc:
                raise
            raise error from exc

        block_number = _receipt_field(receipt, "blockNumber")
        if _receipt_field(receipt, "status") == 0:
            raise TransactionRevertedError(
                "Transaction reverted",
                tx_hash=pending.tx_hex,
                details={"block_number": block_number},
            )

        logger.info(
            "Transaction confirmed for action=%s hash=%s block=%s",
            pending.kind.value,
            pending.tx_hex,
            block_number,
        )

        try:
            refreshed = await self.refresh(
                pending.refresh, binding=pending.binding, epoch=pending.epoch
            )
        except CTProtocolError as exc:
            logger.warning(
                "Refresh after %s failed; view state left unchanged: %s",
                pending.kind.value,
                exc.message,
            )
            refreshed = frozenset()

        return Confirmation(receipt=receipt, refreshed=refreshed, block_number=block_number)

    async def refresh(
        self,
        targets: Iterable[RefreshTarget],
        *,
        binding: SessionBinding | None = None,
        epoch: int | None = None,
    ) -> frozenset[RefreshTarget]:
        """Re-read ``targets`` and merge them into the view state.

        Results are dropped if the session changed while the reads were
        outstanding.
        """

        if binding is None:
            binding = self._session.require_binding()
            epoch = self._session.epoch
        if epoch is None:
            epoch = self._session.epoch

        ordered = sorted(set(targets), key=lambda target: target.value)
        if not ordered:
            return frozenset()
        if not self._session.is_current(binding, epoch):
            logger.warning("Session changed; discarding refresh of %s", [t.value for t in ordered])
            return frozenset()

        values = await asyncio.gather(*(self._read_target(target, binding) for target in ordered))

        if not self._session.is_current(binding, epoch):
            logger.warning("Session changed; discarding refresh of %s", [t.value for t in ordered])
            return frozenset()

        metadata = self._session.require_metadata()
        changes: dict[str, Any] = {}
        for target, value in zip(ordered, values):
            if target is RefreshTarget.BALANCE:
                changes["balance"] = format_amount(value, metadata.decimals)
            elif target is RefreshTarget.TRADING_ENABLED:
                changes["trading_enabled"] = bool(value)
        self._session.view.apply(**changes)
        return frozenset(ordered)

    def _discard(self, pending: PendingTransaction) -> Confirmation:
        logger.info(
            "Session reset while %s was pending; discarding result for %s",
            pending.kind.value,
            pending.tx_hex,
        )
        return Confirmation(receipt=None, refreshed=frozenset(), discarded=True)

    async def _read_target(self, target: RefreshTarget, binding: SessionBinding) -> Any:
        if target is RefreshTarget.BALANCE:
            return await self._contract.balance_of(binding=binding)
        return await self._contract.trading_enabled(binding=binding)


def _reverted(reason: str | None, tx_hash: str | None) -> TransactionRevertedError:
    message = f"Transaction reverted: {reason}" if reason else "Transaction reverted"
    return TransactionRevertedError(message, reason=reason, tx_hash=tx_hash)


def _strip_revert_prefix(message: Any) -> str | None:
    if not message:
        return None
    text = str(message).strip()
    lowered = text.lower()
    if lowered.startswith(_REVERT_PREFIX):
        text = text[len(_REVERT_PREFIX) :].lstrip(" :")
    return text or None


def _as_hex(data: Any) -> str | bytes | None:
    if isinstance(data, str | bytes | bytearray):
        return bytes(data) if isinstance(data, bytearray) else data
    return None


def _receipt_field(receipt: Any, name: str) -> Any:
    if isinstance(receipt, Mapping):
        return receipt.get(name)
    return getattr(receipt, name, None)
