"""Tests for ct_api data models and the view state."""

import pytest
from hexbytes import HexBytes

from ct_api.constants import REFRESH_TARGETS, get_refresh_targets
from ct_api.evm.state import ViewState
from ct_api.types import (
    PendingTransaction,
    RefreshTarget,
    Response,
    TokenMetadata,
    TokenSnapshot,
    TxKind,
)


def test_refresh_targets_cover_every_kind() -> None:
    """Test refresh targets cover every kind."""
    assert set(REFRESH_TARGETS) == set(TxKind)


@pytest.mark.parametrize(
    "kind,expected",
    [
        (TxKind.TRANSFER, {RefreshTarget.BALANCE}),
        (TxKind.SET_TRADING, {RefreshTarget.TRADING_ENABLED}),
        (TxKind.CLAIM_VESTING, {RefreshTarget.BALANCE}),
        (TxKind.SET_WHITELIST, set()),
        (TxKind.FREEZE, set()),
        (TxKind.UNFREEZE, set()),
        (TxKind.CREATE_VESTING, set()),
    ],
)
def test_refresh_targets(kind: TxKind, expected: set[RefreshTarget]) -> None:
    """Test the refresh targets of each transaction kind."""
    assert get_refresh_targets(kind) == frozenset(expected)


def test_pending_transaction_hex() -> None:
    """Test pending transaction hex."""
    pending = PendingTransaction(
        kind=TxKind.FREEZE,
        tx_hash=HexBytes(b"\x01" * 32),
        refresh=frozenset(),
        binding=None,  # type: ignore[arg-type]
        epoch=3,
    )
    assert pending.tx_hex == "0x" + "01" * 32
    assert pending.context == {}


def test_response_defaults() -> None:
    """Test response defaults."""
    response = Response(success=True)
    assert response.refreshed == ()
    assert response.error is None
    assert response.raw_response is None


class TestViewState:
    def test_defaults_are_disconnected(self) -> None:
        """Test defaults are disconnected."""
        view = ViewState()
        assert view.connected is False
        assert view.as_dict() == {
            "account": "",
            "symbol": "",
            "decimals": 18,
            "balance": "0",
            "trading_enabled": False,
            "busy": False,
        }

    def test_apply_reports_only_changed_fields(self) -> None:
        """Test apply reports only changed fields."""
        view = ViewState()
        seen: list[frozenset[str]] = []
        view.add_listener(lambda state, changed: seen.append(changed))

        assert view.apply(balance="1.5", symbol="") == frozenset({"balance"})
        assert view.apply(balance="1.5") == frozenset()
        assert seen == [frozenset({"balance"})]

    def test_apply_rejects_unknown_fields(self) -> None:
        """Test apply rejects unknown fields."""
        view = ViewState()
        with pytest.raises(AttributeError):
            view.apply(allowance="1")
        with pytest.raises(AttributeError):
            view.apply(_listeners=[])

    def test_apply_snapshot_formats_balance(self) -> None:
        """Test apply snapshot formats balance."""
        view = ViewState()
        snapshot = TokenSnapshot(TokenMetadata("TT", 6), balance=2_500000, trading_enabled=True)

        changed = view.apply_snapshot("0xabc", snapshot)

        assert changed == frozenset({"account", "symbol", "decimals", "balance", "trading_enabled"})
        assert view.balance == "2.5"
        assert view.connected is True

    def test_reset_leaves_busy_to_the_gate(self) -> None:
        """Test that reset clears session fields while busy keeps mirroring the gate."""
        view = ViewState(account="0xabc", symbol="TT", balance="3.0", busy=True)
        view.reset()
        assert view.account == ""
        assert view.balance == "0"
        assert view.busy is True

    def test_listener_errors_do_not_block_others(self) -> None:
        """Test listener errors do not block others."""
        view = ViewState()
        seen: list[str] = []

        def broken(state: ViewState, changed: frozenset[str]) -> None:
            raise RuntimeError("boom")

        view.add_listener(broken)
        view.add_listener(lambda state, changed: seen.append(state.symbol))
        view.apply(symbol="TT")

        assert seen == ["TT"]

    def test_remove_listener(self) -> None:
        """Test remove listener."""
        view = ViewState()
        seen: list[frozenset[str]] = []

        def listener(state: ViewState, changed: frozenset[str]) -> None:
            seen.append(changed)

        view.add_listener(listener)
        view.add_listener(listener)
        view.remove_listener(listener)
        view.apply(busy=True)

        assert seen == []
