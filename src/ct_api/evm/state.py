"""UI-facing snapshot of the token session."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, fields
from typing import Any

from ..constants import DEFAULT_DECIMALS
from ..types import TokenMetadata, TokenSnapshot
from ..utils import format_amount

logger = logging.getLogger(__name__)

ViewListener = Callable[["ViewState", frozenset[str]], None]


@dataclass
class ViewState:
    """Values rendered by the presentation layer.

    Fields change only through ``apply``; listeners receive the names of the
    fields that actually changed.
    """

    account: str = ""
    symbol: str = ""
    decimals: int = DEFAULT_DECIMALS
    balance: str = "0"
    trading_enabled: bool = False
    busy: bool = False
    _listeners: list[ViewListener] = field(default_factory=list, repr=False, compare=False)

    @property
    def connected(self) -> bool:
        return bool(self.account)

    def add_listener(self, listener: ViewListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ViewListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def apply(self, **changes: Any) -> frozenset[str]:
        known = {f.name for f in fields(self) if not f.name.startswith("_")}
        unknown = set(changes) - known
        if unknown:
            raise AttributeError(f"Unknown view state fields: {sorted(unknown)}")

        changed = frozenset(name for name, value in changes.items() if getattr(self, name) != value)
        for name in changed:
            setattr(self, name, changes[name])

        if changed:
            self._notify(changed)
        return changed

    def apply_snapshot(self, account: str, snapshot: TokenSnapshot) -> frozenset[str]:
        metadata = snapshot.metadata
        return self.apply(
            account=account,
            symbol=metadata.symbol,
            decimals=metadata.decimals,
            balance=format_amount(snapshot.balance, metadata.decimals),
            trading_enabled=snapshot.trading_enabled,
        )

    def apply_balance(self, units: int, metadata: TokenMetadata) -> frozenset[str]:
        return self.apply(balance=format_amount(units, metadata.decimals))

    def reset(self) -> frozenset[str]:
        """Return every session field to its disconnected default."""

        return self.apply(
            account="",
            symbol="",
            decimals=DEFAULT_DECIMALS,
            balance="0",
            trading_enabled=False,
        )

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if not f.name.startswith("_")}

    def _notify(self, changed: frozenset[str]) -> None:
        for listener in list(self._listeners):
            try:
                listener(self, changed)
            except Exception:
                logger.exception("View state listener failed")
