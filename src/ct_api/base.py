"""Wallet provider interface consumed by the session layer."""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any

EventHandler = Callable[[Any], None]


class WalletProvider(ABC):
    """EIP-1193 style wallet provider.

    ``request`` raises ``WalletRequestError`` carrying the provider error code
    when the wallet refuses or fails a request. Event handlers are invoked
    synchronously by the wallet, outside of any call made by the client.
    """

    @abstractmethod
    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        pass

    @abstractmethod
    def on(self, event: str, handler: EventHandler) -> None:
        pass

    @abstractmethod
    def remove_listener(self, event: str, handler: EventHandler) -> None:
        pass
