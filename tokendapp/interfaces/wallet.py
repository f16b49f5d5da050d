"""Wallet provider protocol: the injected account/chain surface."""
from collections.abc import Awaitable, Callable
from typing import Any, Protocol


class Subscription(Protocol):
    """Handle returned by every event registration."""

    def cancel(self) -> None: ...


ProviderCallback = Callable[[Any], Awaitable[None]]


class WalletProvider(Protocol):
    """Abstract interface for an EIP-1193 style wallet provider.

    ``on`` delivers ``"accountsChanged"`` (list of addresses) and
    ``"chainChanged"`` (int chain id) notifications.
    """

    async def request_accounts(self) -> list[str]: ...

    async def get_accounts(self) -> list[str]: ...

    async def get_chain_id(self) -> int: ...

    async def request_chain_switch(self, chain_id: int) -> None: ...

    def on(self, event: str, callback: ProviderCallback) -> Subscription: ...
