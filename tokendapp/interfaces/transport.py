"""Contract transport protocol: typed calls against a deployed contract."""
from collections.abc import Callable, Sequence
from typing import Any, Protocol

from ..models import TxReceipt
from .wallet import Subscription

EventCallback = Callable[[dict[str, Any]], None]


class PendingTransaction(Protocol):
    """A submitted, not yet final, transaction."""

    @property
    def tx_hash(self) -> str: ...

    async def await_finality(self) -> TxReceipt: ...


class ContractTransport(Protocol):
    """Abstract interface for contract reads, writes and event logs."""

    async def call(
        self, address: str, function: str, args: Sequence[Any] = ()
    ) -> Any: ...

    async def send(
        self, address: str, function: str, args: Sequence[Any] = ()
    ) -> PendingTransaction: ...

    def subscribe(
        self, address: str, event: str, callback: EventCallback
    ) -> Subscription: ...
