"""Live binding between the client and one ERC-20 contract address."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from eth_utils import is_address, to_checksum_address

from ..errors import (
    USER_REJECTED,
    ContractUnloadedError,
    InvalidAddressError,
    ProviderRpcError,
    ReadFailedError,
    TransactionFailedError,
    TransactionRejectedError,
)
from ..interfaces.transport import ContractTransport, EventCallback, PendingTransaction
from ..interfaces.wallet import Subscription
from ..models import ContractEvent, TokenInfo, TxReceipt
from ..units import to_base_units, to_human_units

logger = logging.getLogger(__name__)

EventHandler = Callable[[ContractEvent], Awaitable[None]]

# Event kind → names of its (from, to, value)-shaped arguments.
_EVENT_FIELDS: dict[str, tuple[str, ...]] = {
    "Transfer": ("from", "to", "value"),
    "Approval": ("owner", "spender", "value"),
}


def _checked_address(address: Any, role: str = "address") -> str:
    if not isinstance(address, str) or not is_address(address):
        raise InvalidAddressError(f"Invalid {role}: {address!r}")
    return to_checksum_address(address)


class ContractBinding:
    """Reads, writes and event forwarding for the currently loaded token.

    Every ``load``/``reset`` bumps ``generation``; results of reads that
    started under an older generation are never cached or returned, so an
    amount is never converted with another contract's decimals.
    """

    def __init__(self, transport: ContractTransport) -> None:
        self._transport = transport
        self.address: str | None = None
        self.decimals: int | None = None
        self.generation = 0
        self._subscriptions: list[Subscription] = []
        self._events: asyncio.Queue[ContractEvent] = asyncio.Queue()
        self._pump: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def loaded(self) -> bool:
        return self.address is not None

    @property
    def events(self) -> asyncio.Queue[ContractEvent]:
        """Channel transport events are forwarded into."""
        return self._events

    @property
    def subscribed(self) -> bool:
        return bool(self._subscriptions) or self._pump is not None

    def load(self, address: str) -> None:
        """Bind to ``address``; the previous binding is torn down first."""
        checked = _checked_address(address, "contract address")
        self.reset()
        self.address = checked
        logger.info("Contract binding loaded at %s", checked)

    def reset(self) -> None:
        """Drop the binding, its cached decimals and its subscriptions."""
        self.unsubscribe()
        self.address = None
        self.decimals = None
        self.generation += 1

    def _require_loaded(self) -> str:
        if self.address is None:
            raise ContractUnloadedError("Contract not loaded.")
        return self.address

    def _check_generation(self, generation: int) -> None:
        if generation != self.generation:
            raise ContractUnloadedError("Contract binding changed during the request.")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _read(self, address: str, function: str, args: list[Any] | None = None) -> Any:
        try:
            return await self._transport.call(address, function, args or [])
        except Exception as e:
            raise ReadFailedError(f"{function}() read failed: {e}") from e

    async def _ensure_decimals(self) -> int:
        address = self._require_loaded()
        if self.decimals is not None:
            return self.decimals
        generation = self.generation
        decimals = int(await self._read(address, "decimals"))
        self._check_generation(generation)
        self.decimals = decimals
        return decimals

    async def get_token_info(self) -> TokenInfo:
        """Read name, symbol, decimals and total supply concurrently.

        All four reads are awaited; any single failure fails the whole call.
        """
        address = self._require_loaded()
        generation = self.generation

        results = await asyncio.gather(
            self._read(address, "name"),
            self._read(address, "symbol"),
            self._read(address, "decimals"),
            self._read(address, "totalSupply"),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

        self._check_generation(generation)
        name, symbol, decimals, total_supply = results
        self.decimals = int(decimals)
        return TokenInfo(
            name=str(name),
            symbol=str(symbol),
            decimals=self.decimals,
            total_supply=to_human_units(int(total_supply), self.decimals),
        )

    async def get_balance(self, address: str) -> str:
        contract = self._require_loaded()
        holder = _checked_address(address)
        generation = self.generation
        decimals = await self._ensure_decimals()
        balance = await self._read(contract, "balanceOf", [holder])
        self._check_generation(generation)
        return to_human_units(int(balance), decimals)

    async def get_allowance(self, owner: str, spender: str) -> str:
        contract = self._require_loaded()
        owner = _checked_address(owner, "owner address")
        spender = _checked_address(spender, "spender address")
        generation = self.generation
        decimals = await self._ensure_decimals()
        allowance = await self._read(contract, "allowance", [owner, spender])
        self._check_generation(generation)
        return to_human_units(int(allowance), decimals)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _submit(self, function: str, addresses: list[str], amount: str) -> TxReceipt:
        contract = self._require_loaded()
        generation = self.generation
        decimals = await self._ensure_decimals()
        self._check_generation(generation)
        value = to_base_units(amount, decimals)

        try:
            pending: PendingTransaction = await self._transport.send(
                contract, function, [*addresses, value]
            )
        except ProviderRpcError as e:
            if e.code == USER_REJECTED:
                raise TransactionRejectedError(f"User rejected {function}") from e
            raise TransactionFailedError(f"{function} submission failed: {e.message}") from e
        except Exception as e:
            raise TransactionFailedError(f"{function} submission failed: {e}") from e

        logger.info("Submitted %s transaction %s", function, pending.tx_hash)
        try:
            receipt = await pending.await_finality()
        except Exception as e:
            raise TransactionFailedError(
                f"{function} transaction {pending.tx_hash} did not complete: {e}"
            ) from e

        if not receipt.succeeded:
            raise TransactionFailedError(
                f"{function} transaction {receipt.transaction_hash} reverted"
            )
        logger.info(
            "%s transaction %s included in block %s",
            function, receipt.transaction_hash, receipt.block_number,
        )
        return receipt

    async def transfer(self, to: str, amount: str) -> TxReceipt:
        return await self._submit("transfer", [_checked_address(to, "recipient")], amount)

    async def approve(self, spender: str, amount: str) -> TxReceipt:
        return await self._submit("approve", [_checked_address(spender, "spender")], amount)

    async def transfer_from(self, sender: str, to: str, amount: str) -> TxReceipt:
        return await self._submit(
            "transferFrom",
            [_checked_address(sender, "owner"), _checked_address(to, "recipient")],
            amount,
        )

    async def burn(self, amount: str) -> TxReceipt:
        return await self._submit("burn", [], amount)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _forwarder(self, kind: str) -> EventCallback:
        names = _EVENT_FIELDS[kind]

        def forward(payload: dict[str, Any]) -> None:
            event = ContractEvent(
                kind=kind,
                fields={name: payload.get(name) for name in names},
                tx_hash=payload.get("transactionHash"),
                block_number=payload.get("blockNumber"),
            )
            self._events.put_nowait(event)

        return forward

    async def _run_pump(
        self, queue: asyncio.Queue[ContractEvent], handler: EventHandler
    ) -> None:
        while True:
            event = await queue.get()
            try:
                await handler(event)
            except Exception as e:
                logger.error("Contract event handler failed for %s: %s", event.kind, e)
            finally:
                queue.task_done()

    def subscribe(self, handler: EventHandler) -> None:
        """Forward Transfer and Approval events to ``handler``.

        Re-subscribing replaces the previous handler.
        """
        address = self._require_loaded()
        self.unsubscribe()
        for kind in _EVENT_FIELDS:
            self._subscriptions.append(
                self._transport.subscribe(address, kind, self._forwarder(kind))
            )
        self._pump = asyncio.get_running_loop().create_task(
            self._run_pump(self._events, handler)
        )
        logger.debug("Subscribed to contract events at %s", address)

    def unsubscribe(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()
        if self._pump is not None:
            self._pump.cancel()
            self._pump = None
        # Undelivered events belong to the old binding.
        self._events = asyncio.Queue()
