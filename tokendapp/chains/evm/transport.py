"""Contract calls, transaction submission and log polling over JSON-RPC."""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from typing import Any

from ...contract.abi import ERC20_ABI, decode_log, decode_result, encode_call, event_topic
from ...errors import UNAUTHORIZED, ProviderRpcError
from ...interfaces.transport import EventCallback
from ...models import TxReceipt
from .provider import RpcWalletProvider

logger = logging.getLogger(__name__)


class PendingRpcTransaction:
    """Submitted transaction; finality means a receipt exists."""

    def __init__(
        self,
        provider: RpcWalletProvider,
        tx_hash: str,
        timeout: float = 120.0,
        poll_interval: float = 2.0,
    ) -> None:
        self._provider = provider
        self._tx_hash = tx_hash
        self._timeout = timeout
        self._poll_interval = poll_interval

    @property
    def tx_hash(self) -> str:
        return self._tx_hash

    async def await_finality(self) -> TxReceipt:
        start = time.monotonic()
        while time.monotonic() - start < self._timeout:
            receipt = await self._provider.request(
                "eth_getTransactionReceipt", [self._tx_hash]
            )
            if receipt is not None:
                block = receipt.get("blockNumber")
                return TxReceipt(
                    transaction_hash=receipt.get("transactionHash", self._tx_hash),
                    status=int(receipt.get("status") or "0x1", 16),
                    block_number=int(block, 16) if block else None,
                )
            await asyncio.sleep(self._poll_interval)

        raise TimeoutError(
            f"Transaction {self._tx_hash} not confirmed within {self._timeout}s"
        )


class LogSubscription:
    """Polls ``eth_getLogs`` for one event of one contract."""

    def __init__(
        self,
        provider: RpcWalletProvider,
        address: str,
        event: str,
        callback: EventCallback,
        poll_interval: float,
        abi: Sequence[dict[str, Any]],
    ) -> None:
        self._provider = provider
        self._address = address
        self._event = event
        self._callback = callback
        self._poll_interval = poll_interval
        self._abi = abi
        self._topic = event_topic(event, abi)
        self._next_block: int | None = None
        self._task = asyncio.get_running_loop().create_task(self._run())

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        self._task.cancel()

    async def _block_number(self) -> int:
        return int(await self._provider.request("eth_blockNumber"), 16)

    async def poll(self) -> None:
        latest = await self._block_number()
        if self._next_block is None:
            # Only events after the subscription started are delivered.
            self._next_block = latest + 1
            return
        if latest < self._next_block:
            return

        logs = await self._provider.request(
            "eth_getLogs",
            [
                {
                    "address": self._address,
                    "topics": [self._topic],
                    "fromBlock": hex(self._next_block),
                    "toBlock": hex(latest),
                }
            ],
        )
        self._next_block = latest + 1
        for log in logs or []:
            if log.get("removed"):
                continue
            try:
                payload = decode_log(self._event, log, self._abi)
            except ValueError as e:
                logger.warning("Skipping undecodable %s log: %s", self._event, e)
                continue
            block = log.get("blockNumber")
            payload["transactionHash"] = log.get("transactionHash")
            payload["blockNumber"] = int(block, 16) if block else None
            self._callback(payload)

    async def _run(self) -> None:
        while True:
            try:
                await self.poll()
            except Exception as e:
                logger.warning("%s log poll failed: %s", self._event, e)
            await asyncio.sleep(self._poll_interval)


class RpcContractTransport:
    """``ContractTransport`` that routes everything through the wallet provider."""

    def __init__(
        self,
        provider: RpcWalletProvider,
        abi: Sequence[dict[str, Any]] = ERC20_ABI,
        receipt_timeout: float = 120.0,
        receipt_poll_interval: float = 2.0,
        event_poll_interval: float = 4.0,
    ) -> None:
        self._provider = provider
        self._abi = abi
        self._receipt_timeout = receipt_timeout
        self._receipt_poll_interval = receipt_poll_interval
        self._event_poll_interval = event_poll_interval

    async def call(self, address: str, function: str, args: Sequence[Any] = ()) -> Any:
        calldata = encode_call(function, args, self._abi)
        result = await self._provider.request(
            "eth_call", [{"to": address, "data": calldata}, "latest"]
        )
        if result is None or result == "0x":
            raise ProviderRpcError(-32000, f"{function}() returned no data from {address}")
        return decode_result(function, result, self._abi)

    async def send(
        self, address: str, function: str, args: Sequence[Any] = ()
    ) -> PendingRpcTransaction:
        accounts = await self._provider.get_accounts()
        if not accounts:
            raise ProviderRpcError(UNAUTHORIZED, "No account available to send from")

        tx = {"from": accounts[0], "to": address, "data": encode_call(function, args, self._abi)}
        tx_hash = await self._provider.request("eth_sendTransaction", [tx])
        return PendingRpcTransaction(
            self._provider,
            tx_hash,
            timeout=self._receipt_timeout,
            poll_interval=self._receipt_poll_interval,
        )

    def subscribe(self, address: str, event: str, callback: EventCallback) -> LogSubscription:
        return LogSubscription(
            self._provider, address, event, callback, self._event_poll_interval, self._abi
        )
