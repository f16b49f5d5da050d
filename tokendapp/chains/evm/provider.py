"""EIP-1193 style wallet provider backed by a JSON-RPC endpoint.

The endpoint holds the keys (a dev node with unlocked accounts or a wallet
bridge), so prompts, signing and rejections all happen on its side.
Change notifications are produced by polling ``eth_accounts`` and
``eth_chainId`` while at least one listener is registered.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from ...errors import METHOD_NOT_FOUND, UNSUPPORTED_METHOD, ProviderRpcError
from ...interfaces.wallet import ProviderCallback
from .rpc import JsonRpcClient

logger = logging.getLogger(__name__)

EVENTS = ("accountsChanged", "chainChanged")


class _ListenerHandle:
    def __init__(self, provider: RpcWalletProvider, event: str, callback: ProviderCallback) -> None:
        self._provider = provider
        self.event = event
        self.callback = callback

    def cancel(self) -> None:
        self._provider._remove(self)


class RpcWalletProvider:
    def __init__(self, rpc: JsonRpcClient, poll_interval: float = 2.0) -> None:
        self.rpc = rpc
        self.poll_interval = poll_interval
        self._listeners: list[_ListenerHandle] = []
        self._watcher: asyncio.Task[None] | None = None
        self._last_accounts: list[str] | None = None
        self._last_chain_id: int | None = None

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        return await self.rpc.request(method, params)

    async def request_accounts(self) -> list[str]:
        try:
            accounts = await self.request("eth_requestAccounts")
        except ProviderRpcError as e:
            if e.code != METHOD_NOT_FOUND:
                raise
            # Plain nodes expose their unlocked accounts without a prompt.
            accounts = await self.request("eth_accounts")
        return list(accounts or [])

    async def get_accounts(self) -> list[str]:
        return list(await self.request("eth_accounts") or [])

    async def get_chain_id(self) -> int:
        return int(await self.request("eth_chainId"), 16)

    async def request_chain_switch(self, chain_id: int) -> None:
        try:
            await self.request("wallet_switchEthereumChain", [{"chainId": hex(chain_id)}])
        except ProviderRpcError as e:
            if e.code == METHOD_NOT_FOUND:
                raise ProviderRpcError(
                    UNSUPPORTED_METHOD, "Endpoint cannot switch chains", e.data
                ) from e
            raise

    # ------------------------------------------------------------------
    # Change notifications
    # ------------------------------------------------------------------

    def on(self, event: str, callback: ProviderCallback) -> _ListenerHandle:
        if event not in EVENTS:
            raise ValueError(f"Unsupported provider event: {event}")
        handle = _ListenerHandle(self, event, callback)
        self._listeners.append(handle)
        if self._watcher is None or self._watcher.done():
            self._watcher = asyncio.get_running_loop().create_task(self._watch())
        return handle

    def _remove(self, handle: _ListenerHandle) -> None:
        if handle in self._listeners:
            self._listeners.remove(handle)
        if self._listeners or self._watcher is None:
            return
        # A watcher that cancels its own listeners exits on its next pass.
        if self._watcher is not asyncio.current_task():
            self._watcher.cancel()
        self._watcher = None
        self._last_accounts = None
        self._last_chain_id = None

    async def _emit(self, event: str, payload: Any) -> None:
        for handle in list(self._listeners):
            if handle.event != event or handle not in self._listeners:
                continue
            try:
                await handle.callback(payload)
            except Exception as e:
                logger.error("Provider listener for %s failed: %s", event, e)

    async def _poll_once(self) -> None:
        accounts = await self.get_accounts()
        chain_id = await self.get_chain_id()

        if self._last_chain_id is not None and chain_id != self._last_chain_id:
            self._last_chain_id = chain_id
            self._last_accounts = accounts
            await self._emit("chainChanged", chain_id)
            return
        self._last_chain_id = chain_id

        if self._last_accounts is not None and accounts != self._last_accounts:
            self._last_accounts = accounts
            await self._emit("accountsChanged", accounts)
            return
        self._last_accounts = accounts

    async def _watch(self) -> None:
        while self._listeners and self._watcher is asyncio.current_task():
            try:
                await self._poll_once()
            except Exception as e:
                logger.warning("Wallet change poll failed: %s", e)
            if not self._listeners or self._watcher is not asyncio.current_task():
                break
            await asyncio.sleep(self.poll_interval)

    async def close(self) -> None:
        self._listeners.clear()
        if self._watcher is not None:
            self._watcher.cancel()
            try:
                await self._watcher
            except asyncio.CancelledError:
                pass
            self._watcher = None
