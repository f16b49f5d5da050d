"""Wallet connection state and the active network."""
from __future__ import annotations

import logging
from typing import Any, Protocol

from ..config import NetworkConfig
from ..errors import (
    USER_REJECTED,
    ProviderRpcError,
    UnsupportedChainError,
    UserRejectedError,
    WalletUnavailableError,
)
from ..interfaces.wallet import Subscription, WalletProvider
from ..models import ConnectionState
from ..networks import NetworkRegistry

logger = logging.getLogger(__name__)


class SessionListener(Protocol):
    """Receives provider-driven session changes."""

    async def on_account_changed(self, account: str) -> None: ...

    async def on_disconnected(self) -> None: ...

    async def on_chain_changed(self, chain_id: int) -> None: ...


class WalletSession:
    """Connection state machine: Disconnected → Connecting → Connected.

    ``account`` is set if and only if ``state`` is CONNECTED.
    """

    def __init__(
        self,
        provider: WalletProvider | None,
        registry: NetworkRegistry,
        network_key: str,
    ) -> None:
        registry.get(network_key)
        self._provider = provider
        self._registry = registry
        self.network_key = network_key
        self.state = ConnectionState.DISCONNECTED
        self.account: str | None = None
        self.chain_id: int | None = None
        # Bumped by every reset so in-flight flows can tell they were overtaken.
        self.epoch = 0
        self._pending_chain_id: int | None = None
        self._listener: SessionListener | None = None
        self._subscriptions: list[Subscription] = []

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def network(self) -> NetworkConfig:
        return self._registry.get(self.network_key)

    @property
    def has_provider(self) -> bool:
        return self._provider is not None

    def set_listener(self, listener: SessionListener | None) -> None:
        self._listener = listener

    def _require_provider(self) -> WalletProvider:
        if self._provider is None:
            raise WalletUnavailableError("No wallet provider available")
        return self._provider

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def has_authorized_accounts(self) -> bool:
        """True if the provider exposes accounts without prompting."""
        if self._provider is None:
            return False
        try:
            return bool(await self._provider.get_accounts())
        except Exception as e:
            logger.warning("Could not query existing wallet accounts: %s", e)
            return False

    async def connect(self) -> str:
        """Request account access and return the selected account."""
        provider = self._require_provider()
        if self.connected and self.account:
            return self.account

        self.state = ConnectionState.CONNECTING
        try:
            accounts = await provider.request_accounts()
        except ProviderRpcError as e:
            self.reset()
            if e.code == USER_REJECTED:
                raise UserRejectedError("User rejected the connection request") from e
            raise WalletUnavailableError(f"Wallet provider error: {e.message}") from e
        except Exception as e:
            self.reset()
            raise WalletUnavailableError(f"Wallet provider unreachable: {e}") from e

        if not accounts:
            self.reset()
            raise WalletUnavailableError("Wallet returned no accounts")

        self._subscriptions = [
            provider.on("accountsChanged", self._handle_accounts_changed),
            provider.on("chainChanged", self._handle_chain_changed),
        ]
        self.account = accounts[0]
        self.state = ConnectionState.CONNECTED
        logger.info("Wallet connected: %s", self.account)
        return self.account

    def disconnect(self) -> None:
        if self.connected:
            logger.info("Wallet disconnected: %s", self.account)
        self.reset()

    def reset(self) -> None:
        """Back to the initial Disconnected state; idempotent."""
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []
        self.state = ConnectionState.DISCONNECTED
        self.account = None
        self.chain_id = None
        self.epoch += 1

    # ------------------------------------------------------------------
    # Network switching
    # ------------------------------------------------------------------

    async def switch_network(self, key: str) -> NetworkConfig:
        """Point the wallet at network ``key``.

        Any contract binding made for the previous network is stale once
        this returns.
        """
        network = self._registry.get(key)
        provider = self._require_provider()
        epoch = self.epoch

        try:
            current = await provider.get_chain_id()
            if current != network.chain_id:
                logger.info(
                    "Requesting chain switch %s → %s (%s)",
                    current, network.chain_id, network.name,
                )
                # Wallets may announce chainChanged before the request resolves.
                self._pending_chain_id = network.chain_id
                try:
                    await provider.request_chain_switch(network.chain_id)
                finally:
                    self._pending_chain_id = None
        except ProviderRpcError as e:
            if e.code == USER_REJECTED:
                raise UserRejectedError("User rejected the network switch") from e
            raise UnsupportedChainError(
                f"Wallet cannot switch to {network.name}: {e.message}"
            ) from e
        except Exception as e:
            raise WalletUnavailableError(f"Wallet provider unreachable: {e}") from e

        if self.epoch != epoch:
            raise WalletUnavailableError(
                f"Wallet session was reset while switching to {network.name}"
            )
        self.network_key = key
        self.chain_id = network.chain_id
        return network

    # ------------------------------------------------------------------
    # Provider notifications
    # ------------------------------------------------------------------

    async def _handle_accounts_changed(self, accounts: Any) -> None:
        if not self.connected:
            return
        if not accounts:
            self.reset()
            logger.info("Wallet reported no accounts, session disconnected")
            if self._listener is not None:
                await self._listener.on_disconnected()
            return

        self.account = accounts[0]
        logger.info("Wallet account changed: %s", self.account)
        if self._listener is not None:
            await self._listener.on_account_changed(self.account)

    async def _handle_chain_changed(self, chain_id: Any) -> None:
        chain = int(chain_id, 0) if isinstance(chain_id, str) else int(chain_id)
        if chain in (self.chain_id, self._pending_chain_id):
            # Echo of a switch this session requested itself.
            return
        logger.info("Wallet chain changed to %s, resetting session", chain)
        self.reset()
        if self._listener is not None:
            await self._listener.on_chain_changed(chain)
