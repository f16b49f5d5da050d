"""Request/response flows tying the wallet session to the token binding."""
from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from ..config import AppConfig
from ..contract import ContractBinding
from ..errors import ContractUnloadedError, TokenDAppError, WalletUnavailableError
from ..interfaces.transport import ContractTransport
from ..interfaces.view import ViewListener
from ..interfaces.wallet import WalletProvider
from ..models import (
    AllowanceCheck,
    ContractEvent,
    Severity,
    StatusMessage,
    TokenInfo,
    TransactionRecord,
    TxKind,
    TxReceipt,
    ViewState,
)
from ..networks import NetworkRegistry
from ..wallet import WalletSession
from .transaction_log import TransactionLog

logger = logging.getLogger(__name__)

REFRESH_FAILED = (
    "Could not refresh token info. Is the contract address correct for this network?"
)


@dataclass
class DAppContext:
    """Everything one running client owns; passed explicitly, never global."""

    session: WalletSession
    binding: ContractBinding
    log: TransactionLog
    registry: NetworkRegistry

    @classmethod
    def create(
        cls,
        config: AppConfig,
        provider: WalletProvider | None,
        transport: ContractTransport,
        network_key: str | None = None,
    ) -> DAppContext:
        registry = NetworkRegistry(config.networks)
        return cls(
            session=WalletSession(provider, registry, network_key or config.default_network),
            binding=ContractBinding(transport),
            log=TransactionLog(config.ui.history_capacity),
            registry=registry,
        )


class Orchestrator:
    """Drives UI intents and wallet/contract events through the core.

    UI entry points report every failure as an error status and re-raise
    the typed error. Event-driven paths only report.
    """

    def __init__(
        self,
        context: DAppContext,
        config: AppConfig,
        views: Sequence[ViewListener] = (),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ctx = context
        self._config = config
        self._views: list[ViewListener] = list(views)
        self._clock = clock

        self.token: TokenInfo | None = None
        self.balance: str | None = None
        self.allowance: AllowanceCheck | None = None
        self._status: StatusMessage | None = None

        context.session.set_listener(self)

    @property
    def context(self) -> DAppContext:
        return self._ctx

    def add_view(self, view: ViewListener) -> None:
        self._views.append(view)

    # ------------------------------------------------------------------
    # View model
    # ------------------------------------------------------------------

    @property
    def current_status(self) -> StatusMessage | None:
        if self._status is None or self._status.is_expired(self._clock()):
            return None
        return self._status

    def view_state(self) -> ViewState:
        session = self._ctx.session
        return ViewState(
            connection=session.state,
            account=session.account,
            network_key=session.network_key,
            network_name=session.network.name,
            contract_address=self._ctx.binding.address,
            token=self.token,
            balance=self.balance,
            allowance=self.allowance,
            transactions=self._ctx.log.records,
            status=self.current_status,
        )

    async def _publish_view(self) -> ViewState:
        view = self.view_state()
        for listener in self._views:
            try:
                await listener.on_refresh(view)
            except Exception as e:
                logger.error("View refresh failed: %s", e)
        return view

    async def _emit_status(self, text: str, severity: Severity) -> StatusMessage:
        status = StatusMessage(
            text=text,
            severity=severity,
            expires_at=self._clock() + self._config.ui.status_ttl_seconds,
        )
        self._status = status
        for listener in self._views:
            try:
                await listener.on_status(status)
            except Exception as e:
                logger.error("View status update failed: %s", e)
        return status

    async def _report(self, prefix: str, error: TokenDAppError) -> None:
        logger.error("%s [%s]: %s", prefix, error.kind.value, error.message)
        await self._emit_status(f"{prefix}: {error.message}", Severity.ERROR)

    def _clear_token_view(self) -> None:
        self.token = None
        self.balance = None
        self.allowance = None

    # ------------------------------------------------------------------
    # Session flows
    # ------------------------------------------------------------------

    async def restore(self) -> ViewState:
        """Reconnect silently if the wallet already authorized this client."""
        session = self._ctx.session
        if not session.has_provider:
            await self._emit_status(
                "Please install a wallet provider to use this dApp", Severity.ERROR
            )
            return await self._publish_view()

        if await session.has_authorized_accounts():
            try:
                await self.connect()
            except TokenDAppError as e:
                logger.warning("Automatic reconnect failed: %s", e)
        return self.view_state()

    async def connect(self) -> str:
        session = self._ctx.session
        try:
            account = await session.connect()
        except TokenDAppError as e:
            await self._report("Failed to connect wallet", e)
            await self._publish_view()
            raise

        try:
            await session.switch_network(session.network_key)
        except TokenDAppError as e:
            await self._report("Failed to switch network", e)
            await self._publish_view()
            if not session.connected:
                raise
            return account

        await self._bind_network_contract(session.network_key)
        await self._emit_status("Wallet connected successfully!", Severity.SUCCESS)
        return account

    async def disconnect(self) -> ViewState:
        self._ctx.session.disconnect()
        self._ctx.binding.unsubscribe()
        self.balance = None
        self.allowance = None
        await self._emit_status("Wallet disconnected", Severity.INFO)
        return await self._publish_view()

    async def switch_network(self, key: str) -> ViewState:
        # A reset during the switch makes the session raise instead of binding.
        try:
            await self._ctx.session.switch_network(key)
        except TokenDAppError as e:
            await self._report("Failed to switch network", e)
            raise
        await self._bind_network_contract(key)
        return self.view_state()

    async def _bind_network_contract(self, key: str) -> None:
        self._ctx.binding.reset()
        self._clear_token_view()
        address = self._config.default_contract(key)
        if address is None:
            network = self._ctx.registry.get(key)
            await self._emit_status(
                f"No default contract configured for {network.name}", Severity.INFO
            )
            await self.refresh()
            return
        await self.load_contract(address)

    async def reset(self, network_key: str | None = None) -> ViewState:
        """Return every component to its initial state."""
        self._ctx.session.reset()
        self._ctx.binding.reset()
        self._ctx.log.clear()
        self._clear_token_view()
        self._status = None
        if network_key is not None and network_key in self._ctx.registry:
            self._ctx.session.network_key = network_key
        return await self._publish_view()

    # ------------------------------------------------------------------
    # Contract flows
    # ------------------------------------------------------------------

    async def load_contract(self, address: str) -> str:
        binding = self._ctx.binding
        try:
            binding.load(address)
        except TokenDAppError as e:
            await self._report("Failed to load contract", e)
            raise
        self._clear_token_view()
        await self.refresh()
        binding.subscribe(self._on_contract_event)
        await self._emit_status("Contract loaded successfully!", Severity.SUCCESS)
        return binding.address or address

    async def refresh(self) -> ViewState:
        """Re-read token info and balance, then publish the view."""
        binding = self._ctx.binding
        session = self._ctx.session
        if not binding.loaded:
            return await self._publish_view()

        generation = binding.generation
        try:
            token = await binding.get_token_info()
            balance = None
            if session.connected and session.account:
                balance = await binding.get_balance(session.account)
        except ContractUnloadedError:
            logger.debug("Binding replaced during refresh, dropping results")
        except TokenDAppError as e:
            logger.error("Refresh failed [%s]: %s", e.kind.value, e.message)
            await self._emit_status(REFRESH_FAILED, Severity.ERROR)
        else:
            if generation == binding.generation:
                self.token = token
                self.balance = balance
        return await self._publish_view()

    async def check_allowance(self, spender: str) -> str:
        session = self._ctx.session
        try:
            if not session.connected or not session.account:
                raise WalletUnavailableError(
                    "Please connect wallet and enter a spender address."
                )
            amount = await self._ctx.binding.get_allowance(session.account, spender)
        except TokenDAppError as e:
            await self._report("Could not check allowance", e)
            raise
        self.allowance = AllowanceCheck(spender=spender, amount=amount)
        await self._publish_view()
        return amount

    async def _run_write(
        self,
        kind: TxKind,
        action: str,
        progress: str,
        submit: Callable[[], Awaitable[TxReceipt]],
    ) -> TransactionRecord:
        session = self._ctx.session
        try:
            if not session.connected:
                raise WalletUnavailableError("Connect a wallet first")
            network_key = session.network_key
            await self._emit_status(progress, Severity.INFO)
            receipt = await submit()
        except TokenDAppError as e:
            await self._report(f"{action} failed", e)
            raise

        record = TransactionRecord(
            kind=kind,
            tx_hash=receipt.transaction_hash,
            network_key=network_key,
            explorer_url=self._ctx.registry.explorer_tx_url(
                network_key, receipt.transaction_hash
            ),
        )
        self._ctx.log.append(record)
        await self.refresh()
        await self._emit_status(f"{action} successful!", Severity.SUCCESS)
        return record

    async def transfer(self, to: str, amount: str) -> TransactionRecord:
        return await self._run_write(
            TxKind.TRANSFER, "Transfer", "Sending transaction...",
            lambda: self._ctx.binding.transfer(to, amount),
        )

    async def approve(self, spender: str, amount: str) -> TransactionRecord:
        return await self._run_write(
            TxKind.APPROVAL, "Approval", "Sending approval...",
            lambda: self._ctx.binding.approve(spender, amount),
        )

    async def transfer_from(self, sender: str, to: str, amount: str) -> TransactionRecord:
        return await self._run_write(
            TxKind.TRANSFER_FROM, "Transfer From", "Executing transfer from...",
            lambda: self._ctx.binding.transfer_from(sender, to, amount),
        )

    async def burn(self, amount: str) -> TransactionRecord:
        return await self._run_write(
            TxKind.BURN, "Burn", "Burning tokens...",
            lambda: self._ctx.binding.burn(amount),
        )

    # ------------------------------------------------------------------
    # Event-driven paths
    # ------------------------------------------------------------------

    async def _on_contract_event(self, event: ContractEvent) -> None:
        logger.info("Contract event %s: %s", event.kind, event.fields)
        await self._emit_status(f"Event received: {event.kind}!", Severity.INFO)
        await self.refresh()

    async def on_account_changed(self, account: str) -> None:
        self.allowance = None
        await self.refresh()

    async def on_disconnected(self) -> None:
        self._ctx.binding.unsubscribe()
        self.balance = None
        self.allowance = None
        await self._emit_status("Wallet disconnected", Severity.INFO)
        await self._publish_view()

    async def on_chain_changed(self, chain_id: int) -> None:
        network = self._ctx.registry.by_chain_id(chain_id)
        await self.reset(network.key if network else None)
        name = network.name if network else f"chain {chain_id}"
        await self._emit_status(
            f"Wallet switched to {name}; reconnect to continue", Severity.INFO
        )
