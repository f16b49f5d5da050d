"""Shared test fixtures and in-memory provider/transport doubles."""
from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any

import pytest

from tokendapp.config import DEFAULT_NETWORKS, AppConfig, UiConfig
from tokendapp.models import StatusMessage, TxReceipt, ViewState
from tokendapp.networks import NetworkRegistry
from tokendapp.services import DAppContext, Orchestrator

ACCOUNT = "0xaa00000000000000000000000000000000000001"
OTHER_ACCOUNT = "0xaa00000000000000000000000000000000000002"
SPENDER = "0xbb00000000000000000000000000000000000003"
TOKEN_A = "0x90ec07444b1a6b0a055561566418e44b1b6ce889"
TOKEN_B = "0x5fbdb2315678afecb367f032d93f642f64180aa3"

SEPOLIA_CHAIN_ID = 11155111
LOCALHOST_CHAIN_ID = 31337

TX_HASH = "0x" + "ab" * 32


# ---------------------------------------------------------------------------
# Doubles
# ---------------------------------------------------------------------------


class FakeSubscription:
    def __init__(self, owner: list, event: str, callback: Any) -> None:
        self._owner = owner
        self.event = event
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True
        if self in self._owner:
            self._owner.remove(self)


class FakeWalletProvider:
    """Scriptable stand-in for an injected wallet."""

    def __init__(self, accounts: list[str] | None = None, chain_id: int = SEPOLIA_CHAIN_ID) -> None:
        self.accounts = list(accounts) if accounts is not None else [ACCOUNT]
        self.authorized = False
        self.chain_id = chain_id
        self.request_error: Exception | None = None
        self.switch_error: Exception | None = None
        # When set, chainChanged is emitted for this chain before the switch returns.
        self.switch_announces: int | None = None
        self.switch_requests: list[int] = []
        self.listeners: list[FakeSubscription] = []

    async def request_accounts(self) -> list[str]:
        if self.request_error is not None:
            raise self.request_error
        self.authorized = True
        return list(self.accounts)

    async def get_accounts(self) -> list[str]:
        return list(self.accounts) if self.authorized else []

    async def get_chain_id(self) -> int:
        return self.chain_id

    async def request_chain_switch(self, chain_id: int) -> None:
        self.switch_requests.append(chain_id)
        if self.switch_error is not None:
            raise self.switch_error
        if self.switch_announces is not None:
            await self.emit("chainChanged", hex(self.switch_announces))
        self.chain_id = chain_id

    def on(self, event: str, callback: Any) -> FakeSubscription:
        sub = FakeSubscription(self.listeners, event, callback)
        self.listeners.append(sub)
        return sub

    async def emit(self, event: str, payload: Any) -> None:
        for sub in list(self.listeners):
            if sub.event == event and not sub.cancelled:
                await sub.callback(payload)


class FakePendingTransaction:
    def __init__(self, tx_hash: str, status: int = 1, error: Exception | None = None) -> None:
        self._tx_hash = tx_hash
        self._status = status
        self._error = error

    @property
    def tx_hash(self) -> str:
        return self._tx_hash

    async def await_finality(self) -> TxReceipt:
        if self._error is not None:
            raise self._error
        return TxReceipt(transaction_hash=self._tx_hash, status=self._status, block_number=7)


class FakeTransport:
    """Contract reads served from per-address tables.

    A table value may be a plain value, an exception to raise, or a
    callable taking the call arguments.
    """

    def __init__(self) -> None:
        self.contracts: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str, tuple]] = []
        self.sent: list[tuple[str, str, tuple]] = []
        self.send_error: Exception | None = None
        self.receipt_status = 1
        self.finality_error: Exception | None = None
        self.subscriptions: list[FakeSubscription] = []

    def add_token(
        self,
        address: str,
        name: str = "MyToken",
        symbol: str = "MTK",
        decimals: int = 18,
        total_supply: int = 1_000_000 * 10**18,
        balances: dict[str, int] | None = None,
        allowances: dict[tuple[str, str], int] | None = None,
    ) -> dict[str, Any]:
        balances = {k.lower(): v for k, v in (balances or {}).items()}
        allowances = {(o.lower(), s.lower()): v for (o, s), v in (allowances or {}).items()}
        table: dict[str, Any] = {
            "name": name,
            "symbol": symbol,
            "decimals": decimals,
            "totalSupply": total_supply,
            "balanceOf": lambda args: balances.get(args[0].lower(), 0),
            "allowance": lambda args: allowances.get((args[0].lower(), args[1].lower()), 0),
        }
        self.contracts[address.lower()] = table
        return table

    async def call(self, address: str, function: str, args: Any = ()) -> Any:
        self.calls.append((address, function, tuple(args)))
        value = self.contracts[address.lower()][function]
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value(list(args))
        return value

    async def send(self, address: str, function: str, args: Any = ()) -> FakePendingTransaction:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((address, function, tuple(args)))
        return FakePendingTransaction(TX_HASH, self.receipt_status, self.finality_error)

    def subscribe(self, address: str, event: str, callback: Any) -> FakeSubscription:
        sub = FakeSubscription(self.subscriptions, event, callback)
        sub.address = address  # type: ignore[attr-defined]
        self.subscriptions.append(sub)
        return sub

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        for sub in list(self.subscriptions):
            if sub.event == event:
                sub.callback(payload)


class RecordingView:
    def __init__(self) -> None:
        self.views: list[ViewState] = []
        self.statuses: list[StatusMessage] = []

    async def on_refresh(self, view: ViewState) -> None:
        self.views.append(view)

    async def on_status(self, status: StatusMessage) -> None:
        self.statuses.append(status)

    @property
    def status_texts(self) -> list[str]:
        return [s.text for s in self.statuses]


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def app_config() -> AppConfig:
    return AppConfig(
        default_network="sepolia",
        networks=dict(DEFAULT_NETWORKS),
        contracts={"sepolia": TOKEN_A, "localhost": "", "mainnet": ""},
        ui=UiConfig(status_ttl_seconds=5.0, history_capacity=10),
    )


@pytest.fixture()
def registry(app_config: AppConfig) -> NetworkRegistry:
    return NetworkRegistry(app_config.networks)


@pytest.fixture()
def provider() -> FakeWalletProvider:
    return FakeWalletProvider()


@pytest.fixture()
def transport() -> FakeTransport:
    t = FakeTransport()
    t.add_token(TOKEN_A, balances={ACCOUNT: 1_500_000_000_000_000_000})
    t.add_token(
        TOKEN_B, name="Other", symbol="OTH", decimals=6, total_supply=5_000_000,
        balances={ACCOUNT: 2_500_000},
    )
    return t


@pytest.fixture()
def context(
    app_config: AppConfig, provider: FakeWalletProvider, transport: FakeTransport
) -> DAppContext:
    return DAppContext.create(app_config, provider, transport)


@pytest.fixture()
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def orchestrator(
    context: DAppContext, app_config: AppConfig, view: RecordingView, clock: FakeClock
) -> Orchestrator:
    return Orchestrator(context, app_config, [view], clock=clock)


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    default_network: localhost
    networks:
      localhost:
        chain_id: "0x7a69"
        name: Local Anvil
        rpc_urls: ["http://127.0.0.1:8545"]
        native_currency: {name: ETH, symbol: ETH, decimals: 18}
      sepolia:
        chain_id: 11155111
        name: Sepolia Testnet
        rpc_urls: ["https://rpc.sepolia.org"]
        block_explorer_urls: ["https://sepolia.etherscan.io"]
    contracts:
      localhost: "0x5FbDB2315678afecb367f032d93F642f64180aa3"
      sepolia: ""
    provider:
      rpc_endpoints: ["http://127.0.0.1:8545", "http://127.0.0.1:8546"]
      rpc_timeout: 10
    transactions:
      receipt_timeout: 60
    ui:
      status_ttl_seconds: 3
      history_capacity: 5
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
