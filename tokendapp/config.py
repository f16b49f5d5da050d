"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from eth_utils import is_address

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.yaml"
RPC_URL_ENV = "TOKENDAPP_RPC_URL"

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NativeCurrency:
    name: str = "Ether"
    symbol: str = "ETH"
    decimals: int = 18


@dataclass(frozen=True)
class NetworkConfig:
    key: str
    chain_id: int
    name: str = ""
    rpc_urls: tuple[str, ...] = ()
    block_explorer_url: str | None = None
    native_currency: NativeCurrency = field(default_factory=NativeCurrency)

    @property
    def chain_id_hex(self) -> str:
        return hex(self.chain_id)


@dataclass(frozen=True)
class ProviderConfig:
    rpc_endpoints: tuple[str, ...] = ("http://127.0.0.1:8545",)
    rpc_timeout: int = 30
    poll_interval: float = 2.0


@dataclass(frozen=True)
class TransactionsConfig:
    receipt_timeout: float = 120.0
    poll_interval: float = 2.0


@dataclass(frozen=True)
class EventsConfig:
    poll_interval: float = 4.0


@dataclass(frozen=True)
class UiConfig:
    status_ttl_seconds: float = 5.0
    history_capacity: int = 10


DEFAULT_NETWORKS: dict[str, NetworkConfig] = {
    "sepolia": NetworkConfig(
        key="sepolia",
        chain_id=11155111,
        name="Sepolia Testnet",
        rpc_urls=("https://rpc.sepolia.org",),
        block_explorer_url="https://sepolia.etherscan.io",
        native_currency=NativeCurrency(name="Sepolia ETH", symbol="ETH", decimals=18),
    ),
    "localhost": NetworkConfig(
        key="localhost",
        chain_id=31337,
        name="Local Anvil",
        rpc_urls=("http://127.0.0.1:8545",),
        native_currency=NativeCurrency(name="ETH", symbol="ETH", decimals=18),
    ),
    "mainnet": NetworkConfig(
        key="mainnet",
        chain_id=1,
        name="Ethereum Mainnet",
        rpc_urls=("https://ethereum-rpc.publicnode.com",),
        block_explorer_url="https://etherscan.io",
        native_currency=NativeCurrency(name="Ether", symbol="ETH", decimals=18),
    ),
}

DEFAULT_CONTRACTS: dict[str, str] = {
    "sepolia": "0x90EC07444b1A6B0A055561566418e44b1b6Ce889",
    "localhost": "",
    "mainnet": "",
}


@dataclass(frozen=True)
class AppConfig:
    default_network: str = "sepolia"
    networks: dict[str, NetworkConfig] = field(
        default_factory=lambda: dict(DEFAULT_NETWORKS)
    )
    contracts: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_CONTRACTS))
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    transactions: TransactionsConfig = field(default_factory=TransactionsConfig)
    events: EventsConfig = field(default_factory=EventsConfig)
    ui: UiConfig = field(default_factory=UiConfig)

    def default_contract(self, network_key: str) -> str | None:
        """Configured contract address for a network, None when unset."""
        return self.contracts.get(network_key) or None


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _parse_chain_id(raw: Any) -> int:
    """Accept 11155111, "11155111" or "0xaa36a7"."""
    if isinstance(raw, int):
        return raw
    return int(str(raw), 0)


def _build_native_currency(raw: dict[str, Any]) -> NativeCurrency:
    return NativeCurrency(
        name=raw.get("name", "Ether"),
        symbol=raw.get("symbol", "ETH"),
        decimals=int(raw.get("decimals", 18)),
    )


def _build_networks(raw: dict[str, Any]) -> dict[str, NetworkConfig]:
    networks: dict[str, NetworkConfig] = {}
    for key, cfg in raw.items():
        explorers = cfg.get("block_explorer_urls") or []
        explorer = cfg.get("block_explorer_url") or (explorers[0] if explorers else None)
        networks[key] = NetworkConfig(
            key=key,
            chain_id=_parse_chain_id(cfg.get("chain_id", 0)),
            name=cfg.get("name", key),
            rpc_urls=tuple(cfg.get("rpc_urls", [])),
            block_explorer_url=explorer or None,
            native_currency=_build_native_currency(cfg.get("native_currency", {})),
        )
    return networks


def _build_provider(raw: dict[str, Any]) -> ProviderConfig:
    endpoints = tuple(raw.get("rpc_endpoints", ProviderConfig.rpc_endpoints))
    override = os.environ.get(RPC_URL_ENV)
    if override:
        endpoints = (override,)
    return ProviderConfig(
        rpc_endpoints=endpoints,
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        poll_interval=float(raw.get("poll_interval", 2.0)),
    )


def _build_transactions(raw: dict[str, Any]) -> TransactionsConfig:
    return TransactionsConfig(
        receipt_timeout=float(raw.get("receipt_timeout", 120.0)),
        poll_interval=float(raw.get("poll_interval", 2.0)),
    )


def _build_events(raw: dict[str, Any]) -> EventsConfig:
    return EventsConfig(poll_interval=float(raw.get("poll_interval", 4.0)))


def _build_ui(raw: dict[str, Any]) -> UiConfig:
    return UiConfig(
        status_ttl_seconds=float(raw.get("status_ttl_seconds", 5.0)),
        history_capacity=int(raw.get("history_capacity", 10)),
    )


def _build_config(raw: dict[str, Any]) -> AppConfig:
    networks = (
        _build_networks(raw["networks"]) if raw.get("networks") else dict(DEFAULT_NETWORKS)
    )
    contracts_raw = raw.get("contracts")
    if contracts_raw is None:
        contracts = {k: v for k, v in DEFAULT_CONTRACTS.items() if k in networks}
    else:
        contracts = {k: (v or "") for k, v in contracts_raw.items()}

    return AppConfig(
        default_network=raw.get("default_network", "sepolia"),
        networks=networks,
        contracts=contracts,
        provider=_build_provider(raw.get("provider", {})),
        transactions=_build_transactions(raw.get("transactions", {})),
        events=_build_events(raw.get("events", {})),
        ui=_build_ui(raw.get("ui", {})),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. When omitted, ``config.yaml`` in the
            working directory is used if present, otherwise the built-in
            network table.
    """
    load_dotenv()

    if config_path is None:
        candidate = Path.cwd() / DEFAULT_CONFIG_FILE
        if not candidate.exists():
            cfg = _build_config({})
            _validate(cfg)
            logger.info("No %s found, using built-in networks", DEFAULT_CONFIG_FILE)
            return cfg
        config_path = candidate
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = _build_config(raw)
    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.networks:
        raise ValueError("At least one network must be configured")

    if cfg.default_network not in cfg.networks:
        raise ValueError(f"Default network '{cfg.default_network}' is not configured")

    for key, network in cfg.networks.items():
        if network.chain_id <= 0:
            raise ValueError(f"Network '{key}' has no chain_id")

    for key, address in cfg.contracts.items():
        if key not in cfg.networks:
            raise ValueError(f"Contract address references unknown network '{key}'")
        if address and not is_address(address):
            raise ValueError(f"Contract address for '{key}' is not a valid address")

    if cfg.ui.history_capacity < 1:
        raise ValueError("ui.history_capacity must be at least 1")
