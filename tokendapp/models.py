"""Data models: all frozen (immutable)."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class TxKind(str, Enum):
    TRANSFER = "Transfer"
    APPROVAL = "Approval"
    TRANSFER_FROM = "TransferFrom"
    BURN = "Burn"


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


def short_address(address: str) -> str:
    """Shorten an address for display, e.g. '0x1234...abcd'."""
    if len(address) > 10:
        return f"{address[:6]}...{address[-4:]}"
    return address


@dataclass(frozen=True)
class TransactionRecord:
    """A submitted transaction, as shown in the history list."""

    kind: TxKind
    tx_hash: str
    network_key: str
    explorer_url: str | None = None

    @property
    def short_hash(self) -> str:
        if len(self.tx_hash) > 18:
            return f"{self.tx_hash[:10]}...{self.tx_hash[-8:]}"
        return self.tx_hash


@dataclass(frozen=True)
class StatusMessage:
    """Transient status line; superseded by the next one or expired."""

    text: str
    severity: Severity
    expires_at: float

    def is_expired(self, now: float | None = None) -> bool:
        if now is None:
            now = time.time()
        return now >= self.expires_at


@dataclass(frozen=True)
class TokenInfo:
    name: str
    symbol: str
    decimals: int
    total_supply: str


@dataclass(frozen=True)
class TxReceipt:
    """Receipt of a transaction included in a block."""

    transaction_hash: str
    status: int = 1
    block_number: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass(frozen=True)
class ContractEvent:
    """Uniform shape for Transfer/Approval events.

    ``fields`` holds ``from``/``to``/``value`` for transfers and
    ``owner``/``spender``/``value`` for approvals; ``value`` is in base units.
    """

    kind: str
    fields: dict[str, Any] = field(default_factory=dict)
    tx_hash: str | None = None
    block_number: int | None = None


@dataclass(frozen=True)
class AllowanceCheck:
    spender: str
    amount: str


@dataclass(frozen=True)
class ViewState:
    """Snapshot handed to the UI on every refresh."""

    connection: ConnectionState
    account: str | None
    network_key: str
    network_name: str
    contract_address: str | None = None
    token: TokenInfo | None = None
    balance: str | None = None
    allowance: AllowanceCheck | None = None
    transactions: tuple[TransactionRecord, ...] = ()
    status: StatusMessage | None = None

    @property
    def short_account(self) -> str | None:
        return short_address(self.account) if self.account else None
