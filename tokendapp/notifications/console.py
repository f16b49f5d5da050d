"""Console view: renders refresh and status notifications as text."""
import logging
import sys
from typing import TextIO

from ..models import ConnectionState, Severity, StatusMessage, ViewState

logger = logging.getLogger(__name__)

_SEVERITY_ICONS = {
    Severity.INFO: "ℹ️",
    Severity.SUCCESS: "✅",
    Severity.ERROR: "🚨",
}


def format_view(view: ViewState) -> str:
    """Multi-line summary of the current view model."""
    if view.connection is ConnectionState.CONNECTED:
        wallet = f"Wallet: {view.short_account}"
    else:
        wallet = f"Wallet: {view.connection.value}"

    lines = [f"📊 {view.network_name} ({view.network_key})", wallet]

    if view.contract_address is None:
        lines.append("Contract: none loaded")
    else:
        lines.append(f"Contract: {view.contract_address}")

    if view.token is not None:
        token = view.token
        lines.append(f"Token: {token.name} ({token.symbol}) · {token.decimals} decimals")
        lines.append(f"Total supply: {token.total_supply} {token.symbol}")
        if view.balance is not None:
            lines.append(f"Balance: {view.balance} {token.symbol}")

    if view.allowance is not None:
        lines.append(f"Allowance for {view.allowance.spender}: {view.allowance.amount}")

    if view.transactions:
        lines.append("Recent transactions:")
        for record in view.transactions:
            link = record.explorer_url or record.tx_hash
            lines.append(f"  {record.kind.value}: {record.short_hash}  {link}")

    return "\n".join(lines)


def format_status(status: StatusMessage) -> str:
    return f"{_SEVERITY_ICONS.get(status.severity, '')} {status.text}".strip()


class ConsoleView:
    """Write notifications to a text stream."""

    def __init__(self, stream: TextIO | None = None, show_refresh: bool = True) -> None:
        self.stream = stream or sys.stdout
        self.show_refresh = show_refresh
        self.last_view: ViewState | None = None

    async def on_refresh(self, view: ViewState) -> None:
        self.last_view = view
        if self.show_refresh:
            print(format_view(view), file=self.stream)
            print(file=self.stream)

    async def on_status(self, status: StatusMessage) -> None:
        logger.debug("Status [%s]: %s", status.severity.value, status.text)
        print(format_status(status), file=self.stream)
