"""Protocol interfaces for the wallet provider, contract transport and view."""
from .transport import ContractTransport, PendingTransaction
from .view import ViewListener
from .wallet import Subscription, WalletProvider

__all__ = [
    "ContractTransport",
    "PendingTransaction",
    "Subscription",
    "ViewListener",
    "WalletProvider",
]
