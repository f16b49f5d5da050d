"""Wallet session state machine."""
from .session import SessionListener, WalletSession

__all__ = ["SessionListener", "WalletSession"]
