"""Wallet-session / ERC-20 contract binding controller."""

__version__ = "0.1.0"
