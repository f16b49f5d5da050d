"""Typed failures raised by the session/binding layer.

Every provider or transport failure is re-raised as one of the
``TokenDAppError`` subclasses below so callers can branch on ``kind``.
``ProviderRpcError`` is the boundary type the wallet provider and the
contract transport raise; it carries an EIP-1193 / JSON-RPC error code.
"""
from __future__ import annotations

from enum import Enum

# EIP-1193 provider error codes
USER_REJECTED = 4001
UNAUTHORIZED = 4100
UNSUPPORTED_METHOD = 4200
DISCONNECTED = 4900
CHAIN_DISCONNECTED = 4901
UNRECOGNIZED_CHAIN = 4902

# JSON-RPC 2.0
METHOD_NOT_FOUND = -32601


class ErrorKind(str, Enum):
    WALLET_UNAVAILABLE = "WalletUnavailable"
    USER_REJECTED = "UserRejected"
    UNKNOWN_NETWORK = "UnknownNetwork"
    UNSUPPORTED_CHAIN = "UnsupportedChain"
    INVALID_ADDRESS = "InvalidAddress"
    INVALID_AMOUNT = "InvalidAmount"
    CONTRACT_UNLOADED = "ContractUnloaded"
    READ_FAILED = "ReadFailed"
    TRANSACTION_REJECTED = "TransactionRejected"
    TRANSACTION_FAILED = "TransactionFailed"


class ProviderRpcError(Exception):
    """Error reported by a wallet provider or JSON-RPC endpoint."""

    def __init__(self, code: int, message: str, data: object = None) -> None:
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message
        self.data = data


class TokenDAppError(Exception):
    """Base class for every failure surfaced to the orchestrator."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class WalletUnavailableError(TokenDAppError):
    kind = ErrorKind.WALLET_UNAVAILABLE


class UserRejectedError(TokenDAppError):
    kind = ErrorKind.USER_REJECTED


class UnknownNetworkError(TokenDAppError):
    kind = ErrorKind.UNKNOWN_NETWORK


class UnsupportedChainError(TokenDAppError):
    kind = ErrorKind.UNSUPPORTED_CHAIN


class InvalidAddressError(TokenDAppError):
    kind = ErrorKind.INVALID_ADDRESS


class InvalidAmountError(TokenDAppError):
    kind = ErrorKind.INVALID_AMOUNT


class ContractUnloadedError(TokenDAppError):
    kind = ErrorKind.CONTRACT_UNLOADED


class ReadFailedError(TokenDAppError):
    kind = ErrorKind.READ_FAILED


class TransactionRejectedError(TokenDAppError):
    kind = ErrorKind.TRANSACTION_REJECTED


class TransactionFailedError(TokenDAppError):
    kind = ErrorKind.TRANSACTION_FAILED
