"""Unit tests for the error hierarchy."""
from __future__ import annotations

import pytest

from tokendapp import errors
from tokendapp.errors import ErrorKind, ProviderRpcError, TokenDAppError


class TestErrorKinds:
    @pytest.mark.parametrize(
        "cls, kind",
        [
            (errors.WalletUnavailableError, ErrorKind.WALLET_UNAVAILABLE),
            (errors.UserRejectedError, ErrorKind.USER_REJECTED),
            (errors.UnknownNetworkError, ErrorKind.UNKNOWN_NETWORK),
            (errors.UnsupportedChainError, ErrorKind.UNSUPPORTED_CHAIN),
            (errors.InvalidAddressError, ErrorKind.INVALID_ADDRESS),
            (errors.InvalidAmountError, ErrorKind.INVALID_AMOUNT),
            (errors.ContractUnloadedError, ErrorKind.CONTRACT_UNLOADED),
            (errors.ReadFailedError, ErrorKind.READ_FAILED),
            (errors.TransactionRejectedError, ErrorKind.TRANSACTION_REJECTED),
            (errors.TransactionFailedError, ErrorKind.TRANSACTION_FAILED),
        ],
    )
    def test_kind(self, cls: type[TokenDAppError], kind: ErrorKind) -> None:
        err = cls("boom")
        assert isinstance(err, TokenDAppError)
        assert err.kind is kind
        assert err.message == "boom"
        assert str(err) == "boom"


class TestProviderRpcError:
    def test_fields(self) -> None:
        err = ProviderRpcError(errors.USER_REJECTED, "User denied", {"x": 1})
        assert err.code == 4001
        assert err.message == "User denied"
        assert err.data == {"x": 1}
        assert "4001" in str(err)

    def test_not_a_domain_error(self) -> None:
        assert not isinstance(ProviderRpcError(1, "x"), TokenDAppError)
