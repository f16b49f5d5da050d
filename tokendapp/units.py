"""Conversion between human decimal strings and integer base units.

Pure integer arithmetic, no floats anywhere: token amounts routinely exceed
2**53. ``to_base_units`` refuses to round; an amount that cannot be expressed
exactly with ``decimals`` fractional digits is an error.
"""
from __future__ import annotations

import re

from .errors import InvalidAmountError

_AMOUNT_RE = re.compile(r"^(?P<whole>[0-9]*)(?:\.(?P<frac>[0-9]*))?$")

MAX_UINT256 = 2**256 - 1
_MAX_WHOLE_DIGITS = len(str(MAX_UINT256))


def _check_decimals(decimals: int) -> None:
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise ValueError(f"decimals must be a non-negative integer, got {decimals!r}")


def to_base_units(amount: str, decimals: int) -> int:
    """Parse a decimal string and scale it by ``10**decimals``.

    Examples:
        to_base_units("1.5", 18) → 1500000000000000000
        to_base_units("0.001", 2) → InvalidAmountError
    """
    _check_decimals(decimals)
    if not isinstance(amount, str):
        raise InvalidAmountError(f"Amount must be a string, got {type(amount).__name__}")

    text = amount.strip()
    if text.startswith("-"):
        raise InvalidAmountError(f"Amount must not be negative: {amount!r}")

    match = _AMOUNT_RE.match(text)
    if match is None:
        raise InvalidAmountError(f"Invalid amount: {amount!r}")

    whole = match.group("whole")
    frac = match.group("frac") or ""
    if not whole and not frac:
        raise InvalidAmountError(f"Invalid amount: {amount!r}")

    # Zeros past the token's precision carry no value.
    frac = frac.rstrip("0")
    if len(frac) > decimals:
        raise InvalidAmountError(
            f"Amount {amount!r} has more than {decimals} fractional digits"
        )

    whole = whole.lstrip("0")
    if len(whole) > _MAX_WHOLE_DIGITS:
        raise InvalidAmountError(f"Amount exceeds the uint256 range: {amount[:32]!r}...")

    value = int(whole or "0") * 10**decimals + int(frac.ljust(decimals, "0") or "0")
    if value > MAX_UINT256:
        raise InvalidAmountError(f"Amount exceeds the uint256 range: {amount!r}")
    return value


def to_human_units(value: int, decimals: int) -> str:
    """Format base units as a decimal string without trailing zeros.

    Examples:
        to_human_units(1500000000000000000, 18) → "1.5"
        to_human_units(0, 6) → "0"
    """
    _check_decimals(decimals)
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"value must be an int, got {type(value).__name__}")

    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10**decimals)
    frac_text = str(frac).rjust(decimals, "0").rstrip("0") if decimals else ""
    if frac_text:
        return f"{sign}{whole}.{frac_text}"
    return f"{sign}{whole}"
