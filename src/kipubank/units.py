from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Union

WEI_PER_ETHER = 10**18
_DECIMALS = 18


def parse_ether(value: Union[str, int, Decimal]) -> int:
    """Convert a decimal ether amount (e.g. "0.5") into integer wei.

    Raises ValueError for non-numeric input or more than 18 fractional digits.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid ether amount: {value!r}")
    try:
        dec = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"invalid ether amount: {value!r}") from None
    if not dec.is_finite():
        raise ValueError(f"invalid ether amount: {value!r}")
    # Integer arithmetic on the digits; Decimal context precision would round.
    sign, digits, exponent = dec.as_tuple()
    coeff = int("".join(str(d) for d in digits) or "0")
    shift = int(exponent) + _DECIMALS
    if shift >= 0:
        wei = coeff * 10**shift
    else:
        wei, rem = divmod(coeff, 10 ** (-shift))
        if rem:
            raise ValueError(f"too many decimals for ether amount: {value!r}")
    return -wei if sign else wei


def format_ether(wei: int) -> str:
    """Render wei as an ether string, always with a fractional part ("1000.0")."""
    whole, frac = divmod(abs(int(wei)), WEI_PER_ETHER)
    sign = "-" if int(wei) < 0 else ""
    frac_str = str(frac).rjust(_DECIMALS, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{frac_str}"


def to_ether_float(wei: int) -> float:
    """Lossy float view of a wei amount, for metrics and reports only."""
    return int(wei) / WEI_PER_ETHER
