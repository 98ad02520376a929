"""
Fixed-point money helpers.

Amounts cross the service boundary as ``Decimal`` and are stored as integer
minor units (pence for GBP). Floats are never accepted.
"""

from decimal import Decimal, Inexact, InvalidOperation, localcontext
from typing import Union

from .errors import InvalidAmountError

AmountLike = Union[Decimal, int, str]


def to_minor(amount: AmountLike, decimals: int = 2) -> int:
    """Convert a decimal amount to integer minor units without rounding."""
    if isinstance(amount, (bool, float)):
        raise InvalidAmountError(f"Amount must be a decimal, not {type(amount).__name__}")

    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, (int, str)):
        try:
            value = Decimal(amount)
        except InvalidOperation:
            raise InvalidAmountError(f"Amount {amount!r} is not a valid decimal")
    else:
        raise InvalidAmountError(f"Unsupported amount type {type(amount).__name__}")

    if not value.is_finite():
        raise InvalidAmountError(f"Amount {amount!r} is not finite")

    # Enough precision that scaling never rounds, whatever the magnitude
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + 1)
        ctx.traps[Inexact] = True
        try:
            scaled = value.scaleb(decimals)
        except Inexact:
            raise InvalidAmountError(f"Amount {value} cannot be represented exactly")
        if scaled != scaled.to_integral_value():
            raise InvalidAmountError(
                f"Amount {value} has more than {decimals} fractional digits"
            )
    return int(scaled)


def positive_minor(amount: AmountLike, decimals: int = 2) -> int:
    minor = to_minor(amount, decimals)
    if minor <= 0:
        raise InvalidAmountError(f"Amount must be greater than zero, got {amount}")
    return minor


def from_minor(minor: int, decimals: int = 2) -> Decimal:
    """Render integer minor units as a Decimal with exactly ``decimals`` places."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(str(abs(minor))) + decimals + 1)
        return Decimal(minor).scaleb(-decimals).quantize(Decimal(1).scaleb(-decimals))
