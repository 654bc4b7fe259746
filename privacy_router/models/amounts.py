"""Base-unit amounts and decimal-string conversion.

All arithmetic that crosses a pool or swap boundary happens on integer
base units. Decimal strings entered by a user or returned by a price
oracle are converted here and nowhere else.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

from privacy_router.errors import TransferValidationError
from privacy_router.safe_int import S

# Enough digits for any u64 amount at any supported precision
_PRECISION = 60


def to_base_units(amount: str, decimals: int) -> int:
    """Convert a decimal string to base units, truncating excess precision.

    Args:
        amount: Non-negative decimal string such as "1.25"
        decimals: Decimal places of the asset

    Returns:
        Integer count of base units

    Raises:
        TransferValidationError: If the string is not a finite non-negative
            number or the result does not fit in u64
    """
    if decimals < 0:
        raise TransferValidationError(f"Invalid decimal count: {decimals}")
    text = amount.strip() if isinstance(amount, str) else ""
    try:
        value = Decimal(text)
    except InvalidOperation as err:
        raise TransferValidationError(f"Invalid amount: {amount!r}") from err
    if not value.is_finite() or value < 0:
        raise TransferValidationError(f"Invalid amount: {amount!r}")

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        units = int(value.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))
    if not S(units).is_u64():
        raise TransferValidationError(f"Amount too large: {amount!r}")
    return units


def from_base_units(base_units: int, decimals: int) -> str:
    """Format base units as a canonical decimal string (no trailing zeros)."""
    if base_units < 0:
        raise TransferValidationError(f"Negative amount: {base_units}")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        text = format(Decimal(base_units).scaleb(-decimals), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


@dataclass(frozen=True)
class Amount:
    """An integer count of base units together with the asset precision."""

    base_units: int
    decimals: int

    def __post_init__(self) -> None:
        if self.base_units < 0:
            raise TransferValidationError(f"Amount cannot be negative: {self.base_units}")
        if self.decimals < 0:
            raise TransferValidationError(f"Invalid decimal count: {self.decimals}")

    @classmethod
    def from_decimal(cls, amount: str, decimals: int) -> Amount:
        return cls(to_base_units(amount, decimals), decimals)

    def to_decimal(self) -> str:
        return from_base_units(self.base_units, self.decimals)

    @property
    def is_zero(self) -> bool:
        return self.base_units == 0

    def __str__(self) -> str:
        return self.to_decimal()
