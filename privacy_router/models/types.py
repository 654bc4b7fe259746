"""Shared annotated types for wire models.

Amounts travel over the swap and pool APIs as decimal integer strings of
base units; these validators accept either form and enforce the u64 range.
"""

import re
from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from privacy_router.safe_int import S

# Solana base58 public key (32 bytes encodes to 32-44 chars)
_BASE58_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def validate_base_units(value: Any) -> str:
    """Validate a non-negative base-unit amount that fits in u64.

    Args:
        value: Value to validate (string or int)

    Returns:
        The amount as a decimal string

    Raises:
        ValueError: If value is not a non-negative integer within u64 range
    """
    if isinstance(value, bool):
        raise ValueError("Base units cannot be a boolean")
    if isinstance(value, int):
        int_value = value
    elif isinstance(value, str):
        try:
            int_value = int(value)
        except ValueError as err:
            raise ValueError(f"Base units must be a decimal integer string: '{value}'") from err
    else:
        raise ValueError(f"Base units must be string or int, got {type(value).__name__}")

    if int_value < 0:
        raise ValueError(f"Base units cannot be negative: {value}")
    if not S(int_value).is_u64():
        raise ValueError(f"Base units overflow: {value} > 2^64-1")
    return str(int_value)


# Base-unit amount as decimal string (validated)
BaseUnits = Annotated[
    str,
    BeforeValidator(validate_base_units),
    Field(description="Amount in indivisible base units as decimal string"),
]


def is_solana_address(address: str) -> bool:
    """Check that a string has the shape of a base58 Solana public key."""
    return isinstance(address, str) and _BASE58_RE.match(address) is not None
