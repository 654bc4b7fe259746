"""Value types shared by fee solving, pool adapters and swap routing."""

from privacy_router.models.amounts import Amount, from_base_units, to_base_units
from privacy_router.models.assets import Asset, is_cross_chain, needs_swap
from privacy_router.models.types import BaseUnits, is_solana_address, validate_base_units

__all__ = [
    # Amounts
    "Amount",
    "to_base_units",
    "from_base_units",
    # Assets
    "Asset",
    "needs_swap",
    "is_cross_chain",
    # Wire types
    "BaseUnits",
    "validate_base_units",
    "is_solana_address",
]
