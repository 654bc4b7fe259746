"""Asset identity and swap route classification."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Asset:
    """A transferable asset as known to the swap network.

    Attributes:
        asset_id: Swap-network identifier (e.g. "nep141:sol.omft.near")
        symbol: Ticker used for price lookups (e.g. "SOL")
        blockchain: Settlement network short name (e.g. "sol", "eth")
        decimals: Decimal places of one whole unit
    """

    asset_id: str
    symbol: str
    blockchain: str
    decimals: int

    @property
    def label(self) -> str:
        """Display label in SYMBOL:chain form."""
        return f"{self.symbol}:{self.blockchain}"

    def same_asset(self, other: Asset) -> bool:
        """True if both refer to the same asset on the same network."""
        if self.asset_id and other.asset_id:
            return self.asset_id == other.asset_id
        return self.symbol == other.symbol and self.blockchain == other.blockchain


def needs_swap(pool_asset: Asset, other: Asset) -> bool:
    """A leg needs the swap network unless it moves the pool's own asset."""
    return not pool_asset.same_asset(other)


def is_cross_chain(pool_asset: Asset, other: Asset) -> bool:
    """True when the other asset settles on a different network than the pool."""
    return pool_asset.blockchain != other.blockchain
