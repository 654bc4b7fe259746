"""Well-known assets and protocol parameters.

Centralizes the pool-native assets and the swap-network identifiers they map to.
"""

from privacy_router.models.assets import Asset

# Pool-native assets as the swap network identifies them
SOL = Asset(asset_id="nep141:sol.omft.near", symbol="SOL", blockchain="sol", decimals=9)

# Shielded pool withdrawal fee schedule when the relayer does not report one
DEFAULT_SHIELDED_WITHDRAW_FEE_RATE = "0.0035"
DEFAULT_SHIELDED_WITHDRAW_RENT_FEE = 6_000_000  # 0.006 SOL

# Blinded pool fee rates by token (0.005 = 0.5%)
BLINDED_POOL_FEE_RATES = {
    "SOL": "0.005",
    "RADR": "0.003",
    "USDC": "0.005",
}
BLINDED_POOL_DEFAULT_FEE_RATE = "0.01"
