"""Privacy pool providers."""

from privacy_router.pools.base import (
    PoolBalance,
    PoolCapability,
    PoolKind,
    PoolReceipt,
    PoolStage,
    PoolStatus,
    PrivacyPoolProvider,
    StatusCallback,
    TransferCapable,
    TransferType,
    describe_capability,
)
from privacy_router.pools.blinded import BlindedPoolProvider
from privacy_router.pools.blinded_api import BlindedPoolApi, BlindedPoolApiError
from privacy_router.pools.shielded import (
    ShieldedFeeConfig,
    ShieldedPoolClient,
    ShieldedPoolProvider,
)

__all__ = [
    "PoolBalance",
    "PoolCapability",
    "PoolKind",
    "PoolReceipt",
    "PoolStage",
    "PoolStatus",
    "PrivacyPoolProvider",
    "StatusCallback",
    "TransferCapable",
    "TransferType",
    "describe_capability",
    "BlindedPoolApi",
    "BlindedPoolApiError",
    "BlindedPoolProvider",
    "ShieldedFeeConfig",
    "ShieldedPoolClient",
    "ShieldedPoolProvider",
]
