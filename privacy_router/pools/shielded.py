"""Shielded pool adapter.

The shielded pool accepts deposits from the caller's wallet and releases
withdrawals against a zero-knowledge proof produced by its own client
library; no further wallet signature is involved. Its fee schedule is a
percentage rate plus a fixed rent surcharge, published by the relayer.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

import structlog

from privacy_router.constants import (
    DEFAULT_SHIELDED_WITHDRAW_FEE_RATE,
    DEFAULT_SHIELDED_WITHDRAW_RENT_FEE,
    SOL,
)
from privacy_router.errors import PrivacyRouterError, SettlementError
from privacy_router.fees.models import RateFixedFeeModel
from privacy_router.log import short
from privacy_router.models.assets import Asset
from privacy_router.pools.base import (
    PoolBalance,
    PoolCapability,
    PoolReceipt,
    PoolStage,
    StatusCallback,
    StatusReporter,
    describe_capability,
    validate_amount,
    validate_recipient,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class ShieldedFeeConfig:
    """Withdrawal fee schedule of the shielded pool.

    Attributes:
        withdraw_fee_rate: Percentage of the gross amount (0.0035 = 0.35%)
        withdraw_rent_fee: Fixed surcharge in base units
        minimum_withdrawal: Smallest gross withdrawal accepted (0 = no floor
            beyond the rent fee)
    """

    withdraw_fee_rate: Decimal = Decimal(DEFAULT_SHIELDED_WITHDRAW_FEE_RATE)
    withdraw_rent_fee: int = DEFAULT_SHIELDED_WITHDRAW_RENT_FEE
    minimum_withdrawal: int = 0


class ShieldedPoolClient(Protocol):
    """Client library of the shielded pool (proof generation and relaying).

    Each call resolves once its transaction is confirmed and returns the
    transaction signature.
    """

    async def deposit(self, base_units: int) -> str:
        ...

    async def withdraw(self, base_units: int, recipient: str) -> str:
        ...

    async def private_balance(self) -> int:
        ...

    async def fee_config(self) -> ShieldedFeeConfig:
        ...


class ShieldedPoolProvider:
    """PrivacyPoolProvider for the shielded pool."""

    def __init__(self, client: ShieldedPoolClient, asset: Asset = SOL, name: str = "shielded") -> None:
        self._client = client
        self.capability: PoolCapability = describe_capability(
            self,
            name=name,
            native_asset=asset,
            requires_wallet_signature=False,
        )

    @property
    def native_asset(self) -> Asset:
        return self.capability.native_asset

    async def fee_model(self) -> RateFixedFeeModel:
        """Build a fee model from the relayer's current schedule."""
        config = await self._client.fee_config()
        return RateFixedFeeModel(
            rate=config.withdraw_fee_rate,
            fixed_fee=config.withdraw_rent_fee,
            minimum_gross=config.minimum_withdrawal or None,
        )

    async def fund(self, amount: int, on_status: StatusCallback | None = None) -> PoolReceipt:
        validate_amount(amount)
        report = StatusReporter(on_status, self.capability.name, "fund")
        report(PoolStage.PREPARING)
        try:
            report(PoolStage.SUBMITTING)
            tx_hash = await self._client.deposit(amount)
            report(PoolStage.CONFIRMING, tx_hash)
        except PrivacyRouterError as err:
            report.failed(str(err))
            raise
        except Exception as err:
            report.failed(str(err))
            raise SettlementError(f"Shielded deposit failed: {err}") from err

        report(PoolStage.COMPLETED, tx_hash)
        logger.info("pool_funded", pool=self.capability.name, amount=amount, tx=short(tx_hash))
        return PoolReceipt(tx_hash=tx_hash, amount=amount)

    async def withdraw(
        self,
        destination_address: str,
        amount: int,
        on_status: StatusCallback | None = None,
    ) -> PoolReceipt:
        validate_amount(amount)
        validate_recipient(destination_address)
        report = StatusReporter(on_status, self.capability.name, "withdraw")
        report(PoolStage.PREPARING)
        try:
            report(PoolStage.SUBMITTING)
            tx_hash = await self._client.withdraw(amount, destination_address)
            report(PoolStage.CONFIRMING, tx_hash)
        except PrivacyRouterError as err:
            report.failed(str(err))
            raise
        except Exception as err:
            report.failed(str(err))
            raise SettlementError(f"Shielded withdrawal failed: {err}") from err

        report(PoolStage.COMPLETED, tx_hash)
        logger.info(
            "pool_withdrawn",
            pool=self.capability.name,
            amount=amount,
            recipient=short(destination_address),
            tx=short(tx_hash),
        )
        return PoolReceipt(tx_hash=tx_hash, amount=amount)

    async def balance(self) -> PoolBalance:
        base_units = await self._client.private_balance()
        return PoolBalance(asset=self.capability.native_asset, base_units=base_units)
