"""Privacy pool provider contract and capability descriptor.

A provider moves the pool's native asset in (fund) and out (withdraw, and
for some pools an internal or external transfer). Call sites never inspect
a provider's methods or compare its name: each provider resolves a
PoolCapability once at construction and callers switch on its kind.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol, runtime_checkable

import structlog

from privacy_router.errors import TransferValidationError
from privacy_router.fees.models import FeeModel
from privacy_router.models.assets import Asset
from privacy_router.models.types import is_solana_address

logger = structlog.get_logger()


class PoolKind(str, Enum):
    """Closed set of pool families.

    SHIELDED pools settle withdrawals with a zero-knowledge proof and need
    no further signature. BLINDED pools hand back unsigned transactions for
    the caller's wallet to sign, and additionally support transfers.
    """

    SHIELDED = "shielded"
    BLINDED = "blinded"


class PoolStage(str, Enum):
    """Progress of a single pool operation."""

    PREPARING = "preparing"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    COMPLETED = "completed"
    FAILED = "failed"


class TransferType(str, Enum):
    """Transfer visibility for pools that support transfers."""

    INTERNAL = "internal"  # amount hidden
    EXTERNAL = "external"  # sender hidden, amount visible


@dataclass(frozen=True)
class PoolStatus:
    """One status event emitted by a pool operation."""

    stage: PoolStage
    tx_hash: str | None = None
    error: str | None = None


StatusCallback = Callable[[PoolStatus], None]


@dataclass(frozen=True)
class PoolReceipt:
    """Settled pool operation."""

    tx_hash: str
    amount: int


@dataclass(frozen=True)
class PoolBalance:
    """Point-in-time spendable balance for one (pool, asset) pair."""

    asset: Asset
    base_units: int
    observed_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class PoolCapability:
    """What a provider can do, resolved once when it is built.

    Attributes:
        kind: Pool family used for dispatch
        name: Provider name, for logs only
        native_asset: The one asset the pool holds
        supports_transfer: Provider exposes transfer()
        requires_wallet_signature: Pool operations return unsigned transactions
    """

    kind: PoolKind
    name: str
    native_asset: Asset
    supports_transfer: bool
    requires_wallet_signature: bool


@runtime_checkable
class PrivacyPoolProvider(Protocol):
    """Protocol for privacy pool adapters."""

    capability: PoolCapability

    @property
    def native_asset(self) -> Asset:
        ...

    async def fee_model(self) -> FeeModel:
        """Fee model for withdrawals, built from the pool's current schedule."""
        ...

    async def fund(self, amount: int, on_status: StatusCallback | None = None) -> PoolReceipt:
        ...

    async def withdraw(
        self,
        destination_address: str,
        amount: int,
        on_status: StatusCallback | None = None,
    ) -> PoolReceipt:
        ...

    async def balance(self) -> PoolBalance:
        ...


@runtime_checkable
class TransferCapable(Protocol):
    """Providers whose pools also support private transfers."""

    async def transfer(
        self,
        recipient: str,
        amount: int,
        transfer_type: TransferType = TransferType.EXTERNAL,
        on_status: StatusCallback | None = None,
    ) -> PoolReceipt:
        ...


def describe_capability(
    provider: object,
    *,
    name: str,
    native_asset: Asset,
    requires_wallet_signature: bool,
) -> PoolCapability:
    """Resolve a provider's capability descriptor from what it actually offers.

    The kind follows the operations present on the provider, not its
    declared name, so a renamed or wrapped provider dispatches correctly.
    """
    supports_transfer = isinstance(provider, TransferCapable)
    kind = PoolKind.BLINDED if supports_transfer else PoolKind.SHIELDED
    capability = PoolCapability(
        kind=kind,
        name=name,
        native_asset=native_asset,
        supports_transfer=supports_transfer,
        requires_wallet_signature=requires_wallet_signature,
    )
    logger.debug(
        "pool_capability_resolved",
        provider=name,
        kind=kind.value,
        supports_transfer=supports_transfer,
    )
    return capability


class StatusReporter:
    """Emits pool status events to an optional callback and the log."""

    def __init__(self, on_status: StatusCallback | None, pool: str, operation: str) -> None:
        self._on_status = on_status
        self._pool = pool
        self._operation = operation

    def __call__(self, stage: PoolStage, tx_hash: str | None = None) -> None:
        logger.debug(
            "pool_status",
            pool=self._pool,
            operation=self._operation,
            stage=stage.value,
            tx_hash=tx_hash,
        )
        if self._on_status is not None:
            self._on_status(PoolStatus(stage=stage, tx_hash=tx_hash))

    def failed(self, error: str) -> None:
        logger.warning(
            "pool_operation_failed",
            pool=self._pool,
            operation=self._operation,
            error=error,
        )
        if self._on_status is not None:
            self._on_status(PoolStatus(stage=PoolStage.FAILED, error=error))


def validate_amount(amount: int) -> None:
    if amount <= 0:
        raise TransferValidationError("Amount must be greater than 0")


def validate_recipient(address: str) -> None:
    if not address:
        raise TransferValidationError("Destination address is required")
    if not is_solana_address(address):
        raise TransferValidationError(f"Invalid recipient address: {address}")
