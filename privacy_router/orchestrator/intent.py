"""Transfer intent aggregate and the records attached to it."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal

from privacy_router.cancellation import CancellationToken
from privacy_router.collaborators import SendDeposit
from privacy_router.errors import ErrorCategory, PrivacyRouterError
from privacy_router.intents.models import SwapQuote, SwapStatus
from privacy_router.models.assets import Asset
from privacy_router.orchestrator.stages import (
    Direction,
    Outcome,
    Route,
    TransferStage,
    TransferStateMachine,
)


@dataclass(frozen=True)
class FailureInfo:
    """Why a transfer stopped.

    Attributes:
        category: Error category of the cause
        message: Human readable reason
        stage: Stage that was running when the failure happened
        status_code: Upstream HTTP status, when a remote call was rejected
        retryable: Whether retry() may resume the transfer
    """

    category: ErrorCategory
    message: str
    stage: TransferStage
    status_code: int | None = None
    retryable: bool = True

    @classmethod
    def from_error(cls, error: Exception, stage: TransferStage) -> FailureInfo:
        if isinstance(error, PrivacyRouterError):
            return cls(
                category=error.category,
                message=str(error),
                stage=stage,
                status_code=getattr(error, "status_code", None),
                retryable=error.retryable,
            )
        return cls(
            category=ErrorCategory.SETTLEMENT,
            message=f"{type(error).__name__}: {error}",
            stage=stage,
        )


@dataclass
class TrackingReference:
    """Everything needed to follow a transfer after it left our hands."""

    deposit_address: str | None = None
    quote_id: str | None = None
    pool_tx_hash: str | None = None
    deposit_tx_hash: str | None = None
    swap_status: SwapStatus | None = None
    settled_amount_out: int | None = None


@dataclass(frozen=True)
class WithdrawalPlan:
    """Amount bookkeeping for a withdrawal, in pool base units.

    Attributes:
        desired_net: What must arrive at the next hop, before buffering
        arrive: desired_net plus the price buffer
        withdraw: Gross amount to take out of the pool
        fee: Pool fee on the gross amount
        net: What the pool actually releases (>= arrive)
        balance: Pool balance observed while planning
        price_buffer: Buffer ratio applied
    """

    desired_net: int
    arrive: int
    withdraw: int
    fee: int
    net: int
    balance: int
    price_buffer: Decimal

    @property
    def sufficient(self) -> bool:
        return self.withdraw <= self.balance

    @property
    def shortfall(self) -> int:
        return max(self.withdraw - self.balance, 0)


@dataclass(frozen=True)
class CancelResult:
    """Answer to a cancellation request.

    Attributes:
        accepted: Cancellation was recorded
        authoritative: Nothing irrevocable was submitted, so the transfer is
            guaranteed to stop. False means the request is advisory: funds
            already in flight keep moving and tracking stays valid.
        stage: Stage the transfer will end in after the request. A transfer
            whose pool leg is still being submitted reports its current
            stage instead, since that leg may yet fail
        reason: Explanation when not accepted, or the caller's reason
        deposit_address: Swap deposit address, when one was issued
        tracking: Tracking reference at the time of the request
    """

    accepted: bool
    authoritative: bool
    stage: TransferStage
    reason: str | None = None
    deposit_address: str | None = None
    tracking: TrackingReference | None = None


@dataclass
class TransferIntent:
    """One fund or withdraw request and everything known about its progress.

    Only the orchestrator mutates an intent.
    """

    direction: Direction
    pool_asset: Asset
    source_asset: Asset
    destination_asset: Asset
    destination_address: str | None
    requested_amount: int
    price_buffer_ratio: Decimal
    machine: TransferStateMachine
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    refund_address: str | None = None
    send_deposit: SendDeposit | None = None
    failure: FailureInfo | None = None
    quote: SwapQuote | None = None
    plan: WithdrawalPlan | None = None
    tracking: TrackingReference = field(default_factory=TrackingReference)
    completed_steps: list[TransferStage] = field(default_factory=list)
    cancellation: CancellationToken = field(default_factory=CancellationToken)
    outcome: Outcome | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    running: bool = False
    # Irrevocable legs: once set, cancellation can only be advisory
    pool_leg_submitted: bool = False
    pool_leg_settled: bool = False
    swap_deposit_sent: bool = False
    swap_settled: bool = False

    @property
    def stage(self) -> TransferStage:
        return self.machine.stage

    @property
    def route(self) -> Route:
        return self.machine.route

    @property
    def needs_swap(self) -> bool:
        return self.route in (Route.FUND_SWAP, Route.WITHDRAW_SWAP)

    @property
    def irrevocably_submitted(self) -> bool:
        return self.pool_leg_submitted or self.pool_leg_settled or self.swap_deposit_sent

    @property
    def is_finished(self) -> bool:
        return self.stage.is_terminal
