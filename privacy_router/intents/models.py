"""Pydantic models for the swap intent (1Click) API.

Field names follow the API's camelCase wire format through aliases; the
Python side uses snake_case. Amounts are base-unit integer strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from privacy_router.models.types import BaseUnits


class SwapStatus(str, Enum):
    """Execution status reported for a deposit address."""

    KNOWN_DEPOSIT_TX = "KNOWN_DEPOSIT_TX"
    PENDING_DEPOSIT = "PENDING_DEPOSIT"
    INCOMPLETE_DEPOSIT = "INCOMPLETE_DEPOSIT"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    REFUNDED = "REFUNDED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({SwapStatus.SUCCESS, SwapStatus.REFUNDED, SwapStatus.FAILED})


class SwapType(str, Enum):
    EXACT_INPUT = "EXACT_INPUT"
    EXACT_OUTPUT = "EXACT_OUTPUT"


class SwapAsset(BaseModel):
    """An asset the swap network can route."""

    model_config = {"populate_by_name": True}

    asset_id: str = Field(alias="assetId")
    decimals: int = Field(ge=0)
    blockchain: str
    symbol: str
    price: float | None = None
    price_updated_at: str | None = Field(default=None, alias="priceUpdatedAt")
    contract_address: str | None = Field(default=None, alias="contractAddress")


class QuoteRequest(BaseModel):
    """Body of POST /v0/quote.

    Deposits come from the origin chain and refunds go back there to the
    sender; the output is delivered on the destination chain.
    """

    model_config = {"populate_by_name": True}

    dry: bool = False
    swap_type: SwapType = Field(default=SwapType.EXACT_INPUT, alias="swapType")
    slippage_tolerance: int = Field(alias="slippageTolerance", ge=0, le=10_000)
    origin_asset: str = Field(alias="originAsset")
    deposit_type: str = Field(default="ORIGIN_CHAIN", alias="depositType")
    destination_asset: str = Field(alias="destinationAsset")
    amount: BaseUnits
    refund_to: str = Field(alias="refundTo")
    refund_type: str = Field(default="ORIGIN_CHAIN", alias="refundType")
    recipient: str
    recipient_type: str = Field(default="DESTINATION_CHAIN", alias="recipientType")
    deadline: datetime
    referral: str | None = None
    quote_waiting_time_ms: int = Field(default=3000, alias="quoteWaitingTimeMs")

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class QuoteDetails(BaseModel):
    """The quote itself, nested in a quote response."""

    model_config = {"populate_by_name": True}

    deposit_address: str | None = Field(default=None, alias="depositAddress")
    amount_in: BaseUnits | None = Field(default=None, alias="amountIn")
    amount_in_formatted: str | None = Field(default=None, alias="amountInFormatted")
    amount_out: BaseUnits | None = Field(default=None, alias="amountOut")
    amount_out_formatted: str | None = Field(default=None, alias="amountOutFormatted")
    min_amount_out: BaseUnits | None = Field(default=None, alias="minAmountOut")
    deadline: datetime | None = None
    time_estimate: int | None = Field(default=None, alias="timeEstimate")


class QuoteResponse(BaseModel):
    """Response of POST /v0/quote."""

    model_config = {"populate_by_name": True}

    timestamp: str | None = None
    signature: str | None = None
    correlation_id: str | None = Field(default=None, alias="correlationId")
    quote: QuoteDetails


class ChainTxHash(BaseModel):
    hash: str
    explorer_url: str | None = Field(default=None, alias="explorerUrl")


class SwapDetails(BaseModel):
    """Settlement detail attached to a status response."""

    model_config = {"populate_by_name": True}

    amount_in: BaseUnits | None = Field(default=None, alias="amountIn")
    amount_out: BaseUnits | None = Field(default=None, alias="amountOut")
    refunded_amount: BaseUnits | None = Field(default=None, alias="refundedAmount")
    origin_chain_tx_hashes: list[ChainTxHash] = Field(
        default_factory=list, alias="originChainTxHashes"
    )
    destination_chain_tx_hashes: list[ChainTxHash] = Field(
        default_factory=list, alias="destinationChainTxHashes"
    )


class StatusResponse(BaseModel):
    """Response of GET /v0/status."""

    model_config = {"populate_by_name": True}

    status: SwapStatus
    correlation_id: str | None = Field(default=None, alias="correlationId")
    updated_at: str | None = Field(default=None, alias="updatedAt")
    swap_details: SwapDetails | None = Field(default=None, alias="swapDetails")

    @property
    def settled_amount_out(self) -> int | None:
        if self.swap_details is None or self.swap_details.amount_out is None:
            return None
        return int(self.swap_details.amount_out)


@dataclass(frozen=True)
class SwapQuote:
    """An accepted quote, reduced to what the orchestrator acts on.

    deposit_address is None only for dry (preview) quotes.
    """

    deposit_address: str | None
    origin_asset: str
    destination_asset: str
    requested_amount_in: int
    quote_deadline: datetime | None
    quote_id: str | None
    amount_out: int
    min_amount_out: int

    def is_expired(self, now: datetime) -> bool:
        return self.quote_deadline is not None and now >= self.quote_deadline


@dataclass(frozen=True)
class PollOutcome:
    """How a status polling loop ended.

    Attributes:
        last: Most recent status seen (None if every attempt failed)
        attempts: Status checks made
        exhausted: Attempt budget ran out before a terminal status
        cancelled: Stopped because cancellation was requested
    """

    last: StatusResponse | None
    attempts: int
    exhausted: bool = False
    cancelled: bool = False

    @property
    def status(self) -> SwapStatus | None:
        return self.last.status if self.last is not None else None

    @property
    def is_terminal(self) -> bool:
        return self.status is not None and self.status.is_terminal
