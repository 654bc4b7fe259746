"""Swap intent network client and wire models."""

from privacy_router.intents.client import SwapIntentClient, deadline_for_route
from privacy_router.intents.models import (
    TERMINAL_STATUSES,
    PollOutcome,
    QuoteRequest,
    QuoteResponse,
    StatusResponse,
    SwapAsset,
    SwapQuote,
    SwapStatus,
)

__all__ = [
    "SwapIntentClient",
    "deadline_for_route",
    "TERMINAL_STATUSES",
    "PollOutcome",
    "QuoteRequest",
    "QuoteResponse",
    "StatusResponse",
    "SwapAsset",
    "SwapQuote",
    "SwapStatus",
]
