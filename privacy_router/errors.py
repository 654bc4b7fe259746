"""Error taxonomy for transfer orchestration.

Every error carries a ``category`` so a failed transfer can report what
kind of failure stopped it without the caller matching on exception types.
Validation and insufficiency errors are raised before any remote call is
made; the remaining categories describe failures of a remote collaborator.
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """Failure categories surfaced on a failed transfer."""

    VALIDATION = "validation"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    FEE_MODEL = "fee_model"
    SWAP_QUOTE = "swap_quote"
    SETTLEMENT = "settlement"
    SWAP = "swap"
    CONFIGURATION = "configuration"


class PrivacyRouterError(Exception):
    """Base class for all errors raised by this package."""

    category: ErrorCategory = ErrorCategory.SETTLEMENT

    @property
    def retryable(self) -> bool:
        return self.category is not ErrorCategory.VALIDATION


class ConfigurationError(PrivacyRouterError):
    """Required configuration (endpoint, token) is missing or invalid."""

    category = ErrorCategory.CONFIGURATION


class TransferValidationError(PrivacyRouterError):
    """Request is malformed: bad address, non-positive amount, below minimum."""

    category = ErrorCategory.VALIDATION


class PriceUnavailableError(TransferValidationError):
    """The price oracle could not convert an amount between two assets."""

    def __init__(self, from_symbol: str, to_symbol: str) -> None:
        super().__init__(f"No price available to convert {from_symbol} to {to_symbol}")
        self.from_symbol = from_symbol
        self.to_symbol = to_symbol


class InsufficientFundsError(PrivacyRouterError):
    """The solved gross amount exceeds the spendable balance."""

    category = ErrorCategory.INSUFFICIENT_FUNDS

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            f"Insufficient pool balance: need {required} base units, have {available}"
        )
        self.required = required
        self.available = available

    @property
    def shortfall(self) -> int:
        return self.required - self.available


class FeeModelError(PrivacyRouterError):
    """Fee preview failed or returned an inconsistent figure."""

    category = ErrorCategory.FEE_MODEL


class BelowMinimumError(FeeModelError):
    """Amount is below the smallest withdrawal the pool accepts."""

    category = ErrorCategory.VALIDATION

    def __init__(self, gross: int, minimum: int) -> None:
        super().__init__(f"Amount {gross} is below the pool minimum of {minimum} base units")
        self.gross = gross
        self.minimum = minimum


class ConvergenceError(FeeModelError):
    """Gross-for-net refinement did not reach the target within its step budget."""

    def __init__(self, target: int, last_gross: int, last_net: int, steps: int) -> None:
        super().__init__(
            f"Failed to converge on net {target} after {steps} steps "
            f"(last gross {last_gross} gave net {last_net})"
        )
        self.target = target
        self.last_gross = last_gross
        self.last_net = last_net
        self.steps = steps


class SwapQuoteError(PrivacyRouterError):
    """The swap network rejected a quote request."""

    category = ErrorCategory.SWAP_QUOTE

    def __init__(self, message: str, status_code: int | None = None) -> None:
        detail = f"{status_code}: {message}" if status_code is not None else message
        super().__init__(f"Swap quote rejected ({detail})")
        self.status_code = status_code
        self.upstream_message = message


class SwapApiError(PrivacyRouterError):
    """A non-quote call to the swap network failed."""

    category = ErrorCategory.SWAP

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SettlementError(PrivacyRouterError):
    """An on-chain pool submission was rejected, reverted, or never confirmed."""

    category = ErrorCategory.SETTLEMENT

    def __init__(self, message: str, tx_hash: str | None = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


class IllegalTransitionError(PrivacyRouterError):
    """A transfer was asked to move to a stage its current stage cannot reach."""

    category = ErrorCategory.VALIDATION


class SwapFailedError(PrivacyRouterError):
    """The swap network ended a swap as FAILED or REFUNDED."""

    category = ErrorCategory.SWAP

    def __init__(self, status: str, deposit_address: str | None = None) -> None:
        super().__init__(f"Swap ended with status {status}")
        self.status = status
        self.deposit_address = deposit_address

    @property
    def retryable(self) -> bool:
        return False
