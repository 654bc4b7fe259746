"""Fee quote and fee evaluation result types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from privacy_router.errors import FeeModelError
from privacy_router.safe_int import S, U64Overflow


class FeeError(Enum):
    """Ways a fee evaluation can fail."""

    BELOW_MINIMUM = "below_minimum"
    ESTIMATOR_FAILED = "estimator_failed"
    INCONSISTENT_QUOTE = "inconsistent_quote"


@dataclass(frozen=True)
class FeeQuote:
    """Fee breakdown for one gross withdrawal from one pool.

    Integer base units throughout; ``gross == fee + net`` always holds,
    so no rounding can silently lose value between the parts.
    """

    gross: int
    fee: int
    net: int

    def __post_init__(self) -> None:
        try:
            for part in (self.gross, self.fee, self.net):
                S(part).to_u64()
        except U64Overflow as err:
            raise FeeModelError(
                f"Fee quote out of range: gross={self.gross} fee={self.fee} net={self.net}"
            ) from err
        if self.fee + self.net != self.gross:
            raise FeeModelError(
                f"Fee quote does not add up: {self.fee} + {self.net} != {self.gross}"
            )

    @classmethod
    def from_fee(cls, gross: int, fee: int) -> FeeQuote:
        """Quote whose net is what remains of gross after fee.

        Raises:
            Underflow: If fee exceeds gross
        """
        return cls(gross=gross, fee=fee, net=(S(gross) - fee).value)


@dataclass(frozen=True)
class FeeResult:
    """Result of evaluating a fee model at one gross amount.

    Explicit success/failure instead of raising from inside a search loop,
    where a below-minimum candidate is an expected outcome rather than a fault.

    Examples:
        result = FeeResult.ok(FeeQuote.from_fee(1_000, 10))
        assert result.is_valid and result.quote.net == 990

        result = FeeResult.with_error(FeeError.BELOW_MINIMUM, "gross 5 < 100")
        assert result.is_error
    """

    quote: FeeQuote | None
    error: FeeError | None = None
    error_detail: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.error is None and self.quote is not None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def is_below_minimum(self) -> bool:
        return self.error is FeeError.BELOW_MINIMUM

    @classmethod
    def ok(cls, quote: FeeQuote) -> FeeResult:
        return cls(quote=quote)

    @classmethod
    def with_error(cls, error: FeeError, detail: str | None = None) -> FeeResult:
        return cls(quote=None, error=error, error_detail=detail)
