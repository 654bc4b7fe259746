"""Fee models for private-pool withdrawals.

Two variants exist because the pools publish their fees differently:

- RateFixedFeeModel: a percentage rate plus a fixed surcharge (rent), both
  known up front, evaluated locally.
- VerifiedRateFeeModel: a percentage rate that is only advisory; every
  figure is confirmed through the pool's own fee-preview call.

Both evaluate asynchronously so the solver can treat them uniformly.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

import structlog

from privacy_router.errors import FeeModelError, PrivacyRouterError
from privacy_router.fees.result import FeeError, FeeQuote, FeeResult
from privacy_router.safe_int import S

logger = structlog.get_logger()


class FeeModel(Protocol):
    """Protocol for computing the fee charged on a withdrawal of a given size.

    Attributes:
        approximate_rate: Percentage rate used only for the analytic first guess
        approximate_fixed_fee: Fixed surcharge used only for the first guess
        minimum_gross: Smallest gross withdrawal the pool accepts
    """

    approximate_rate: Decimal
    approximate_fixed_fee: int
    minimum_gross: int

    async def fee_for(self, gross: int) -> FeeResult:
        """Evaluate the fee for a gross withdrawal.

        Returns:
            FeeResult with the quote, or BELOW_MINIMUM when the pool would
            reject a withdrawal this small
        """
        ...


class FeeEstimator(Protocol):
    """A pool's own fee preview, as exposed by its adapter."""

    async def preview_fee(self, gross: int) -> tuple[int, int]:
        """Return (fee, net) in base units for a gross withdrawal."""
        ...


def _parse_rate(rate: Decimal | str) -> Decimal:
    value = Decimal(rate)
    if not value.is_finite() or value < 0 or value >= 1:
        raise FeeModelError(f"Fee rate must be in [0, 1): {rate}")
    return value


def rate_fee(gross: int, rate: Decimal) -> int:
    """Percentage part of a fee, rounded up to the next base unit."""
    num, den = rate.as_integer_ratio()
    return (S(gross) * num).ceiling_div(den).value


def smallest_covering_gross(rate: Decimal, fixed_fee: int) -> int:
    """Smallest gross whose fee does not exceed it.

    gross - fee is non-decreasing in gross, so every larger gross is
    covered as well. Starts at ceil(fixed_fee / (1 - rate)) and walks up
    past the rounding of the rate part.
    """
    num, den = (Decimal(1) - rate).as_integer_ratio()
    gross = max((S(fixed_fee) * den).ceiling_div(num).value, 1)
    while rate_fee(gross, rate) + fixed_fee > gross:
        gross += 1
    return gross


class RateFixedFeeModel:
    """Percentage rate plus a fixed surcharge, evaluated locally.

    fee = ceil(gross * rate) + fixed_fee

    minimum_gross is never below the smallest gross that covers its own
    fee, so every gross at or above it yields fee + net == gross.
    """

    def __init__(
        self,
        rate: Decimal | str,
        fixed_fee: int = 0,
        minimum_gross: int | None = None,
    ) -> None:
        if fixed_fee < 0:
            raise FeeModelError(f"Fixed fee cannot be negative: {fixed_fee}")
        self.rate = _parse_rate(rate)
        self.fixed_fee = fixed_fee
        self.approximate_rate = self.rate
        self.approximate_fixed_fee = fixed_fee
        self.minimum_gross = max(
            minimum_gross or 0, smallest_covering_gross(self.rate, fixed_fee)
        )

    async def fee_for(self, gross: int) -> FeeResult:
        if gross < self.minimum_gross:
            return FeeResult.with_error(
                FeeError.BELOW_MINIMUM,
                f"Gross {gross} below minimum {self.minimum_gross}",
            )

        fee = rate_fee(gross, self.rate) + self.fixed_fee
        if fee > gross:
            return FeeResult.with_error(
                FeeError.BELOW_MINIMUM,
                f"Fee {fee} exceeds gross {gross}",
            )
        return FeeResult.ok(FeeQuote.from_fee(gross, fee))

    def __repr__(self) -> str:
        return f"RateFixedFeeModel(rate={self.rate}, fixed_fee={self.fixed_fee})"


class VerifiedRateFeeModel:
    """Percentage rate confirmed through the pool's fee-preview call.

    The locally known rate only seeds the solver's first guess. Every
    evaluation is a round trip to the estimator, so callers should wrap
    this model in a FeeSession for the duration of one solve.
    """

    def __init__(
        self,
        estimator: FeeEstimator,
        rate: Decimal | str,
        minimum_gross: int = 1,
    ) -> None:
        self._estimator = estimator
        self.approximate_rate = _parse_rate(rate)
        self.approximate_fixed_fee = 0
        self.minimum_gross = max(minimum_gross, 1)

    async def fee_for(self, gross: int) -> FeeResult:
        if gross < self.minimum_gross:
            return FeeResult.with_error(
                FeeError.BELOW_MINIMUM,
                f"Gross {gross} below minimum {self.minimum_gross}",
            )

        try:
            fee, net = await self._estimator.preview_fee(gross)
        except PrivacyRouterError as err:
            logger.warning("fee_preview_failed", gross=gross, error=str(err))
            return FeeResult.with_error(FeeError.ESTIMATOR_FAILED, str(err))

        if fee < 0 or net < 0 or fee + net != gross:
            logger.warning(
                "fee_preview_inconsistent",
                gross=gross,
                fee=fee,
                net=net,
            )
            return FeeResult.with_error(
                FeeError.INCONSISTENT_QUOTE,
                f"Preview for {gross} returned fee={fee} net={net}",
            )
        return FeeResult.ok(FeeQuote(gross=gross, fee=fee, net=net))


class FeeSession:
    """Memoizes a fee model for the lifetime of one solving operation.

    A binary search over a remote-verified model would otherwise repeat
    the same round trip for every midpoint that revisits a gross amount.
    """

    def __init__(self, model: FeeModel) -> None:
        self._model = model
        self._cache: dict[int, FeeResult] = {}
        self.evaluations = 0

    @property
    def approximate_rate(self) -> Decimal:
        return self._model.approximate_rate

    @property
    def approximate_fixed_fee(self) -> int:
        return self._model.approximate_fixed_fee

    @property
    def minimum_gross(self) -> int:
        return self._model.minimum_gross

    async def fee_for(self, gross: int) -> FeeResult:
        cached = self._cache.get(gross)
        if cached is not None:
            return cached
        self.evaluations += 1
        result = await self._model.fee_for(gross)
        self._cache[gross] = result
        return result
