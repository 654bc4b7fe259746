"""Fee inversion and maximum-amount search.

The pools charge fees on the gross amount withdrawn, but callers think in
terms of what must arrive at the next hop. AmountSolver answers two
questions for any FeeModel:

- solve_gross_for_net: which gross withdrawal leaves at least a desired net
  (plus a price buffer when the next hop is a swap)?
- solve_max_net: what is the largest desired net whose gross still fits in
  a given balance?

Neither assumes the fee function has a closed-form inverse; the verified
model is an opaque remote call.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

import structlog

from privacy_router.config import DEFAULT_ROUTER_CONFIG, RouterConfig
from privacy_router.errors import (
    BelowMinimumError,
    ConvergenceError,
    FeeModelError,
    TransferValidationError,
)
from privacy_router.fees.models import FeeModel, FeeSession
from privacy_router.fees.result import FeeQuote
from privacy_router.safe_int import S

logger = structlog.get_logger()

ZERO = Decimal(0)


class _Fit(Enum):
    """Where a candidate net falls relative to a balance."""

    BELOW_MINIMUM = "below_minimum"
    FITS = "fits"
    TOO_LARGE = "too_large"


def apply_buffer(amount: int, price_buffer: Decimal) -> int:
    """Scale an amount up by a price buffer, rounding up."""
    if price_buffer == 0:
        return amount
    num, den = (Decimal(1) + price_buffer).as_integer_ratio()
    return (S(amount) * num).ceiling_div(den).value


def apply_margin(amount: int, margin: Decimal) -> int:
    """Scale an amount down by a safety margin, truncating."""
    num, den = margin.as_integer_ratio()
    return ((S(amount) * num) // den).value


def first_guess(target: int, rate: Decimal, fixed_fee: int = 0) -> int:
    """Analytic gross estimate: (target + fixed) / (1 - rate), rounded up."""
    num, den = (Decimal(1) - rate).as_integer_ratio()
    return ((S(target) + fixed_fee) * den).ceiling_div(num).value


class AmountSolver:
    """Inverts pool fee models.

    Attributes:
        config: Router configuration (refinement step, budgets, margin)
    """

    def __init__(self, config: RouterConfig | None = None) -> None:
        self.config = config or DEFAULT_ROUTER_CONFIG

    async def solve_gross_for_net(
        self,
        model: FeeModel | FeeSession,
        desired_net: int,
        price_buffer: Decimal = ZERO,
    ) -> FeeQuote:
        """Find a gross withdrawal whose net covers desired_net plus buffer.

        Starts from the analytic first guess and raises the guess until the
        model confirms the realized net reaches the target. Each raise is the
        larger of one refinement step and the fixed-point candidate
        (target + observed fee), so the guess never overshoots by more than
        one step. Over-withdrawal is acceptable; the excess arrives at the
        destination.

        Args:
            model: Fee model (or an existing session to share its cache)
            desired_net: Economically required net amount in base units
            price_buffer: Extra share added on top for swap price drift

        Returns:
            FeeQuote of the accepted gross amount

        Raises:
            TransferValidationError: If desired_net is not positive
            BelowMinimumError: If the amount is below the pool minimum
            FeeModelError: If the model fails or reports inconsistent figures
            ConvergenceError: If the step budget runs out
        """
        if desired_net <= 0:
            raise TransferValidationError(f"Amount must be greater than 0, got {desired_net}")

        session = model if isinstance(model, FeeSession) else FeeSession(model)
        target = apply_buffer(desired_net, price_buffer)
        guess = first_guess(target, session.approximate_rate, session.approximate_fixed_fee)
        if guess < session.minimum_gross:
            raise BelowMinimumError(guess, session.minimum_gross)

        step = self.config.refinement_step
        last_net = 0
        for attempt in range(self.config.max_refinement_steps):
            result = await session.fee_for(guess)

            if result.is_below_minimum:
                guess += step
                continue
            if result.quote is None:
                raise FeeModelError(
                    f"Fee model failed at gross {guess}: {result.error_detail or result.error}"
                )

            quote = result.quote
            last_net = quote.net
            if quote.net >= target:
                logger.debug(
                    "gross_solved",
                    desired_net=desired_net,
                    target=target,
                    gross=quote.gross,
                    fee=quote.fee,
                    net=quote.net,
                    steps=attempt + 1,
                )
                return quote

            guess = max(guess + step, target + quote.fee)

        logger.warning(
            "gross_solve_not_converged",
            target=target,
            last_gross=guess,
            last_net=last_net,
            steps=self.config.max_refinement_steps,
        )
        raise ConvergenceError(target, guess, last_net, self.config.max_refinement_steps)

    async def solve_max_net(
        self,
        model: FeeModel,
        balance: int,
        price_buffer: Decimal = ZERO,
    ) -> int:
        """Largest desired net whose buffered gross fits within balance.

        Binary search over candidate nets; each midpoint is checked by
        solving its gross and comparing with the balance. The result is
        truncated and scaled by the safety margin to absorb fee drift
        between this solve and the actual submission.

        Args:
            model: Fee model of the pool holding the balance
            balance: Spendable balance in base units
            price_buffer: Buffer that will be applied when the amount is sent

        Returns:
            Maximum safe desired net in base units (0 if fees exceed balance)
        """
        if balance <= 0:
            return 0

        session = FeeSession(model)
        if balance < session.minimum_gross:
            return 0

        at_balance = await session.fee_for(balance)
        if at_balance.is_below_minimum:
            logger.debug("max_net_fees_exceed_balance", balance=balance)
            return 0
        if at_balance.quote is None:
            raise FeeModelError(
                f"Fee model failed at balance {balance}: {at_balance.error_detail or at_balance.error}"
            )

        # Nets below the pool minimum sit at the bottom of the range, so
        # they move the lower bound up like a fitting candidate would.
        lo, hi = 0, at_balance.quote.net
        best = 0
        iterations = min(hi.bit_length() + 1, self.config.max_search_iterations)
        for _ in range(iterations):
            if lo >= hi:
                break
            mid = (lo + hi + 1) // 2
            fit = await self._fit(session, mid, balance, price_buffer)
            if fit is _Fit.TOO_LARGE:
                hi = mid - 1
            else:
                lo = mid
                if fit is _Fit.FITS:
                    best = mid

        result = apply_margin(best, self.config.max_net_safety_margin)
        if result and await self._fit(session, result, balance, price_buffer) is not _Fit.FITS:
            # The margin pushed the amount under the pool minimum
            result = best
        logger.debug(
            "max_net_solved",
            balance=balance,
            unscaled=best,
            max_net=result,
            fee_evaluations=session.evaluations,
        )
        return result

    async def _fit(
        self,
        session: FeeSession,
        net: int,
        balance: int,
        price_buffer: Decimal,
    ) -> _Fit:
        try:
            quote = await self.solve_gross_for_net(session, net, price_buffer)
        except BelowMinimumError:
            return _Fit.BELOW_MINIMUM
        except ConvergenceError:
            logger.debug("max_net_candidate_not_converged", net=net)
            return _Fit.TOO_LARGE
        return _Fit.FITS if quote.gross <= balance else _Fit.TOO_LARGE
