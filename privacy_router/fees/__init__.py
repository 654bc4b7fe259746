"""Fee models and fee inversion for private-pool withdrawals.

This module provides:
- FeeQuote / FeeResult: exact integer fee breakdowns and explicit failures
- RateFixedFeeModel: percentage rate plus fixed surcharge
- VerifiedRateFeeModel: percentage rate confirmed by the pool's fee preview
- FeeSession: per-operation memoization of any fee model
- AmountSolver: gross-for-net inversion and maximum-net search

Usage:
    from privacy_router.fees import AmountSolver, RateFixedFeeModel

    model = RateFixedFeeModel(rate="0.01")
    quote = await AmountSolver().solve_gross_for_net(model, 500_000)
    assert quote.net >= 500_000
"""

from privacy_router.fees.models import (
    FeeEstimator,
    FeeModel,
    FeeSession,
    RateFixedFeeModel,
    VerifiedRateFeeModel,
    rate_fee,
)
from privacy_router.fees.result import FeeError, FeeQuote, FeeResult
from privacy_router.fees.solver import AmountSolver, apply_buffer, apply_margin, first_guess

__all__ = [
    # Results
    "FeeQuote",
    "FeeResult",
    "FeeError",
    # Models
    "FeeModel",
    "FeeEstimator",
    "RateFixedFeeModel",
    "VerifiedRateFeeModel",
    "FeeSession",
    "rate_fee",
    # Solver
    "AmountSolver",
    "apply_buffer",
    "apply_margin",
    "first_guess",
]
