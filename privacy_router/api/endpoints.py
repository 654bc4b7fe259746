"""API endpoints for withdrawal previews."""

import structlog
from fastapi import APIRouter, Depends, Query, Request

from privacy_router.api.schemas import (
    MaxWithdrawalResponse,
    WithdrawalPreviewRequest,
    WithdrawalPreviewResponse,
)
from privacy_router.errors import TransferValidationError
from privacy_router.models.amounts import from_base_units, to_base_units
from privacy_router.models.assets import Asset
from privacy_router.orchestrator.engine import TransferOrchestrator

logger = structlog.get_logger()

router = APIRouter(prefix="/v1/withdrawals")


def get_orchestrator(request: Request) -> TransferOrchestrator:
    """Dependency provider for the orchestrator.

    Override this in tests to inject a different orchestrator:
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    """
    return request.app.state.orchestrator


def get_assets(request: Request) -> dict[str, Asset]:
    """Assets the API accepts, keyed by label (SYMBOL:chain)."""
    return request.app.state.assets


def _resolve(assets: dict[str, Asset], label: str) -> Asset:
    asset = assets.get(label)
    if asset is None:
        raise TransferValidationError(f"Unknown asset: {label}")
    return asset


@router.post("/preview")
async def preview_withdrawal(
    body: WithdrawalPreviewRequest,
    orchestrator: TransferOrchestrator = Depends(get_orchestrator),
    assets: dict[str, Asset] = Depends(get_assets),
) -> WithdrawalPreviewResponse:
    """Show what a withdrawal would take out of the pool.

    Error Handling:
        - Unknown asset, malformed amount or missing price: 422
        - Failing fee preview: 502
        - Short balance is reported, not raised
    """
    destination = _resolve(assets, body.destination)
    amount = to_base_units(body.amount, destination.decimals)
    plan = await orchestrator.plan_withdrawal(destination, amount)

    pool = orchestrator.pool_asset
    logger.info(
        "withdrawal_previewed",
        destination=destination.label,
        amount=amount,
        withdraw=plan.withdraw,
        sufficient=plan.sufficient,
    )
    return WithdrawalPreviewResponse(
        pool_asset=pool.label,
        arrive=from_base_units(plan.arrive, pool.decimals),
        withdraw=from_base_units(plan.withdraw, pool.decimals),
        fee=from_base_units(plan.fee, pool.decimals),
        balance=from_base_units(plan.balance, pool.decimals),
        sufficient=plan.sufficient,
        shortfall=from_base_units(plan.shortfall, pool.decimals),
        price_buffer=str(plan.price_buffer),
    )


@router.get("/max")
async def max_withdrawal(
    destination: str | None = Query(default=None, description="Asset label, default pool asset"),
    orchestrator: TransferOrchestrator = Depends(get_orchestrator),
    assets: dict[str, Asset] = Depends(get_assets),
) -> MaxWithdrawalResponse:
    """Largest amount that can currently arrive in the destination asset."""
    asset = _resolve(assets, destination) if destination else orchestrator.pool_asset
    amount = await orchestrator.max_withdrawable(asset)
    return MaxWithdrawalResponse(
        asset=asset.label,
        amount=amount.to_decimal(),
        base_units=str(amount.base_units),
    )
