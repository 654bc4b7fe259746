"""FastAPI application exposing withdrawal previews.

The app never moves funds; it only answers fee and capacity questions for
an already configured orchestrator.
"""

from __future__ import annotations

import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from privacy_router import __version__
from privacy_router.api.endpoints import router
from privacy_router.errors import ErrorCategory, PrivacyRouterError
from privacy_router.models.assets import Asset
from privacy_router.orchestrator.engine import TransferOrchestrator

logger = structlog.get_logger()

HOST = os.environ.get("PRIVACY_ROUTER_HOST", "127.0.0.1")
PORT = int(os.environ.get("PRIVACY_ROUTER_PORT", "8000"))

_STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: 422,
    ErrorCategory.INSUFFICIENT_FUNDS: 409,
    ErrorCategory.CONFIGURATION: 500,
}


async def _router_error(request: Request, exc: PrivacyRouterError) -> JSONResponse:
    status_code = _STATUS_BY_CATEGORY.get(exc.category, 502)
    logger.warning(
        "api_request_failed",
        path=request.url.path,
        category=exc.category.value,
        status_code=status_code,
        error=str(exc),
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "category": exc.category.value},
    )


def create_app(
    orchestrator: TransferOrchestrator,
    assets: list[Asset] | None = None,
) -> FastAPI:
    """Build the preview API around an orchestrator.

    Args:
        orchestrator: Orchestrator whose pool is previewed
        assets: Destination assets accepted besides the pool asset
    """
    app = FastAPI(
        title="Privacy Router",
        description="Withdrawal previews for a private-pool transfer router",
        version=__version__,
    )
    known = [orchestrator.pool_asset, *(assets or [])]
    app.state.orchestrator = orchestrator
    app.state.assets = {asset.label: asset for asset in known}
    app.add_exception_handler(PrivacyRouterError, _router_error)  # type: ignore[arg-type]
    app.include_router(router)

    @app.get("/health")
    async def health() -> dict[str, object]:
        """Health check endpoint."""
        capability = orchestrator.provider.capability
        return {"status": "ok", "pool": capability.name, "kind": capability.kind.value}

    return app


def serve(app: FastAPI) -> None:
    """Serve an app built by create_app.

    Configuration via environment variables:
    - PRIVACY_ROUTER_HOST: Host to bind to (default: 127.0.0.1)
    - PRIVACY_ROUTER_PORT: Port to bind to (default: 8000)
    """
    uvicorn.run(app, host=HOST, port=PORT)
