"""Async client for the swap intent (1Click) API."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from privacy_router.cancellation import CancellationToken
from privacy_router.config import DEFAULT_ROUTER_CONFIG, RouterConfig, Settings
from privacy_router.errors import SwapApiError, SwapQuoteError, TransferValidationError
from privacy_router.intents.models import (
    PollOutcome,
    QuoteRequest,
    QuoteResponse,
    StatusResponse,
    SwapAsset,
    SwapQuote,
)
from privacy_router.log import short

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 30.0

StatusListener = Callable[[StatusResponse], None]


def deadline_for_route(
    cross_chain: bool,
    config: RouterConfig = DEFAULT_ROUTER_CONFIG,
    now: datetime | None = None,
) -> datetime:
    """Quote deadline for a route.

    Cross-network routes wait on two chains' finality and get the long
    deadline; same-network routes the short one.
    """
    now = now or datetime.now(UTC)
    window = config.cross_chain_deadline if cross_chain else config.same_chain_deadline
    return now + window


class SwapIntentClient:
    """Quotes, deposit notification and status tracking on the swap network.

    Args:
        settings: Endpoint and JWT token (default: read from environment)
        config: Router configuration for slippage and deadlines
        timeout: Per-request timeout in seconds
        client: Pre-built httpx client (tests pass one with a MockTransport)

    Raises:
        ConfigurationError: If no JWT token is configured
    """

    def __init__(
        self,
        settings: Settings | None = None,
        config: RouterConfig | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = settings or Settings.from_env()
        token = settings.require_intents_token()
        self.config = config or DEFAULT_ROUTER_CONFIG
        headers = {"Authorization": f"Bearer {token}"}
        if client is None:
            client = httpx.AsyncClient(
                base_url=settings.intents_api_url.rstrip("/"), timeout=timeout, headers=headers
            )
        else:
            client.headers.update(headers)
        self._client = client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_tokens(self) -> list[SwapAsset]:
        """Assets the swap network supports."""
        response = await self._send("GET", "/v0/tokens", error=SwapApiError)
        try:
            return [SwapAsset.model_validate(item) for item in response.json()]
        except (ValueError, ValidationError) as err:
            raise SwapApiError(f"Unexpected token list payload: {err}") from err

    async def quote(
        self,
        origin_asset: str,
        destination_asset: str,
        amount: int,
        sender_address: str,
        recipient_address: str,
        deadline: datetime | None = None,
        slippage_bps: int | None = None,
        dry: bool = False,
        referral: str | None = None,
    ) -> SwapQuote:
        """Request an exact-input quote.

        Args:
            origin_asset: Swap-network id of the asset deposited
            destination_asset: Swap-network id of the asset delivered
            amount: Exact input in origin base units
            sender_address: Origin-chain address refunds go back to
            recipient_address: Destination-chain address receiving the output
            deadline: Quote deadline (default: same-chain deadline from now)
            slippage_bps: Slippage tolerance (default: from config)
            dry: Preview only; no deposit address is issued
            referral: Optional referral tag

        Raises:
            TransferValidationError: If the amount or an address is missing
            SwapQuoteError: If the quote is rejected or has no deposit address
        """
        if amount <= 0:
            raise TransferValidationError("Amount must be greater than 0")
        if not sender_address or not recipient_address:
            raise TransferValidationError("Sender and recipient addresses are required")

        request = QuoteRequest(
            dry=dry,
            slippage_tolerance=self.config.slippage_bps if slippage_bps is None else slippage_bps,
            origin_asset=origin_asset,
            destination_asset=destination_asset,
            amount=amount,
            refund_to=sender_address,
            recipient=recipient_address,
            deadline=deadline or deadline_for_route(False, self.config),
            referral=referral,
        )
        logger.info(
            "swap_quote_requested",
            origin=origin_asset,
            destination=destination_asset,
            amount=amount,
            recipient=short(recipient_address),
            dry=dry,
        )
        response = await self._send("POST", "/v0/quote", json=request.to_wire(), error=SwapQuoteError)
        try:
            body = QuoteResponse.model_validate(response.json())
        except (ValueError, ValidationError) as err:
            raise SwapQuoteError(f"Unexpected quote payload: {err}") from err

        details = body.quote
        if not dry and not details.deposit_address:
            raise SwapQuoteError("Quote response missing deposit address")
        if details.amount_out is None:
            raise SwapQuoteError("Quote response missing output amount")

        quote = SwapQuote(
            deposit_address=details.deposit_address,
            origin_asset=origin_asset,
            destination_asset=destination_asset,
            requested_amount_in=amount,
            quote_deadline=details.deadline or request.deadline,
            quote_id=body.correlation_id or body.signature,
            amount_out=int(details.amount_out),
            min_amount_out=int(details.min_amount_out or details.amount_out),
        )
        logger.info(
            "swap_quote_received",
            deposit_address=short(quote.deposit_address),
            amount_out=quote.amount_out,
            min_amount_out=quote.min_amount_out,
        )
        return quote

    async def submit_deposit_tx(self, deposit_address: str, tx_hash: str) -> None:
        """Tell the swap network about a deposit so it is detected sooner."""
        await self._send(
            "POST",
            "/v0/deposit/submit",
            json={"txHash": tx_hash, "depositAddress": deposit_address},
            error=SwapApiError,
        )
        logger.debug("swap_deposit_submitted", deposit_address=short(deposit_address), tx=short(tx_hash))

    async def get_status(self, deposit_address: str) -> StatusResponse:
        response = await self._send(
            "GET", "/v0/status", params={"depositAddress": deposit_address}, error=SwapApiError
        )
        try:
            return StatusResponse.model_validate(response.json())
        except (ValueError, ValidationError) as err:
            raise SwapApiError(f"Unexpected status payload: {err}") from err

    async def poll_status(
        self,
        deposit_address: str,
        interval: float | None = None,
        max_attempts: int | None = None,
        on_change: StatusListener | None = None,
        initial_delay: float = 0.0,
        cancel: CancellationToken | None = None,
    ) -> PollOutcome:
        """Poll until a terminal status, the attempt budget, or cancellation.

        on_change fires only when the status differs from the previous one.
        A failed status check is logged and counts as one attempt.
        """
        interval = self.config.poll_interval if interval is None else interval
        max_attempts = self.config.poll_max_attempts if max_attempts is None else max_attempts

        if await self._pause(initial_delay, cancel):
            return PollOutcome(last=None, attempts=0, cancelled=True)

        last: StatusResponse | None = None
        attempts = 0
        while attempts < max_attempts:
            attempts += 1
            try:
                current = await self.get_status(deposit_address)
            except SwapApiError as err:
                logger.warning(
                    "swap_status_check_failed",
                    deposit_address=short(deposit_address),
                    attempt=attempts,
                    error=str(err),
                )
            else:
                if last is None or current.status != last.status:
                    logger.info(
                        "swap_status_changed",
                        deposit_address=short(deposit_address),
                        status=current.status.value,
                    )
                    if on_change is not None:
                        on_change(current)
                last = current
                if current.status.is_terminal:
                    return PollOutcome(last=last, attempts=attempts)

            if attempts < max_attempts and await self._pause(interval, cancel):
                return PollOutcome(last=last, attempts=attempts, cancelled=True)

        logger.warning(
            "swap_status_polling_exhausted",
            deposit_address=short(deposit_address),
            attempts=attempts,
            status=last.status.value if last else None,
        )
        return PollOutcome(last=last, attempts=attempts, exhausted=True)

    async def _pause(self, delay: float, cancel: CancellationToken | None) -> bool:
        if cancel is not None:
            return await cancel.sleep(delay)
        if delay > 0:
            await asyncio.sleep(delay)
        return False

    async def _send(
        self,
        method: str,
        path: str,
        error: type[SwapQuoteError] | type[SwapApiError],
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as err:
            logger.warning("swap_api_transport_error", path=path, error=str(err))
            raise error(f"Swap API request failed: {err}") from err

        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "swap_api_error",
                path=path,
                status_code=response.status_code,
                message=message,
            )
            raise error(message, response.status_code)
        return response


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)
