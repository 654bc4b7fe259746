"""Tests for the swap intent API client."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from privacy_router.cancellation import CancellationToken
from privacy_router.config import Settings
from privacy_router.constants import SOL
from privacy_router.errors import (
    ConfigurationError,
    SwapApiError,
    SwapQuoteError,
    TransferValidationError,
)
from privacy_router.intents import SwapIntentClient, SwapQuote, SwapStatus, deadline_for_route
from tests.helpers import (
    DEPOSIT_ADDRESS,
    ETH,
    ETH_ADDRESS,
    FAST_CONFIG,
    POOL_WALLET,
    FakeIntentsApi,
    make_intents_client,
)


def request_quote(api: FakeIntentsApi, **kwargs) -> SwapQuote:
    params = {
        "origin_asset": SOL.asset_id,
        "destination_asset": ETH.asset_id,
        "amount": 1_020_000_000,
        "sender_address": POOL_WALLET,
        "recipient_address": ETH_ADDRESS,
    }
    params.update(kwargs)
    return asyncio.run(make_intents_client(api).quote(**params))


class TestConfiguration:
    """Tests for client construction."""

    def test_missing_token_raises(self):
        with pytest.raises(ConfigurationError, match="JWT token required"):
            SwapIntentClient(settings=Settings(intents_jwt_token=None))

    def test_bearer_token_sent(self):
        api = FakeIntentsApi()
        request_quote(api)
        assert api.requests[0].headers["Authorization"] == "Bearer test-jwt-token"


class TestQuote:
    """Tests for quote requests."""

    def test_request_body(self):
        """Quotes are exact-input, refunded to the sender on the origin chain."""
        api = FakeIntentsApi()
        request_quote(api)

        body = api.quote_bodies[0]
        assert body["swapType"] == "EXACT_INPUT"
        assert body["slippageTolerance"] == 100
        assert body["originAsset"] == SOL.asset_id
        assert body["destinationAsset"] == ETH.asset_id
        assert body["amount"] == "1020000000"
        assert body["depositType"] == "ORIGIN_CHAIN"
        assert body["refundTo"] == POOL_WALLET
        assert body["refundType"] == "ORIGIN_CHAIN"
        assert body["recipient"] == ETH_ADDRESS
        assert body["recipientType"] == "DESTINATION_CHAIN"
        assert body["dry"] is False
        assert "referral" not in body
        assert "deadline" in body

    def test_quote_result(self):
        api = FakeIntentsApi(amount_out=48_000_000)
        quote = request_quote(api)
        assert quote.deposit_address == DEPOSIT_ADDRESS
        assert quote.requested_amount_in == 1_020_000_000
        assert quote.amount_out == 48_000_000
        assert quote.min_amount_out == 47_520_000
        assert quote.quote_id == "corr-1"
        assert not quote.is_expired(datetime.now(UTC))

    def test_custom_slippage_and_referral(self):
        api = FakeIntentsApi()
        request_quote(api, slippage_bps=50, referral="router")
        assert api.quote_bodies[0]["slippageTolerance"] == 50
        assert api.quote_bodies[0]["referral"] == "router"

    def test_rejected_quote_keeps_status_and_message(self):
        api = FakeIntentsApi(quote_error=(400, "Amount is too low for bridge"))
        with pytest.raises(SwapQuoteError) as exc_info:
            request_quote(api)
        assert exc_info.value.status_code == 400
        assert exc_info.value.upstream_message == "Amount is too low for bridge"

    def test_missing_deposit_address(self):
        api = FakeIntentsApi(deposit_address=None)
        with pytest.raises(SwapQuoteError, match="missing deposit address"):
            request_quote(api)

    def test_dry_quote_has_no_deposit_address(self):
        api = FakeIntentsApi()
        quote = request_quote(api, dry=True)
        assert quote.deposit_address is None
        assert api.quote_bodies[0]["dry"] is True

    def test_invalid_request_makes_no_call(self):
        api = FakeIntentsApi()
        with pytest.raises(TransferValidationError):
            request_quote(api, amount=0)
        with pytest.raises(TransferValidationError):
            request_quote(api, recipient_address="")
        assert api.requests == []


class TestDepositAndStatus:
    """Tests for deposit notification, status and token calls."""

    def test_submit_deposit_tx(self):
        api = FakeIntentsApi()
        asyncio.run(make_intents_client(api).submit_deposit_tx(DEPOSIT_ADDRESS, "origin-tx-1"))
        assert api.submitted == [{"txHash": "origin-tx-1", "depositAddress": DEPOSIT_ADDRESS}]

    def test_get_status(self):
        api = FakeIntentsApi(statuses=["SUCCESS"], amount_out=123)
        status = asyncio.run(make_intents_client(api).get_status(DEPOSIT_ADDRESS))
        assert status.status is SwapStatus.SUCCESS
        assert status.settled_amount_out == 123
        assert api.requests[0].url.params["depositAddress"] == DEPOSIT_ADDRESS

    def test_status_error(self):
        api = FakeIntentsApi(statuses=["HTTP_ERROR"])
        with pytest.raises(SwapApiError) as exc_info:
            asyncio.run(make_intents_client(api).get_status(DEPOSIT_ADDRESS))
        assert exc_info.value.status_code == 503

    def test_get_tokens(self):
        tokens = asyncio.run(make_intents_client(FakeIntentsApi()).get_tokens())
        assert [token.symbol for token in tokens] == ["SOL"]
        assert tokens[0].asset_id == SOL.asset_id
        assert tokens[0].decimals == 9

    def test_terminal_statuses(self):
        assert SwapStatus.SUCCESS.is_terminal
        assert SwapStatus.REFUNDED.is_terminal
        assert SwapStatus.FAILED.is_terminal
        assert not SwapStatus.PROCESSING.is_terminal
        assert not SwapStatus.INCOMPLETE_DEPOSIT.is_terminal


class TestPolling:
    """Tests for poll_status."""

    def poll(self, api, **kwargs):
        return asyncio.run(make_intents_client(api).poll_status(DEPOSIT_ADDRESS, **kwargs))

    def test_callbacks_only_on_change(self):
        api = FakeIntentsApi(
            statuses=["PENDING_DEPOSIT", "PENDING_DEPOSIT", "PROCESSING", "PROCESSING", "SUCCESS"]
        )
        seen = []
        outcome = self.poll(api, on_change=lambda status: seen.append(status.status))

        assert seen == [SwapStatus.PENDING_DEPOSIT, SwapStatus.PROCESSING, SwapStatus.SUCCESS]
        assert outcome.status is SwapStatus.SUCCESS
        assert outcome.attempts == 5
        assert not outcome.exhausted

    def test_stops_at_first_terminal_status(self):
        api = FakeIntentsApi(statuses=["REFUNDED", "SUCCESS"])
        outcome = self.poll(api)
        assert outcome.status is SwapStatus.REFUNDED
        assert api.status_checks == 1

    def test_exhausted_after_max_attempts(self):
        api = FakeIntentsApi(statuses=["PROCESSING"])
        outcome = self.poll(api, max_attempts=3)
        assert outcome.exhausted
        assert outcome.attempts == 3
        assert outcome.status is SwapStatus.PROCESSING
        assert not outcome.is_terminal

    def test_transient_error_consumes_attempt(self):
        api = FakeIntentsApi(statuses=["HTTP_ERROR", "SUCCESS"])
        outcome = self.poll(api, max_attempts=2)
        assert outcome.status is SwapStatus.SUCCESS
        assert outcome.attempts == 2

    def test_only_errors_exhausts_without_status(self):
        api = FakeIntentsApi(statuses=["HTTP_ERROR"])
        outcome = self.poll(api, max_attempts=2)
        assert outcome.exhausted
        assert outcome.last is None

    def test_cancelled_before_first_check(self):
        api = FakeIntentsApi()
        token = CancellationToken()
        token.cancel("user")
        outcome = self.poll(api, cancel=token)
        assert outcome.cancelled
        assert outcome.attempts == 0
        assert api.status_checks == 0

    def test_cancelled_between_checks(self):
        api = FakeIntentsApi(statuses=["PENDING_DEPOSIT", "PROCESSING", "SUCCESS"])
        token = CancellationToken()

        def on_change(status):
            if status.status is SwapStatus.PROCESSING:
                token.cancel()

        outcome = self.poll(api, on_change=on_change, cancel=token)
        assert outcome.cancelled
        assert outcome.attempts == 2
        assert outcome.status is SwapStatus.PROCESSING


class TestDeadlines:
    """Tests for quote deadlines per route."""

    def test_same_chain(self):
        now = datetime(2025, 1, 1, tzinfo=UTC)
        assert deadline_for_route(False, FAST_CONFIG, now) == now + timedelta(minutes=3)

    def test_cross_chain(self):
        now = datetime(2025, 1, 1, tzinfo=UTC)
        assert deadline_for_route(True, FAST_CONFIG, now) == now + timedelta(minutes=30)

    def test_quote_expiry(self):
        api = FakeIntentsApi(quote_deadline=datetime.now(UTC) - timedelta(seconds=1))
        quote = request_quote(api)
        assert quote.is_expired(datetime.now(UTC))
