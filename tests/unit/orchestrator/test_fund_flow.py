"""Tests for fund transfers into the pool."""

import asyncio

import pytest

from privacy_router.errors import (
    ConfigurationError,
    ErrorCategory,
    IllegalTransitionError,
    TransferValidationError,
)
from privacy_router.orchestrator import (
    EventChannel,
    Outcome,
    Route,
    TransferOrchestrator,
    TransferStage,
)
from privacy_router.pools import BlindedPoolProvider
from tests.helpers import (
    DEPOSIT_ADDRESS,
    ETH,
    ETH_ADDRESS,
    FAST_CONFIG,
    POOL_ASSET,
    POOL_WALLET,
    FakeBlindedPoolApi,
    FakeIntentsApi,
    FakeSendDeposit,
    make_blinded_api,
    make_intents_client,
)

S = TransferStage

ONE_TENTH_ETH = 100_000_000_000_000_000


class TestFundValidation:
    """Tests for create_fund_intent."""

    def test_non_positive_amount(self, orchestrator):
        with pytest.raises(TransferValidationError):
            orchestrator.create_fund_intent(POOL_ASSET, 0)

    def test_swap_needs_refund_address(self, orchestrator):
        with pytest.raises(TransferValidationError, match="refund address"):
            orchestrator.create_fund_intent(ETH, ONE_TENTH_ETH, send_deposit=FakeSendDeposit())

    def test_swap_needs_deposit_sender(self, orchestrator):
        with pytest.raises(TransferValidationError, match="deposit sender"):
            orchestrator.create_fund_intent(ETH, ONE_TENTH_ETH, refund_address=ETH_ADDRESS)

    def test_swap_needs_swap_client(self, shielded_provider, wallet):
        orchestrator = TransferOrchestrator(shielded_provider, wallet, config=FAST_CONFIG)
        with pytest.raises(ConfigurationError):
            orchestrator.create_fund_intent(
                ETH, ONE_TENTH_ETH, refund_address=ETH_ADDRESS, send_deposit=FakeSendDeposit()
            )

    def test_route_selection(self, orchestrator):
        direct = orchestrator.create_fund_intent(POOL_ASSET, 1_000)
        swap = orchestrator.create_fund_intent(
            ETH, ONE_TENTH_ETH, refund_address=ETH_ADDRESS, send_deposit=FakeSendDeposit()
        )
        assert direct.route is Route.FUND_DIRECT
        assert swap.route is Route.FUND_SWAP
        assert direct.stage is S.IDLE
        assert direct.id != swap.id


class TestDirectFund:
    """Tests for funding with the pool's own asset."""

    def test_stage_sequence(self, orchestrator, shielded_client):
        intent = orchestrator.create_fund_intent(POOL_ASSET, 1_000_000_000)
        asyncio.run(orchestrator.run(intent))

        assert intent.outcome is Outcome.COMPLETED
        assert intent.machine.history == [S.IDLE, S.PREPARING, S.DEPOSITING, S.CONFIRMING, S.COMPLETED]
        assert shielded_client.deposits == [1_000_000_000]
        assert intent.tracking.pool_tx_hash == "shielded-deposit-1"

    def test_insufficient_wallet_balance(self, orchestrator, wallet, shielded_client):
        wallet.balance = 999
        intent = orchestrator.create_fund_intent(POOL_ASSET, 1_000)
        asyncio.run(orchestrator.run(intent))

        assert intent.stage is S.FAILED
        assert intent.outcome is Outcome.FAILED
        assert intent.failure.category is ErrorCategory.INSUFFICIENT_FUNDS
        assert intent.failure.stage is S.PREPARING
        assert shielded_client.deposits == []

    def test_blinded_pool_fund_signed_by_wallet(self, wallet):
        api = FakeBlindedPoolApi()
        provider = BlindedPoolProvider(make_blinded_api(api), wallet)
        orchestrator = TransferOrchestrator(provider, wallet, config=FAST_CONFIG)
        intent = orchestrator.create_fund_intent(POOL_ASSET, 1_000_000)
        asyncio.run(orchestrator.run(intent))

        assert intent.outcome is Outcome.COMPLETED
        assert intent.machine.history[-2:] == [S.CONFIRMING, S.COMPLETED]
        assert api.bodies["/pool/deposit"][0]["amount"] == 1_000_000
        assert intent.tracking.pool_tx_hash == "wallet-sig-1"

    def test_run_twice_rejected(self, orchestrator):
        intent = orchestrator.create_fund_intent(POOL_ASSET, 1_000)
        asyncio.run(orchestrator.run(intent))
        with pytest.raises(IllegalTransitionError, match="already started"):
            asyncio.run(orchestrator.run(intent))

    def test_events_published(self, orchestrator):
        channel = EventChannel()
        intent = orchestrator.create_fund_intent(POOL_ASSET, 1_000)
        intent.machine.subscribe(channel)
        asyncio.run(orchestrator.run(intent))

        events = channel.drain()
        assert [event.stage for event in events] == [S.PREPARING, S.DEPOSITING, S.CONFIRMING, S.COMPLETED]
        assert events[-1].outcome is Outcome.COMPLETED
        assert events[-1].detail["pool_tx_hash"] == "shielded-deposit-1"


class TestSwapFund:
    """Tests for funding from another asset through the swap network."""

    def start(self, orchestrator, sender):
        return orchestrator.create_fund_intent(
            ETH, ONE_TENTH_ETH, refund_address=ETH_ADDRESS, send_deposit=sender
        )

    def test_stage_sequence_and_legs(self, orchestrator, intents_api, shielded_client):
        sender = FakeSendDeposit()
        intent = self.start(orchestrator, sender)
        asyncio.run(orchestrator.run(intent))

        assert intent.outcome is Outcome.COMPLETED
        assert intent.machine.history == [
            S.IDLE,
            S.GETTING_QUOTE,
            S.AWAITING_DEPOSIT,
            S.SWAP_PROCESSING,
            S.SWAP_COMPLETED,
            S.DEPOSITING_TO_POOL,
            S.COMPLETED,
        ]
        quote_body = intents_api.quote_bodies[0]
        assert quote_body["originAsset"] == ETH.asset_id
        assert quote_body["destinationAsset"] == POOL_ASSET.asset_id
        assert quote_body["amount"] == str(ONE_TENTH_ETH)
        assert quote_body["refundTo"] == ETH_ADDRESS
        assert quote_body["recipient"] == POOL_WALLET

        assert sender.calls == [(DEPOSIT_ADDRESS, ONE_TENTH_ETH)]
        assert intents_api.submitted == [{"txHash": "origin-tx-1", "depositAddress": DEPOSIT_ADDRESS}]
        # The pool receives what the swap actually delivered
        assert shielded_client.deposits == [intents_api.amount_out]
        assert intent.tracking.deposit_tx_hash == "origin-tx-1"
        assert intent.tracking.settled_amount_out == intents_api.amount_out

    def test_refunded_swap_fails_without_pool_deposit(
        self, shielded_provider, wallet, oracle, shielded_client
    ):
        api = FakeIntentsApi(statuses=["PROCESSING", "REFUNDED"])
        orchestrator = TransferOrchestrator(
            shielded_provider, wallet, make_intents_client(api), oracle, FAST_CONFIG
        )
        intent = self.start(orchestrator, FakeSendDeposit())
        asyncio.run(orchestrator.run(intent))

        assert intent.stage is S.FAILED
        assert intent.outcome is Outcome.FAILED
        assert intent.failure.category is ErrorCategory.SWAP
        assert not intent.failure.retryable
        assert intent.tracking.deposit_address == DEPOSIT_ADDRESS
        assert shielded_client.deposits == []

    def test_deposit_send_failure(self, orchestrator, intents_api):
        sender = FakeSendDeposit(fail_with=RuntimeError("wallet rejected"))
        intent = self.start(orchestrator, sender)
        asyncio.run(orchestrator.run(intent))

        assert intent.stage is S.FAILED
        assert intent.failure.category is ErrorCategory.SETTLEMENT
        assert intent.failure.stage is S.AWAITING_DEPOSIT
        assert not intent.swap_deposit_sent
        assert intents_api.status_checks == 0

    def test_pool_deposit_failure_is_partial(self, orchestrator, shielded_client):
        """The swap delivered but the pool deposit did not settle."""
        shielded_client.fail_with = RuntimeError("pool congested")
        intent = self.start(orchestrator, FakeSendDeposit())
        asyncio.run(orchestrator.run(intent))

        assert intent.outcome is Outcome.PARTIAL_FAILURE
        assert intent.failure.stage is S.DEPOSITING_TO_POOL

        shielded_client.fail_with = None
        asyncio.run(orchestrator.retry(intent))
        assert intent.outcome is Outcome.COMPLETED
        assert len(shielded_client.deposits) == 1

    def test_cancel_after_deposit_sent_is_advisory(self, orchestrator, intents_api, shielded_client):
        sender = FakeSendDeposit()
        intent = self.start(orchestrator, sender)
        results = []

        def cancel_while_processing(event):
            if event.stage is S.SWAP_PROCESSING:
                results.append(orchestrator.cancel(intent, "changed my mind"))

        intent.machine.subscribe(cancel_while_processing)
        asyncio.run(orchestrator.run(intent))

        result = results[0]
        assert result.accepted
        assert not result.authoritative
        assert result.deposit_address == DEPOSIT_ADDRESS
        assert intent.stage is S.UNRESOLVED
        assert intent.outcome is Outcome.UNRESOLVED
        assert shielded_client.deposits == []
