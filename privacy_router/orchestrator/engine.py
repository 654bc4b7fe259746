"""Transfer orchestration between a privacy pool and the swap network.

A fund moves an asset into the pool, swapping it into the pool's native
asset first when needed. A withdraw moves pool funds out to a destination,
swapping them on the way when the destination asset differs.

Routes:
- fund, swap:      quote -> deposit to swap address -> poll -> fund pool
- fund, direct:    balance check -> fund pool
- withdraw, swap:  plan -> quote -> pool sends to swap address -> poll
- withdraw, direct: plan -> pool sends to destination
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from decimal import Decimal
from typing import cast

import structlog

from privacy_router.cancellation import CancellationToken
from privacy_router.collaborators import PriceOracle, SendDeposit, Wallet
from privacy_router.config import DEFAULT_ROUTER_CONFIG, RouterConfig
from privacy_router.errors import (
    ConfigurationError,
    IllegalTransitionError,
    InsufficientFundsError,
    PriceUnavailableError,
    PrivacyRouterError,
    SettlementError,
    SwapApiError,
    SwapFailedError,
    SwapQuoteError,
    TransferValidationError,
)
from privacy_router.fees.solver import AmountSolver, apply_buffer
from privacy_router.intents.client import SwapIntentClient, deadline_for_route
from privacy_router.intents.models import StatusResponse, SwapStatus
from privacy_router.log import short
from privacy_router.models.amounts import Amount, from_base_units, to_base_units
from privacy_router.models.assets import Asset, is_cross_chain, needs_swap
from privacy_router.models.types import is_solana_address
from privacy_router.orchestrator.intent import (
    CancelResult,
    FailureInfo,
    TransferIntent,
    WithdrawalPlan,
)
from privacy_router.orchestrator.locks import PoolLocks
from privacy_router.orchestrator.stages import (
    Direction,
    Outcome,
    Route,
    TransferObserver,
    TransferStage,
    TransferStateMachine,
    route_for,
)
from privacy_router.pools.base import (
    PoolKind,
    PoolStage,
    PoolStatus,
    PrivacyPoolProvider,
    TransferCapable,
    TransferType,
)

logger = structlog.get_logger()

ZERO = Decimal(0)

Step = Callable[[TransferIntent], Awaitable[None]]


class _Cancelled(Exception):
    """Cancellation observed before anything irrevocable was submitted."""


class _Halted(Exception):
    """The run already moved the intent to a terminal stage."""


async def _nothing(intent: TransferIntent) -> None:
    return None


class TransferOrchestrator:
    """Runs fund and withdraw transfers for one pool account.

    Args:
        provider: Privacy pool adapter
        wallet: The pool account's public wallet
        swap_client: Swap network client (required for swap routes)
        oracle: Price oracle (required for withdrawals needing a swap)
        config: Router configuration
        locks: Shared pool locks (share one instance across orchestrators
            that spend from the same pool account)
        observers: Called with every TransferEvent of every intent
    """

    def __init__(
        self,
        provider: PrivacyPoolProvider,
        wallet: Wallet,
        swap_client: SwapIntentClient | None = None,
        oracle: PriceOracle | None = None,
        config: RouterConfig | None = None,
        locks: PoolLocks | None = None,
        observers: list[TransferObserver] | None = None,
    ) -> None:
        self.provider = provider
        self.wallet = wallet
        self.swap_client = swap_client
        self.oracle = oracle
        self.config = config or DEFAULT_ROUTER_CONFIG
        self.solver = AmountSolver(self.config)
        self.locks = locks or PoolLocks()
        self.observers: list[TransferObserver] = list(observers or [])
        self._steps: dict[tuple[Route, TransferStage], Step] = {
            (Route.FUND_DIRECT, TransferStage.PREPARING): self._check_wallet_balance,
            (Route.FUND_DIRECT, TransferStage.DEPOSITING): self._deposit_to_pool,
            (Route.FUND_DIRECT, TransferStage.CONFIRMING): _nothing,
            (Route.FUND_SWAP, TransferStage.GETTING_QUOTE): self._quote_fund,
            (Route.FUND_SWAP, TransferStage.AWAITING_DEPOSIT): self._send_swap_deposit,
            (Route.FUND_SWAP, TransferStage.SWAP_PROCESSING): self._await_swap,
            (Route.FUND_SWAP, TransferStage.SWAP_COMPLETED): _nothing,
            (Route.FUND_SWAP, TransferStage.DEPOSITING_TO_POOL): self._deposit_to_pool,
            (Route.WITHDRAW_DIRECT, TransferStage.PREPARING): self._prepare_withdrawal,
            (Route.WITHDRAW_DIRECT, TransferStage.WITHDRAWING_FROM_POOL): self._pool_leg,
            (Route.WITHDRAW_SWAP, TransferStage.PREPARING): self._prepare_withdrawal,
            (Route.WITHDRAW_SWAP, TransferStage.GETTING_QUOTE): self._quote_withdrawal,
            (Route.WITHDRAW_SWAP, TransferStage.TRANSFERRING_TO_DEPOSIT_ADDRESS): self._pool_leg,
            (Route.WITHDRAW_SWAP, TransferStage.SWAP_PROCESSING): self._await_swap,
            (Route.WITHDRAW_SWAP, TransferStage.SWAP_COMPLETED): _nothing,
        }

    @property
    def pool_asset(self) -> Asset:
        return self.provider.capability.native_asset

    # ------------------------------------------------------------------
    # Intent construction (validation only, no remote calls)
    # ------------------------------------------------------------------

    def create_fund_intent(
        self,
        source_asset: Asset,
        amount: int,
        refund_address: str | None = None,
        send_deposit: SendDeposit | None = None,
    ) -> TransferIntent:
        """Validate a fund request and build its intent.

        Args:
            source_asset: Asset the caller pays with
            amount: Amount in source-asset base units
            refund_address: Origin-chain address for swap refunds (swap route)
            send_deposit: Sends the source asset to the swap deposit address
                (swap route)

        Raises:
            TransferValidationError: If the request is malformed
            ConfigurationError: If the route needs a collaborator not configured
        """
        if amount <= 0:
            raise TransferValidationError("Amount must be greater than 0")
        swap = needs_swap(self.pool_asset, source_asset)
        if swap:
            if self.swap_client is None:
                raise ConfigurationError("Funding from another asset requires a swap client")
            if not refund_address:
                raise TransferValidationError("A refund address is required when swapping")
            if send_deposit is None:
                raise TransferValidationError("A deposit sender is required when swapping")

        return self._new_intent(
            Direction.FUND,
            route_for(Direction.FUND, swap),
            source_asset=source_asset,
            destination_asset=self.pool_asset,
            destination_address=None,
            amount=amount,
            swap=swap,
            refund_address=refund_address,
            send_deposit=send_deposit,
        )

    def create_withdraw_intent(
        self,
        destination_asset: Asset,
        destination_address: str,
        amount: int,
    ) -> TransferIntent:
        """Validate a withdraw request and build its intent.

        Args:
            destination_asset: Asset that must arrive
            destination_address: Recipient on the destination network
            amount: Amount that must arrive, in destination base units

        Raises:
            TransferValidationError: If the request is malformed
            ConfigurationError: If the route needs a collaborator not configured
        """
        if amount <= 0:
            raise TransferValidationError("Amount must be greater than 0")
        if not destination_address:
            raise TransferValidationError("Destination address is required")
        if destination_asset.blockchain == self.pool_asset.blockchain and not is_solana_address(
            destination_address
        ):
            raise TransferValidationError(f"Invalid destination address: {destination_address}")

        swap = needs_swap(self.pool_asset, destination_asset)
        if swap and (self.swap_client is None or self.oracle is None):
            raise ConfigurationError("Withdrawing to another asset requires a swap client and a price oracle")

        return self._new_intent(
            Direction.WITHDRAW,
            route_for(Direction.WITHDRAW, swap),
            source_asset=self.pool_asset,
            destination_asset=destination_asset,
            destination_address=destination_address,
            amount=amount,
            swap=swap,
        )

    def _new_intent(
        self,
        direction: Direction,
        route: Route,
        *,
        source_asset: Asset,
        destination_asset: Asset,
        destination_address: str | None,
        amount: int,
        swap: bool,
        refund_address: str | None = None,
        send_deposit: SendDeposit | None = None,
    ) -> TransferIntent:
        intent_id = uuid.uuid4().hex
        intent = TransferIntent(
            id=intent_id,
            direction=direction,
            pool_asset=self.pool_asset,
            source_asset=source_asset,
            destination_asset=destination_asset,
            destination_address=destination_address,
            requested_amount=amount,
            price_buffer_ratio=self.config.price_buffer_ratio if swap else ZERO,
            machine=TransferStateMachine(intent_id, route, self.observers),
            refund_address=refund_address,
            send_deposit=send_deposit,
        )
        logger.info(
            "transfer_created",
            intent_id=intent.id,
            route=route.value,
            source=source_asset.label,
            destination=destination_asset.label,
            amount=amount,
        )
        return intent

    # ------------------------------------------------------------------
    # Previews
    # ------------------------------------------------------------------

    async def plan_withdrawal(self, destination_asset: Asset, amount: int) -> WithdrawalPlan:
        """Work out what must arrive and what must leave the pool.

        Args:
            destination_asset: Asset that must arrive
            amount: Amount that must arrive, in destination base units

        Raises:
            TransferValidationError: If the amount is not positive or too small
            PriceUnavailableError: If the amount cannot be priced in pool units
            FeeModelError: If the pool's fee cannot be solved
        """
        if amount <= 0:
            raise TransferValidationError("Amount must be greater than 0")
        swap = needs_swap(self.pool_asset, destination_asset)
        desired_net = self._convert(destination_asset, self.pool_asset, amount) if swap else amount
        if desired_net <= 0:
            raise TransferValidationError(
                f"Amount {amount} is worth less than one {self.pool_asset.symbol} base unit"
            )
        price_buffer = self.config.price_buffer_ratio if swap else ZERO

        model = await self.provider.fee_model()
        quote = await self.solver.solve_gross_for_net(model, desired_net, price_buffer)
        balance = await self.provider.balance()
        plan = WithdrawalPlan(
            desired_net=desired_net,
            arrive=apply_buffer(desired_net, price_buffer),
            withdraw=quote.gross,
            fee=quote.fee,
            net=quote.net,
            balance=balance.base_units,
            price_buffer=price_buffer,
        )
        logger.debug(
            "withdrawal_planned",
            desired_net=plan.desired_net,
            arrive=plan.arrive,
            withdraw=plan.withdraw,
            fee=plan.fee,
            balance=plan.balance,
        )
        return plan

    async def max_withdrawable(self, destination_asset: Asset | None = None) -> Amount:
        """Largest amount that can arrive in destination_asset from the live balance."""
        destination = destination_asset or self.pool_asset
        swap = needs_swap(self.pool_asset, destination)
        balance = await self.provider.balance()
        model = await self.provider.fee_model()
        price_buffer = self.config.price_buffer_ratio if swap else ZERO
        max_net = await self.solver.solve_max_net(model, balance.base_units, price_buffer)
        if not swap:
            return Amount(max_net, self.pool_asset.decimals)
        return Amount(self._convert(self.pool_asset, destination, max_net), destination.decimals)

    def _convert(self, source: Asset, target: Asset, base_units: int) -> int:
        if base_units == 0:
            return 0
        if self.oracle is None:
            raise ConfigurationError("Converting between assets requires a price oracle")
        converted = self.oracle.convert_amount(
            source.symbol, target.symbol, from_base_units(base_units, source.decimals)
        )
        if converted is None:
            raise PriceUnavailableError(source.symbol, target.symbol)
        return to_base_units(converted, target.decimals)

    # ------------------------------------------------------------------
    # Running, retrying and cancelling
    # ------------------------------------------------------------------

    async def run(self, intent: TransferIntent) -> TransferIntent:
        """Drive a new intent to a terminal stage.

        Failures of remote collaborators do not raise; they end the intent
        in the failed stage with a FailureInfo.

        Raises:
            IllegalTransitionError: If the intent has already been started
        """
        if intent.stage is not TransferStage.IDLE or intent.running:
            raise IllegalTransitionError(f"Transfer {intent.id} was already started")
        return await self._drive(intent)

    async def retry(self, intent: TransferIntent) -> TransferIntent:
        """Resume a failed or unresolved intent at the step that stopped it.

        A settled pool leg is never repeated; an unresolved swap resumes
        polling. The existing quote is reused unless its deadline passed
        before anything was sent to its deposit address.

        Raises:
            IllegalTransitionError: If the intent is not in a retryable state
        """
        if intent.running:
            raise IllegalTransitionError(f"Transfer {intent.id} is still running")
        if intent.stage is TransferStage.FAILED:
            if intent.failure is not None and not intent.failure.retryable:
                raise IllegalTransitionError(
                    f"Transfer {intent.id} cannot be retried: {intent.failure.message}"
                )
        elif intent.stage is not TransferStage.UNRESOLVED:
            raise IllegalTransitionError(
                f"Transfer {intent.id} is {intent.stage.value}, not failed or unresolved"
            )

        if intent.cancellation.cancelled:
            intent.cancellation = CancellationToken()
        if (
            intent.quote is not None
            and intent.quote.is_expired(datetime.now(UTC))
            and not intent.irrevocably_submitted
        ):
            logger.info("swap_quote_expired", intent_id=intent.id, quote_id=intent.quote.quote_id)
            intent.quote = None
            intent.tracking.deposit_address = None
            intent.tracking.quote_id = None
            if TransferStage.GETTING_QUOTE in intent.completed_steps:
                intent.completed_steps.remove(TransferStage.GETTING_QUOTE)

        intent.failure = None
        intent.outcome = None
        logger.info("transfer_retry", intent_id=intent.id, resume_at=self._next_step(intent).value)
        return await self._drive(intent)

    def cancel(self, intent: TransferIntent, reason: str | None = None) -> CancelResult:
        """Request cancellation.

        Before anything irrevocable is submitted the request is
        authoritative and the intent ends cancelled. Once funds are in flight
        towards the swap network it is advisory: polling stops, the intent
        ends unresolved, and the deposit address and tracking reference stay
        available for following the swap elsewhere. While the pool leg itself
        is still being submitted the result reports the current stage, since
        that leg may still fail and end the intent failed.
        """
        stage = intent.stage
        retryable_failure = (
            stage is TransferStage.FAILED
            and intent.failure is not None
            and intent.failure.retryable
        )
        if stage.is_terminal and not retryable_failure:
            return self._cancel_result(intent, False, False, stage, f"Transfer already {stage.value}")

        if not intent.irrevocably_submitted:
            intent.cancellation.cancel(reason)
            if not intent.running:
                self._finish_cancelled(intent)
            logger.info("transfer_cancel_accepted", intent_id=intent.id, authoritative=True)
            return self._cancel_result(intent, True, True, TransferStage.CANCELLED, reason)

        if intent.needs_swap and not intent.swap_settled and self._swap_leg_started(intent):
            intent.cancellation.cancel(reason)
            if not intent.running:
                self._finish_unresolved(intent, "cancelled")
            # A pool leg still in flight can fail, so its stage is all that is known
            expected = TransferStage.UNRESOLVED
            if intent.running and not self._swap_leg_committed(intent):
                expected = intent.stage
            logger.info(
                "transfer_cancel_accepted",
                intent_id=intent.id,
                authoritative=False,
                deposit_address=short(intent.tracking.deposit_address),
            )
            return self._cancel_result(intent, True, False, expected, reason)

        return self._cancel_result(
            intent, False, False, stage, "Funds were already submitted to the pool"
        )

    @staticmethod
    def _swap_leg_started(intent: TransferIntent) -> bool:
        if intent.direction is Direction.FUND:
            return intent.swap_deposit_sent
        return intent.pool_leg_submitted or intent.pool_leg_settled

    @staticmethod
    def _swap_leg_committed(intent: TransferIntent) -> bool:
        if intent.direction is Direction.FUND:
            return intent.swap_deposit_sent
        return intent.pool_leg_settled

    @staticmethod
    def _cancel_result(
        intent: TransferIntent,
        accepted: bool,
        authoritative: bool,
        stage: TransferStage,
        reason: str | None,
    ) -> CancelResult:
        return CancelResult(
            accepted=accepted,
            authoritative=authoritative,
            stage=stage,
            reason=reason,
            deposit_address=intent.tracking.deposit_address,
            tracking=intent.tracking,
        )

    # ------------------------------------------------------------------
    # Step loop
    # ------------------------------------------------------------------

    def _next_step(self, intent: TransferIntent) -> TransferStage:
        for step in intent.machine.steps:
            if step not in intent.completed_steps:
                return step
        return TransferStage.COMPLETED

    async def _drive(self, intent: TransferIntent) -> TransferIntent:
        intent.running = True
        step = intent.stage
        try:
            for step in intent.machine.steps:
                if step in intent.completed_steps:
                    continue
                self._checkpoint(intent)
                if step is TransferStage.COMPLETED:
                    intent.outcome = Outcome.COMPLETED
                    intent.machine.transition(
                        step, Outcome.COMPLETED, pool_tx_hash=intent.tracking.pool_tx_hash
                    )
                    intent.completed_steps.append(step)
                    logger.info("transfer_completed", intent_id=intent.id, route=intent.route.value)
                    break
                if intent.stage is not step:
                    intent.machine.transition(step)
                await self._steps[(intent.route, step)](intent)
                intent.completed_steps.append(step)
        except _Cancelled:
            self._finish_cancelled(intent)
        except _Halted:
            pass
        except PrivacyRouterError as err:
            self._fail(intent, err, step)
        except Exception as err:
            logger.exception("transfer_step_crashed", intent_id=intent.id, stage=step.value)
            self._fail(intent, err, step)
            raise
        finally:
            intent.running = False
        return intent

    def _checkpoint(self, intent: TransferIntent) -> None:
        if intent.cancellation.cancelled and not intent.irrevocably_submitted:
            raise _Cancelled

    def _finish_cancelled(self, intent: TransferIntent) -> None:
        intent.outcome = Outcome.CANCELLED
        intent.machine.transition(
            TransferStage.CANCELLED, Outcome.CANCELLED, reason=intent.cancellation.reason
        )

    def _finish_unresolved(self, intent: TransferIntent, reason: str) -> None:
        intent.outcome = Outcome.UNRESOLVED
        intent.machine.transition(
            TransferStage.UNRESOLVED,
            Outcome.UNRESOLVED,
            reason=reason,
            deposit_address=intent.tracking.deposit_address,
            swap_status=intent.tracking.swap_status,
        )

    def _fail(self, intent: TransferIntent, error: Exception, stage: TransferStage) -> None:
        info = FailureInfo.from_error(error, stage)
        if intent.direction is Direction.WITHDRAW:
            partial = intent.pool_leg_settled
        else:
            partial = intent.swap_settled and not intent.pool_leg_settled
        outcome = Outcome.PARTIAL_FAILURE if partial else Outcome.FAILED
        intent.failure = info
        intent.outcome = outcome
        logger.warning(
            "transfer_failed",
            intent_id=intent.id,
            stage=stage.value,
            category=info.category.value,
            outcome=outcome.value,
            error=info.message,
            status_code=info.status_code,
        )
        intent.machine.transition(
            TransferStage.FAILED,
            outcome,
            reason=info.message,
            category=info.category.value,
            status_code=info.status_code,
            deposit_address=intent.tracking.deposit_address,
        )

    def _on_pool_status(self, intent: TransferIntent) -> Callable[[PoolStatus], None]:
        def record(status: PoolStatus) -> None:
            if status.tx_hash:
                intent.tracking.pool_tx_hash = status.tx_hash
            if (
                status.stage is PoolStage.CONFIRMING
                and intent.route is Route.FUND_DIRECT
                and intent.stage is TransferStage.DEPOSITING
            ):
                intent.machine.transition(TransferStage.CONFIRMING, tx_hash=status.tx_hash)

        return record

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _check_wallet_balance(self, intent: TransferIntent) -> None:
        balance = await self.wallet.get_balance()
        if balance < intent.requested_amount:
            raise InsufficientFundsError(intent.requested_amount, balance)

    async def _deposit_to_pool(self, intent: TransferIntent) -> None:
        if intent.route is Route.FUND_SWAP:
            amount = intent.tracking.settled_amount_out
            if amount is None and intent.quote is not None:
                amount = intent.quote.min_amount_out
            if not amount:
                raise SettlementError("Swap settled without a usable output amount")
        else:
            amount = intent.requested_amount

        account = await self.wallet.get_address()
        async with self.locks.lock_for(self.provider.capability.name, account):
            self._checkpoint(intent)
            intent.pool_leg_submitted = True
            try:
                receipt = await self.provider.fund(amount, on_status=self._on_pool_status(intent))
            except PrivacyRouterError:
                intent.pool_leg_submitted = False
                raise
        intent.pool_leg_settled = True
        intent.tracking.pool_tx_hash = receipt.tx_hash

    async def _quote_fund(self, intent: TransferIntent) -> None:
        if self._reuse_quote(intent):
            return
        recipient = await self.wallet.get_address()
        await self._request_quote(
            intent,
            amount=intent.requested_amount,
            sender=cast(str, intent.refund_address),
            recipient=recipient,
        )

    async def _quote_withdrawal(self, intent: TransferIntent) -> None:
        if self._reuse_quote(intent):
            return
        plan = cast(WithdrawalPlan, intent.plan)
        sender = await self.wallet.get_address()
        await self._request_quote(
            intent,
            amount=plan.net,
            sender=sender,
            recipient=cast(str, intent.destination_address),
        )

    def _reuse_quote(self, intent: TransferIntent) -> bool:
        quote = intent.quote
        if quote is None or quote.is_expired(datetime.now(UTC)):
            return False
        logger.info("swap_quote_reused", intent_id=intent.id, quote_id=quote.quote_id)
        return True

    async def _request_quote(
        self, intent: TransferIntent, amount: int, sender: str, recipient: str
    ) -> None:
        client = cast(SwapIntentClient, self.swap_client)
        deadline = deadline_for_route(
            is_cross_chain(intent.source_asset, intent.destination_asset), self.config
        )
        quote = await client.quote(
            origin_asset=intent.source_asset.asset_id,
            destination_asset=intent.destination_asset.asset_id,
            amount=amount,
            sender_address=sender,
            recipient_address=recipient,
            deadline=deadline,
        )
        intent.quote = quote
        intent.tracking.deposit_address = quote.deposit_address
        intent.tracking.quote_id = quote.quote_id

    async def _send_swap_deposit(self, intent: TransferIntent) -> None:
        quote = intent.quote
        if quote is None or quote.deposit_address is None:
            raise SwapQuoteError("No deposit address to send to")
        if quote.is_expired(datetime.now(UTC)):
            raise SwapQuoteError("Quote expired before the deposit was sent")
        send_deposit = cast(SendDeposit, intent.send_deposit)

        self._checkpoint(intent)
        intent.swap_deposit_sent = True
        try:
            tx_hash = await send_deposit(quote.deposit_address, quote.requested_amount_in)
        except PrivacyRouterError:
            intent.swap_deposit_sent = False
            raise
        except Exception as err:
            intent.swap_deposit_sent = False
            raise SettlementError(f"Deposit to swap address failed: {err}") from err
        intent.tracking.deposit_tx_hash = tx_hash
        logger.info(
            "swap_deposit_sent",
            intent_id=intent.id,
            deposit_address=short(quote.deposit_address),
            tx=short(tx_hash),
        )

        client = cast(SwapIntentClient, self.swap_client)
        try:
            await client.submit_deposit_tx(quote.deposit_address, tx_hash)
        except SwapApiError as err:
            # Detection still happens without the hint, only later
            logger.warning("swap_deposit_notify_failed", intent_id=intent.id, error=str(err))

    async def _await_swap(self, intent: TransferIntent) -> None:
        deposit_address = cast(str, intent.tracking.deposit_address)
        client = cast(SwapIntentClient, self.swap_client)

        def on_change(status: StatusResponse) -> None:
            intent.tracking.swap_status = status.status

        outcome = await client.poll_status(
            deposit_address,
            interval=self.config.poll_interval,
            max_attempts=self.config.poll_max_attempts,
            on_change=on_change,
            initial_delay=self.config.poll_initial_delay,
            cancel=intent.cancellation,
        )
        if outcome.cancelled or outcome.exhausted:
            self._finish_unresolved(intent, "cancelled" if outcome.cancelled else "polling exhausted")
            raise _Halted

        if outcome.status is SwapStatus.SUCCESS:
            intent.swap_settled = True
            intent.tracking.settled_amount_out = cast(StatusResponse, outcome.last).settled_amount_out
            return
        raise SwapFailedError(cast(SwapStatus, outcome.status).value, deposit_address)

    async def _prepare_withdrawal(self, intent: TransferIntent) -> None:
        plan = await self.plan_withdrawal(intent.destination_asset, intent.requested_amount)
        intent.plan = plan
        if not plan.sufficient:
            raise InsufficientFundsError(plan.withdraw, plan.balance)

    async def _pool_leg(self, intent: TransferIntent) -> None:
        plan = cast(WithdrawalPlan, intent.plan)
        if intent.route is Route.WITHDRAW_SWAP:
            quote = intent.quote
            if quote is None or quote.deposit_address is None:
                raise SwapQuoteError("No deposit address to send to")
            if quote.is_expired(datetime.now(UTC)):
                raise SwapQuoteError("Quote expired before the pool transfer")
            recipient = quote.deposit_address
        else:
            recipient = cast(str, intent.destination_address)

        capability = self.provider.capability
        account = await self.wallet.get_address()
        async with self.locks.lock_for(capability.name, account):
            balance = await self.provider.balance()
            if plan.withdraw > balance.base_units:
                raise InsufficientFundsError(plan.withdraw, balance.base_units)

            self._checkpoint(intent)
            intent.pool_leg_submitted = True
            on_status = self._on_pool_status(intent)
            try:
                if capability.kind is PoolKind.BLINDED:
                    receipt = await cast(TransferCapable, self.provider).transfer(
                        recipient, plan.withdraw, TransferType.EXTERNAL, on_status
                    )
                else:
                    receipt = await self.provider.withdraw(recipient, plan.withdraw, on_status)
            except PrivacyRouterError:
                intent.pool_leg_submitted = False
                raise

        intent.pool_leg_settled = True
        intent.tracking.pool_tx_hash = receipt.tx_hash
        logger.info(
            "pool_leg_settled",
            intent_id=intent.id,
            kind=capability.kind.value,
            amount=plan.withdraw,
            recipient=short(recipient),
            tx=short(receipt.tx_hash),
        )
