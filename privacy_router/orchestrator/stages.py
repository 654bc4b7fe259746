"""Transfer stages, routes and the state machine that enforces them.

Each flow walks one fixed route of stages. The transition table for a
route allows only:
- moving one step forward along the route
- failing from any non-terminal stage
- cancelling (the engine decides whether cancellation is still allowed)
- retrying from FAILED into a stage of the route
- ending UNRESOLVED while waiting on the swap network, and resuming from it
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog

from privacy_router.errors import IllegalTransitionError

logger = structlog.get_logger()


class Direction(str, Enum):
    FUND = "fund"
    WITHDRAW = "withdraw"


class TransferStage(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    GETTING_QUOTE = "getting_quote"
    AWAITING_DEPOSIT = "awaiting_deposit"
    DEPOSITING = "depositing"
    CONFIRMING = "confirming"
    WITHDRAWING_FROM_POOL = "withdrawing_from_pool"
    TRANSFERRING_TO_DEPOSIT_ADDRESS = "transferring_to_deposit_address"
    SWAP_PROCESSING = "swap_processing"
    SWAP_COMPLETED = "swap_completed"
    DEPOSITING_TO_POOL = "depositing_to_pool"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    UNRESOLVED = "unresolved"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STAGES


TERMINAL_STAGES = frozenset(
    {
        TransferStage.COMPLETED,
        TransferStage.FAILED,
        TransferStage.CANCELLED,
        TransferStage.UNRESOLVED,
    }
)


class Outcome(str, Enum):
    """How a transfer ended."""

    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL_FAILURE = "partial_failure"  # one leg settled, a later leg did not
    UNRESOLVED = "unresolved"  # swap never reached a terminal status
    CANCELLED = "cancelled"


class Route(str, Enum):
    FUND_SWAP = "fund_swap"
    FUND_DIRECT = "fund_direct"
    WITHDRAW_SWAP = "withdraw_swap"
    WITHDRAW_DIRECT = "withdraw_direct"


_S = TransferStage

ROUTE_STAGES: dict[Route, tuple[TransferStage, ...]] = {
    Route.FUND_SWAP: (
        _S.GETTING_QUOTE,
        _S.AWAITING_DEPOSIT,
        _S.SWAP_PROCESSING,
        _S.SWAP_COMPLETED,
        _S.DEPOSITING_TO_POOL,
        _S.COMPLETED,
    ),
    Route.FUND_DIRECT: (_S.PREPARING, _S.DEPOSITING, _S.CONFIRMING, _S.COMPLETED),
    Route.WITHDRAW_SWAP: (
        _S.PREPARING,
        _S.GETTING_QUOTE,
        _S.TRANSFERRING_TO_DEPOSIT_ADDRESS,
        _S.SWAP_PROCESSING,
        _S.SWAP_COMPLETED,
        _S.COMPLETED,
    ),
    Route.WITHDRAW_DIRECT: (_S.PREPARING, _S.WITHDRAWING_FROM_POOL, _S.COMPLETED),
}

# Stages during which the swap network may still settle on its own
_WAITING_ON_SWAP = frozenset({_S.AWAITING_DEPOSIT, _S.SWAP_PROCESSING})


def route_for(direction: Direction, swap: bool) -> Route:
    if direction is Direction.FUND:
        return Route.FUND_SWAP if swap else Route.FUND_DIRECT
    return Route.WITHDRAW_SWAP if swap else Route.WITHDRAW_DIRECT


def build_transitions(route: Route) -> dict[TransferStage, frozenset[TransferStage]]:
    """Allowed transitions for one route."""
    steps = ROUTE_STAGES[route]
    table: dict[TransferStage, set[TransferStage]] = {_S.IDLE: {steps[0]}}
    for current, following in zip(steps, steps[1:]):
        table.setdefault(current, set()).add(following)

    for stage in (_S.IDLE, *steps):
        if stage is _S.COMPLETED:
            continue
        table.setdefault(stage, set()).update({_S.FAILED, _S.CANCELLED})
        if stage in _WAITING_ON_SWAP:
            table[stage].add(_S.UNRESOLVED)

    table[_S.FAILED] = {s for s in steps if not s.is_terminal} | {_S.CANCELLED, _S.UNRESOLVED}
    if _S.SWAP_PROCESSING in steps:
        table[_S.UNRESOLVED] = {_S.SWAP_PROCESSING}
    return {stage: frozenset(targets) for stage, targets in table.items()}


@dataclass(frozen=True)
class TransferEvent:
    """One stage transition of one transfer."""

    intent_id: str
    previous: TransferStage
    stage: TransferStage
    outcome: Outcome | None = None
    detail: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))


TransferObserver = Callable[[TransferEvent], None]


class TransferStateMachine:
    """Stage holder for one transfer; rejects transitions its route forbids."""

    def __init__(
        self,
        intent_id: str,
        route: Route,
        observers: list[TransferObserver] | None = None,
    ) -> None:
        self.intent_id = intent_id
        self.route = route
        self.stage = TransferStage.IDLE
        self.history: list[TransferStage] = [TransferStage.IDLE]
        self._transitions = build_transitions(route)
        self._observers: list[TransferObserver] = list(observers or [])

    @property
    def steps(self) -> tuple[TransferStage, ...]:
        return ROUTE_STAGES[self.route]

    def subscribe(self, observer: TransferObserver) -> Callable[[], None]:
        """Register an observer; returns a function that removes it."""
        self._observers.append(observer)
        return lambda: self._observers.remove(observer)

    def can_transition(self, target: TransferStage) -> bool:
        return target in self._transitions.get(self.stage, frozenset())

    def transition(
        self,
        target: TransferStage,
        outcome: Outcome | None = None,
        **detail: Any,
    ) -> TransferEvent:
        """Move to target and notify observers.

        Raises:
            IllegalTransitionError: If the route does not allow the move
        """
        if not self.can_transition(target):
            raise IllegalTransitionError(
                f"Transfer {self.intent_id} cannot move from {self.stage.value} to {target.value}"
            )
        event = TransferEvent(
            intent_id=self.intent_id,
            previous=self.stage,
            stage=target,
            outcome=outcome,
            detail=detail,
        )
        self.stage = target
        self.history.append(target)
        logger.info(
            "transfer_stage_changed",
            intent_id=self.intent_id,
            previous=event.previous.value,
            stage=target.value,
            outcome=outcome.value if outcome else None,
        )
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception:
                logger.exception("transfer_observer_failed", intent_id=self.intent_id)
        return event


class EventChannel:
    """Observer that queues transfer events for an async consumer."""

    def __init__(self, maxsize: int = 0) -> None:
        self.queue: asyncio.Queue[TransferEvent] = asyncio.Queue(maxsize)

    def __call__(self, event: TransferEvent) -> None:
        self.queue.put_nowait(event)

    async def get(self) -> TransferEvent:
        return await self.queue.get()

    def drain(self) -> list[TransferEvent]:
        events = []
        while not self.queue.empty():
            events.append(self.queue.get_nowait())
        return events
