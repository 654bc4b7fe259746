"""Transfer orchestration: intents, stages and the engine that runs them."""

from privacy_router.orchestrator.engine import TransferOrchestrator
from privacy_router.orchestrator.intent import (
    CancelResult,
    FailureInfo,
    TrackingReference,
    TransferIntent,
    WithdrawalPlan,
)
from privacy_router.orchestrator.locks import PoolLocks
from privacy_router.orchestrator.stages import (
    ROUTE_STAGES,
    Direction,
    EventChannel,
    Outcome,
    Route,
    TransferEvent,
    TransferObserver,
    TransferStage,
    TransferStateMachine,
    build_transitions,
    route_for,
)

__all__ = [
    "TransferOrchestrator",
    "CancelResult",
    "FailureInfo",
    "TrackingReference",
    "TransferIntent",
    "WithdrawalPlan",
    "PoolLocks",
    "ROUTE_STAGES",
    "Direction",
    "EventChannel",
    "Outcome",
    "Route",
    "TransferEvent",
    "TransferObserver",
    "TransferStage",
    "TransferStateMachine",
    "build_transitions",
    "route_for",
]
