"""Pytest configuration and fixtures."""

import pytest

from privacy_router.orchestrator import TransferOrchestrator
from privacy_router.pools import ShieldedPoolProvider
from tests.helpers import (
    FAST_CONFIG,
    FakeIntentsApi,
    FakeOracle,
    FakeShieldedClient,
    FakeWallet,
    make_intents_client,
)


@pytest.fixture
def wallet() -> FakeWallet:
    """Pool account wallet with 5 SOL of public balance."""
    return FakeWallet(balance=5_000_000_000)


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def shielded_client() -> FakeShieldedClient:
    """Shielded pool holding 2 SOL, charging a flat 1% on withdrawals."""
    return FakeShieldedClient(balance=2_000_000_000)


@pytest.fixture
def shielded_provider(shielded_client) -> ShieldedPoolProvider:
    return ShieldedPoolProvider(shielded_client)


@pytest.fixture
def intents_api() -> FakeIntentsApi:
    return FakeIntentsApi()


@pytest.fixture
def orchestrator(shielded_provider, wallet, oracle, intents_api) -> TransferOrchestrator:
    """Orchestrator over the shielded pool with a fake swap network.

    The swap client only wraps a MockTransport, so it holds no connections
    and can be used from each test's own asyncio.run loop.
    """
    return TransferOrchestrator(
        provider=shielded_provider,
        wallet=wallet,
        swap_client=make_intents_client(intents_api),
        oracle=oracle,
        config=FAST_CONFIG,
    )
