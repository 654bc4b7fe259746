"""Test helpers module for shared test utilities.

- constants: Addresses, assets and a polling config with no delays
- fakes: In-memory collaborators and MockTransport handlers
"""

from tests.helpers.constants import (
    DEPOSIT_ADDRESS,
    ETH,
    ETH_ADDRESS,
    FAST_CONFIG,
    POOL_ASSET,
    POOL_WALLET,
    RECIPIENT,
)
from tests.helpers.fakes import (
    FakeBlindedPoolApi,
    FakeIntentsApi,
    FakeOracle,
    FakeSendDeposit,
    FakeShieldedClient,
    FakeWallet,
    make_blinded_api,
    make_intents_client,
)

__all__ = [
    # Constants
    "DEPOSIT_ADDRESS",
    "ETH",
    "ETH_ADDRESS",
    "FAST_CONFIG",
    "POOL_ASSET",
    "POOL_WALLET",
    "RECIPIENT",
    # Fakes
    "FakeBlindedPoolApi",
    "FakeIntentsApi",
    "FakeOracle",
    "FakeSendDeposit",
    "FakeShieldedClient",
    "FakeWallet",
    "make_blinded_api",
    "make_intents_client",
]
