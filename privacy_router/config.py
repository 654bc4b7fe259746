"""Configuration for transfer orchestration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from privacy_router.errors import ConfigurationError

DEFAULT_INTENTS_API_URL = "https://1click.chaindefuser.com"
DEFAULT_BLINDED_POOL_API_URL = "https://shadow.radr.fun/shadowpay/api"


@dataclass(frozen=True)
class RouterConfig:
    """Centralized tuning for fee solving, swap routing and polling.

    Attributes:
        price_buffer_ratio: Extra share added to the amount that must arrive
            at a swap deposit address, absorbing quoted-price drift (0.02 = 2%)
        max_net_safety_margin: Multiplier applied to a solved maximum so fee
            drift between solving and submission cannot overdraw the pool
        refinement_step: Base units added per gross-for-net refinement step
        max_refinement_steps: Refinement budget before reporting non-convergence
        max_search_iterations: Upper bound on binary-search iterations
        same_chain_deadline: Quote deadline when both legs settle on one chain
        cross_chain_deadline: Quote deadline when a leg settles elsewhere
        poll_interval: Delay between swap status checks
        poll_max_attempts: Status checks before giving up as unresolved
        poll_initial_delay: Delay before the first status check
        slippage_bps: Slippage tolerance sent with each quote (100 = 1%)
    """

    price_buffer_ratio: Decimal = Decimal("0.02")
    max_net_safety_margin: Decimal = Decimal("0.9995")
    refinement_step: int = 1_000
    max_refinement_steps: int = 64
    max_search_iterations: int = 80

    same_chain_deadline: timedelta = timedelta(minutes=3)
    cross_chain_deadline: timedelta = timedelta(minutes=30)

    poll_interval: float = 5.0
    poll_max_attempts: int = 120
    poll_initial_delay: float = 3.0

    slippage_bps: int = 100

    def __post_init__(self) -> None:
        if not Decimal(0) <= self.price_buffer_ratio < Decimal(1):
            raise ConfigurationError(f"price_buffer_ratio out of range: {self.price_buffer_ratio}")
        if not Decimal(0) < self.max_net_safety_margin <= Decimal(1):
            raise ConfigurationError(
                f"max_net_safety_margin out of range: {self.max_net_safety_margin}"
            )
        if self.refinement_step <= 0 or self.max_refinement_steps <= 0:
            raise ConfigurationError("Refinement step and budget must be positive")
        if self.poll_max_attempts <= 0:
            raise ConfigurationError("poll_max_attempts must be positive")


DEFAULT_ROUTER_CONFIG = RouterConfig()


@dataclass(frozen=True)
class Settings:
    """Endpoints and credentials, normally read from the environment."""

    intents_api_url: str = DEFAULT_INTENTS_API_URL
    intents_jwt_token: str | None = None
    blinded_pool_api_url: str = DEFAULT_BLINDED_POOL_API_URL
    blinded_pool_api_key: str | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        - NEAR_INTENTS_API_URL: Swap intent API base URL
        - NEAR_INTENTS_JWT_TOKEN: Bearer token for the swap intent API
        - SHADOWWIRE_API_URL: Blinded pool API base URL
        - SHADOWWIRE_API_KEY: Optional blinded pool API key
        - PRIVACY_ROUTER_LOG_LEVEL: Log level name (default: INFO)
        """
        env = os.environ if environ is None else environ
        return cls(
            intents_api_url=env.get("NEAR_INTENTS_API_URL", DEFAULT_INTENTS_API_URL),
            intents_jwt_token=env.get("NEAR_INTENTS_JWT_TOKEN") or None,
            blinded_pool_api_url=env.get("SHADOWWIRE_API_URL", DEFAULT_BLINDED_POOL_API_URL),
            blinded_pool_api_key=env.get("SHADOWWIRE_API_KEY") or None,
            log_level=env.get("PRIVACY_ROUTER_LOG_LEVEL", "INFO").upper(),
        )

    def require_intents_token(self) -> str:
        if not self.intents_jwt_token:
            raise ConfigurationError(
                "JWT token required. Provide via settings or NEAR_INTENTS_JWT_TOKEN env var."
            )
        return self.intents_jwt_token
