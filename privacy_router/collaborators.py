"""Contracts of the external collaborators the orchestrator consumes.

None of these are implemented here. Key material never crosses these
interfaces; the orchestrator only asks for addresses, balances and
signatures over transactions it did not build.
"""

from __future__ import annotations

from typing import Protocol


class Wallet(Protocol):
    """The caller's public wallet on the pool's chain."""

    async def get_address(self) -> str:
        ...

    async def get_balance(self) -> int:
        """Spendable public balance in base units."""
        ...

    async def sign_and_submit(self, unsigned_tx: str) -> str:
        """Sign a base64 serialized transaction, submit it, return its hash."""
        ...

    def asset_to_base_units(self, amount: str) -> int:
        ...


class PriceOracle(Protocol):
    """Price lookups used to translate amounts between assets.

    A None result means no price is known; callers must stop rather than
    treat it as zero.
    """

    def get_price(self, symbol: str) -> float | None:
        ...

    def convert_amount(self, from_symbol: str, to_symbol: str, amount: str) -> str | None:
        """Convert a decimal amount of one asset into another."""
        ...


class SendDeposit(Protocol):
    """Sends source-chain funds to a swap deposit address for the caller."""

    async def __call__(self, address: str, amount: int) -> str:
        """Return the source-chain transaction hash."""
        ...
