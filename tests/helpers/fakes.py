"""In-memory collaborators and HTTP fakes.

The HTTP fakes are plain request handlers for httpx.MockTransport; they
record every request so tests can assert on what was sent.
"""

import json
from datetime import UTC, datetime, timedelta
from decimal import ROUND_CEILING, Decimal

import httpx

from privacy_router.config import Settings
from privacy_router.intents.client import SwapIntentClient
from privacy_router.models.amounts import to_base_units
from privacy_router.pools.blinded_api import BlindedPoolApi
from privacy_router.pools.shielded import ShieldedFeeConfig
from tests.helpers.constants import (
    DEPOSIT_ADDRESS,
    FAST_CONFIG,
    INTENTS_URL,
    JWT_TOKEN,
    ORACLE_RATES,
    POOL_API_URL,
    POOL_WALLET,
)


class FakeWallet:
    """Public wallet holding the pool-native asset."""

    def __init__(self, address: str = POOL_WALLET, balance: int = 0, decimals: int = 9):
        self.address = address
        self.balance = balance
        self.decimals = decimals
        self.signed: list[str] = []

    async def get_address(self) -> str:
        return self.address

    async def get_balance(self) -> int:
        return self.balance

    async def sign_and_submit(self, unsigned_tx: str) -> str:
        self.signed.append(unsigned_tx)
        return f"wallet-sig-{len(self.signed)}"

    def asset_to_base_units(self, amount: str) -> int:
        return to_base_units(amount, self.decimals)


class FakeOracle:
    """Converts with fixed rates; unknown pairs have no price."""

    def __init__(self, rates: dict[tuple[str, str], Decimal] | None = None):
        self.rates = dict(ORACLE_RATES if rates is None else rates)

    def get_price(self, symbol: str) -> float | None:
        rate = self.rates.get((symbol, "USD"))
        return float(rate) if rate is not None else None

    def convert_amount(self, from_symbol: str, to_symbol: str, amount: str) -> str | None:
        rate = self.rates.get((from_symbol, to_symbol))
        if rate is None:
            return None
        return str(Decimal(amount) * rate)


class FakeShieldedClient:
    """Shielded pool client that settles instantly."""

    def __init__(
        self,
        balance: int = 0,
        fee_config: ShieldedFeeConfig | None = None,
        fail_with: Exception | None = None,
    ):
        self.balance = balance
        self.config = fee_config or ShieldedFeeConfig(
            withdraw_fee_rate=Decimal("0.01"), withdraw_rent_fee=0
        )
        self.fail_with = fail_with
        self.deposits: list[int] = []
        self.withdrawals: list[tuple[int, str]] = []

    async def deposit(self, base_units: int) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.deposits.append(base_units)
        self.balance += base_units
        return f"shielded-deposit-{len(self.deposits)}"

    async def withdraw(self, base_units: int, recipient: str) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.withdrawals.append((base_units, recipient))
        self.balance -= base_units
        return f"shielded-withdraw-{len(self.withdrawals)}"

    async def private_balance(self) -> int:
        return self.balance

    async def fee_config(self) -> ShieldedFeeConfig:
        return self.config


class FakeSendDeposit:
    """Records deposits sent to swap deposit addresses."""

    def __init__(self, fail_with: Exception | None = None):
        self.calls: list[tuple[str, int]] = []
        self.fail_with = fail_with

    async def __call__(self, address: str, amount: int) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append((address, amount))
        return f"origin-tx-{len(self.calls)}"


class FakeIntentsApi:
    """Swap intent API handler for httpx.MockTransport.

    Attributes:
        statuses: Status sequence returned by successive status checks; the
            last one repeats
        amount_out: Output amount reported by quotes and settled swaps
        quote_error: (status_code, message) to reject quotes with
    """

    def __init__(
        self,
        statuses: list[str] | None = None,
        amount_out: int = 1_000_000,
        deposit_address: str | None = DEPOSIT_ADDRESS,
        quote_error: tuple[int, str] | None = None,
        quote_deadline: datetime | None = None,
    ):
        self.statuses = list(statuses or ["PENDING_DEPOSIT", "PROCESSING", "SUCCESS"])
        self.amount_out = amount_out
        self.deposit_address = deposit_address
        self.quote_error = quote_error
        self.quote_deadline = quote_deadline
        self.requests: list[httpx.Request] = []
        self.quote_bodies: list[dict] = []
        self.submitted: list[dict] = []
        self.status_checks = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/v0/tokens":
            return httpx.Response(
                200,
                json=[
                    {
                        "assetId": "nep141:sol.omft.near",
                        "decimals": 9,
                        "blockchain": "sol",
                        "symbol": "SOL",
                        "price": 150.25,
                        "priceUpdatedAt": "2025-01-01T00:00:00Z",
                    }
                ],
            )
        if path == "/v0/quote":
            return self._quote(json.loads(request.content))
        if path == "/v0/deposit/submit":
            self.submitted.append(json.loads(request.content))
            return httpx.Response(200, json={})
        if path == "/v0/status":
            return self._status()
        return httpx.Response(404, json={"message": f"Unknown path {path}"})

    def _quote(self, body: dict) -> httpx.Response:
        self.quote_bodies.append(body)
        if self.quote_error is not None:
            status_code, message = self.quote_error
            return httpx.Response(status_code, json={"message": message})
        deadline = self.quote_deadline or datetime.now(UTC) + timedelta(hours=1)
        quote = {
            "amountIn": body["amount"],
            "amountOut": str(self.amount_out),
            "minAmountOut": str(self.amount_out * 99 // 100),
            "deadline": deadline.isoformat(),
        }
        if self.deposit_address is not None and not body.get("dry"):
            quote["depositAddress"] = self.deposit_address
        return httpx.Response(
            200,
            json={
                "timestamp": "2025-01-01T00:00:00Z",
                "signature": "quote-signature",
                "correlationId": f"corr-{len(self.quote_bodies)}",
                "quote": quote,
            },
        )

    def _status(self) -> httpx.Response:
        index = min(self.status_checks, len(self.statuses) - 1)
        self.status_checks += 1
        status = self.statuses[index]
        if status == "HTTP_ERROR":
            return httpx.Response(503, json={"message": "unavailable"})
        body: dict = {"status": status, "updatedAt": "2025-01-01T00:00:00Z"}
        if status == "SUCCESS":
            body["swapDetails"] = {"amountOut": str(self.amount_out)}
        return httpx.Response(200, json=body)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


class FakeBlindedPoolApi:
    """Blinded pool API handler for httpx.MockTransport.

    Fee previews charge ceil(amount * fee_rate).
    """

    def __init__(
        self,
        balance: int = 0,
        fee_rate: Decimal = Decimal("0.005"),
        fail_path: str | None = None,
        unsigned_tx: str | None = "AQIDBA==",
        relayed_tx_hash: str | None = None,
    ):
        self.balance = balance
        self.fee_rate = fee_rate
        self.fail_path = fail_path
        self.unsigned_tx = unsigned_tx
        self.relayed_tx_hash = relayed_tx_hash
        self.requests: list[httpx.Request] = []
        self.bodies: dict[str, list[dict]] = {}
        self.previews = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == self.fail_path:
            return httpx.Response(500, json={"error": "pool unavailable"})
        if path.startswith("/pool/balance/"):
            return httpx.Response(
                200,
                json={
                    "wallet": path.rsplit("/", 1)[-1],
                    "available": self.balance,
                    "deposited": self.balance,
                    "withdrawn_to_escrow": 0,
                    "pool_address": "pool",
                },
            )

        body = json.loads(request.content) if request.content else {}
        self.bodies.setdefault(path, []).append(body)
        if path == "/pool/fee-preview":
            self.previews += 1
            amount = body["amount"]
            fee = int((Decimal(amount) * self.fee_rate).to_integral_value(rounding=ROUND_CEILING))
            return httpx.Response(200, json={"fee": fee, "netAmount": amount - fee})
        if path in ("/pool/deposit", "/pool/withdraw", "/pool/transfer"):
            payload: dict = {"success": True, "amount": body["amount"]}
            if self.unsigned_tx is not None:
                payload["unsigned_tx_base64"] = self.unsigned_tx
            if self.relayed_tx_hash is not None:
                payload["txHash"] = self.relayed_tx_hash
            return httpx.Response(200, json=payload)
        return httpx.Response(404, json={"message": f"Unknown path {path}"})


def make_intents_client(api: FakeIntentsApi, config=FAST_CONFIG) -> SwapIntentClient:
    transport = httpx.MockTransport(api.handler)
    return SwapIntentClient(
        settings=Settings(intents_api_url=INTENTS_URL, intents_jwt_token=JWT_TOKEN),
        config=config,
        client=httpx.AsyncClient(transport=transport, base_url=INTENTS_URL),
    )


def make_blinded_api(api: FakeBlindedPoolApi, api_key: str | None = None) -> BlindedPoolApi:
    transport = httpx.MockTransport(api.handler)
    return BlindedPoolApi(
        api_key=api_key,
        client=httpx.AsyncClient(transport=transport, base_url=POOL_API_URL),
    )
