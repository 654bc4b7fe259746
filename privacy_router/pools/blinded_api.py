"""HTTP client and wire models for the blinded pool REST API.

Amounts on this API are integer base units. Operations that move funds do
not move them server-side: they answer with an unsigned transaction that
the caller's wallet signs and submits. Transfers the pool relays itself
answer with a transaction hash instead.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field, ValidationError

from privacy_router.config import DEFAULT_BLINDED_POOL_API_URL, Settings
from privacy_router.errors import SettlementError

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 30.0


class BlindedPoolApiError(SettlementError):
    """The blinded pool API rejected a call or returned an unreadable body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BalanceResponse(BaseModel):
    """Pool balance of one wallet."""

    wallet: str
    available: int = Field(ge=0)
    deposited: int = Field(default=0, ge=0)
    withdrawn_to_escrow: int = Field(default=0, ge=0)
    pool_address: str | None = None


class UnsignedTxResponse(BaseModel):
    """Answer to deposit, withdraw and transfer requests."""

    model_config = {"populate_by_name": True}

    success: bool
    unsigned_tx_base64: str | None = None
    tx_hash: str | None = Field(default=None, alias="txHash")
    amount: int | None = None
    message: str | None = None


class FeePreview(BaseModel):
    """Fee the pool would charge on a gross amount."""

    model_config = {"populate_by_name": True}

    fee: int
    net_amount: int = Field(alias="netAmount")


class BlindedPoolApi:
    """Async client for the blinded pool REST API.

    Args:
        base_url: API root (default: public endpoint)
        api_key: Optional key sent as X-API-Key
        timeout: Per-request timeout in seconds
        client: Pre-built httpx client (tests pass one with a MockTransport)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BLINDED_POOL_API_URL,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout, headers=headers
        )
        if client is not None:
            self._client.headers.update(headers)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> BlindedPoolApi:
        """Client for the endpoint and key in settings (default: from the environment)."""
        settings = settings or Settings.from_env()
        return cls(
            base_url=settings.blinded_pool_api_url,
            api_key=settings.blinded_pool_api_key,
            timeout=timeout,
            client=client,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_balance(self, wallet: str, token: str) -> BalanceResponse:
        data = await self._request("GET", f"/pool/balance/{wallet}", params={"token": token})
        return self._parse(BalanceResponse, data)

    async def deposit(self, wallet: str, amount: int, token: str) -> UnsignedTxResponse:
        data = await self._request(
            "POST", "/pool/deposit", json={"wallet": wallet, "amount": amount, "token": token}
        )
        return self._parse(UnsignedTxResponse, data)

    async def withdraw(
        self, wallet: str, amount: int, token: str, recipient: str
    ) -> UnsignedTxResponse:
        data = await self._request(
            "POST",
            "/pool/withdraw",
            json={"wallet": wallet, "amount": amount, "token": token, "recipient": recipient},
        )
        return self._parse(UnsignedTxResponse, data)

    async def transfer(
        self,
        sender: str,
        recipient: str,
        amount: int,
        token: str,
        transfer_type: str,
    ) -> UnsignedTxResponse:
        data = await self._request(
            "POST",
            "/pool/transfer",
            json={
                "sender": sender,
                "recipient": recipient,
                "amount": amount,
                "token": token,
                "type": transfer_type,
            },
        )
        return self._parse(UnsignedTxResponse, data)

    async def fee_preview(self, amount: int, token: str) -> FeePreview:
        data = await self._request(
            "POST", "/pool/fee-preview", json={"amount": amount, "token": token}
        )
        return self._parse(FeePreview, data)

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as err:
            logger.warning("blinded_pool_transport_error", path=path, error=str(err))
            raise BlindedPoolApiError(f"Blinded pool request failed: {err}") from err

        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "blinded_pool_api_error",
                path=path,
                status_code=response.status_code,
                message=message,
            )
            raise BlindedPoolApiError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as err:
            raise BlindedPoolApiError(f"Invalid JSON from {path}") from err

    @staticmethod
    def _parse(model: type[BaseModel], data: Any) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as err:
            raise BlindedPoolApiError(f"Unexpected {model.__name__} payload: {err}") from err


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)
