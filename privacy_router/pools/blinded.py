"""Blinded pool adapter.

Every fund-moving call returns a server-built unsigned transaction; the
caller's wallet signs and submits it. Transfers come in two flavours:
internal (amount hidden, recipient must also hold a pool account) and
external (amount visible, sender hidden), the latter being how funds leave
the pool towards an arbitrary address such as a swap deposit address.
"""

from __future__ import annotations

import base64
import binascii
from decimal import Decimal

import structlog

from privacy_router.collaborators import Wallet
from privacy_router.constants import BLINDED_POOL_DEFAULT_FEE_RATE, BLINDED_POOL_FEE_RATES, SOL
from privacy_router.errors import PrivacyRouterError, SettlementError, TransferValidationError
from privacy_router.fees.models import VerifiedRateFeeModel
from privacy_router.log import short
from privacy_router.models.assets import Asset
from privacy_router.pools.base import (
    PoolBalance,
    PoolCapability,
    PoolReceipt,
    PoolStage,
    StatusCallback,
    StatusReporter,
    TransferType,
    describe_capability,
    validate_amount,
    validate_recipient,
)
from privacy_router.pools.blinded_api import BlindedPoolApi, UnsignedTxResponse

logger = structlog.get_logger()


def _check_unsigned_tx(payload: str) -> None:
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as err:
        raise SettlementError("Pool returned a malformed unsigned transaction") from err
    if not raw:
        raise SettlementError("Pool returned an empty unsigned transaction")


class BlindedPoolProvider:
    """PrivacyPoolProvider for the blinded pool.

    Args:
        api: REST client of the pool
        wallet: Caller's public wallet, used for its address and signatures
        asset: Pool-native asset
        minimum_amount: Smallest amount the pool accepts (base units)
        name: Provider name for logs
    """

    def __init__(
        self,
        api: BlindedPoolApi,
        wallet: Wallet,
        asset: Asset = SOL,
        minimum_amount: int = 0,
        name: str = "blinded",
    ) -> None:
        self._api = api
        self._wallet = wallet
        self._minimum_amount = minimum_amount
        self.capability: PoolCapability = describe_capability(
            self,
            name=name,
            native_asset=asset,
            requires_wallet_signature=True,
        )

    @property
    def native_asset(self) -> Asset:
        return self.capability.native_asset

    @property
    def token(self) -> str:
        return self.capability.native_asset.symbol

    async def fee_model(self) -> VerifiedRateFeeModel:
        rate = Decimal(BLINDED_POOL_FEE_RATES.get(self.token, BLINDED_POOL_DEFAULT_FEE_RATE))
        return VerifiedRateFeeModel(self, rate=rate, minimum_gross=self._minimum_amount)

    async def preview_fee(self, gross: int) -> tuple[int, int]:
        """Pool's own fee figures for a gross amount, as (fee, net)."""
        preview = await self._api.fee_preview(gross, self.token)
        return preview.fee, preview.net_amount

    async def fund(self, amount: int, on_status: StatusCallback | None = None) -> PoolReceipt:
        validate_amount(amount)
        self._check_minimum(amount)
        report = StatusReporter(on_status, self.capability.name, "fund")
        report(PoolStage.PREPARING)
        try:
            wallet = await self._wallet.get_address()
            response = await self._api.deposit(wallet, amount, self.token)
            tx_hash = await self._settle(response, report)
        except PrivacyRouterError as err:
            report.failed(str(err))
            raise
        except Exception as err:
            report.failed(str(err))
            raise SettlementError(f"Blinded pool deposit failed: {err}") from err

        report(PoolStage.COMPLETED, tx_hash)
        logger.info("pool_funded", pool=self.capability.name, amount=amount, tx=short(tx_hash))
        return PoolReceipt(tx_hash=tx_hash, amount=amount)

    async def withdraw(
        self,
        destination_address: str,
        amount: int,
        on_status: StatusCallback | None = None,
    ) -> PoolReceipt:
        validate_amount(amount)
        validate_recipient(destination_address)
        self._check_minimum(amount)
        report = StatusReporter(on_status, self.capability.name, "withdraw")
        report(PoolStage.PREPARING)
        try:
            wallet = await self._wallet.get_address()
            response = await self._api.withdraw(wallet, amount, self.token, destination_address)
            tx_hash = await self._settle(response, report)
        except PrivacyRouterError as err:
            report.failed(str(err))
            raise
        except Exception as err:
            report.failed(str(err))
            raise SettlementError(f"Blinded pool withdrawal failed: {err}") from err

        report(PoolStage.COMPLETED, tx_hash)
        logger.info(
            "pool_withdrawn",
            pool=self.capability.name,
            amount=amount,
            recipient=short(destination_address),
            tx=short(tx_hash),
        )
        return PoolReceipt(tx_hash=tx_hash, amount=amount)

    async def transfer(
        self,
        recipient: str,
        amount: int,
        transfer_type: TransferType = TransferType.EXTERNAL,
        on_status: StatusCallback | None = None,
    ) -> PoolReceipt:
        """Send pool funds to a recipient.

        Raises:
            TransferValidationError: If the recipient is the sender itself
            SettlementError: If the pool or wallet rejects the transfer
        """
        validate_amount(amount)
        validate_recipient(recipient)
        self._check_minimum(amount)
        sender = await self._wallet.get_address()
        if sender == recipient:
            raise TransferValidationError("Cannot transfer to yourself")

        report = StatusReporter(on_status, self.capability.name, f"transfer_{transfer_type.value}")
        report(PoolStage.PREPARING)
        try:
            response = await self._api.transfer(
                sender, recipient, amount, self.token, transfer_type.value
            )
            tx_hash = await self._settle(response, report)
        except PrivacyRouterError as err:
            report.failed(str(err))
            raise
        except Exception as err:
            report.failed(str(err))
            raise SettlementError(f"Blinded pool transfer failed: {err}") from err

        report(PoolStage.COMPLETED, tx_hash)
        logger.info(
            "pool_transferred",
            pool=self.capability.name,
            transfer_type=transfer_type.value,
            amount=amount,
            recipient=short(recipient),
            tx=short(tx_hash),
        )
        return PoolReceipt(tx_hash=tx_hash, amount=amount)

    async def balance(self) -> PoolBalance:
        wallet = await self._wallet.get_address()
        response = await self._api.get_balance(wallet, self.token)
        return PoolBalance(asset=self.capability.native_asset, base_units=response.available)

    async def _settle(self, response: UnsignedTxResponse, report: StatusReporter) -> str:
        """Sign and submit a server-built transaction, or accept a relayed one."""
        if not response.success:
            raise SettlementError(response.message or "Pool rejected the request")

        if response.unsigned_tx_base64:
            _check_unsigned_tx(response.unsigned_tx_base64)
            report(PoolStage.SUBMITTING)
            tx_hash = await self._wallet.sign_and_submit(response.unsigned_tx_base64)
        elif response.tx_hash:
            report(PoolStage.SUBMITTING)
            tx_hash = response.tx_hash
        else:
            raise SettlementError(response.message or "No transaction returned from pool")

        report(PoolStage.CONFIRMING, tx_hash)
        return tx_hash

    def _check_minimum(self, amount: int) -> None:
        if amount < self._minimum_amount:
            raise TransferValidationError(
                f"Amount {amount} is below the {self.token} minimum of {self._minimum_amount}"
            )
