"""Request and response models for the preview API."""

from pydantic import BaseModel, Field


class WithdrawalPreviewRequest(BaseModel):
    """Withdrawal to preview.

    destination is an asset label such as "SOL:sol" or "ETH:eth"; amount is
    what must arrive, as a decimal string in destination units.
    """

    destination: str = Field(min_length=1)
    amount: str = Field(min_length=1, description="Decimal amount that must arrive")


class WithdrawalPreviewResponse(BaseModel):
    """Fee breakdown of a withdrawal, in pool asset units."""

    pool_asset: str
    arrive: str
    withdraw: str
    fee: str
    balance: str
    sufficient: bool
    shortfall: str
    price_buffer: str


class MaxWithdrawalResponse(BaseModel):
    """Largest amount that can arrive in an asset from the current balance."""

    asset: str
    amount: str
    base_units: str
