"""Payout schemas"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import normalize_email


class BankDetails(BaseModel):
    accountName: str = Field(min_length=1)
    accountNumber: str = Field(min_length=4)
    routingNumber: Optional[str] = None
    bankName: Optional[str] = None


class PayoutSettingsUpdate(BaseModel):
    paymentMethod: Literal["paypal", "bank_transfer"]
    paypalEmail: Optional[str] = None
    bankDetails: Optional[BankDetails] = None
    autoPayout: bool = False

    @field_validator("paypalEmail")
    @classmethod
    def validate_paypal_email(cls, v):
        if v is None or not v.strip():
            return None
        return normalize_email(v)
