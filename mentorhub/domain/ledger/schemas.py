"""Ledger schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class AddFundsRequest(BaseModel):
    amount: float = Field(gt=0)


class PurchaseCreditsRequest(BaseModel):
    amount: float = Field(gt=0)
    credits: int = Field(gt=0)
    paymentId: str = Field(min_length=1)


class RelatedUser(BaseModel):
    id: int
    firstName: str
    lastName: str


class TransactionResponse(BaseModel):
    id: int
    type: str
    amount: float
    balanceAfter: float
    status: str
    description: str
    sessionId: Optional[int] = None
    groupSessionId: Optional[int] = None
    relatedUser: Optional[RelatedUser] = None
    metadata: dict[str, Any] = {}
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, t) -> "TransactionResponse":
        related = None
        if t.related_user:
            related = RelatedUser(
                id=t.related_user.id, firstName=t.related_user.first_name, lastName=t.related_user.last_name
            )
        return cls(
            id=t.id,
            type=t.type,
            amount=t.amount,
            balanceAfter=t.balance_after,
            status=t.status,
            description=t.description,
            sessionId=t.session_id,
            groupSessionId=t.group_session_id,
            relatedUser=related,
            metadata=t.meta or {},
            createdAt=t.created_at,
        )


class BalanceResponse(BaseModel):
    balance: float


class TransactionResultResponse(BaseModel):
    transaction: TransactionResponse
    newBalance: float


class ReconcileResponse(BaseModel):
    userId: int
    balance: float
    ledgerTotal: float
    consistent: bool
