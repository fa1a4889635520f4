"""Ledger router - balance and transaction history endpoints"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import (
    AddFundsRequest,
    BalanceResponse,
    PurchaseCreditsRequest,
    ReconcileResponse,
    TransactionResponse,
    TransactionResultResponse,
)
from .service import LedgerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


def get_ledger_service(db: Session = Depends(get_db)) -> LedgerService:
    """Dependency injection for LedgerService"""
    return LedgerService(db)


@router.get("", response_model=list[TransactionResponse])
def get_transactions(
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    """Transaction history for the current user, newest first"""
    return [TransactionResponse.from_model(t) for t in service.list_transactions(current_user)]


@router.get("/balance", response_model=BalanceResponse)
def get_balance(
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    return BalanceResponse(balance=service.get_balance(current_user))


@router.post("/add-funds", response_model=TransactionResultResponse)
def add_funds(
    data: AddFundsRequest,
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    transaction = service.add_funds(current_user, data.amount)
    return TransactionResultResponse(
        transaction=TransactionResponse.from_model(transaction), newBalance=transaction.balance_after
    )


@router.post("/purchase", response_model=TransactionResultResponse)
def purchase_credits(
    data: PurchaseCreditsRequest,
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    """Record a paid credit package; resubmitting the same paymentId is a no-op"""
    transaction = service.purchase_credits(current_user, data.amount, data.credits, data.paymentId)
    return TransactionResultResponse(
        transaction=TransactionResponse.from_model(transaction),
        newBalance=service.get_balance(current_user),
    )


@router.get("/reconcile", response_model=ReconcileResponse)
def reconcile_balance(
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    return service.reconcile(current_user.id)
