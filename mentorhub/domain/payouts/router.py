"""Payout router - mentor-only payout endpoints"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_mentor
from ...database import get_db
from ...models import User
from ..ledger.schemas import TransactionResponse
from .schemas import PayoutSettingsUpdate
from .service import PayoutService

router = APIRouter(prefix="/payouts", tags=["Payouts"])


def get_payout_service(db: Session = Depends(get_db)) -> PayoutService:
    """Dependency injection for PayoutService"""
    return PayoutService(db)


@router.get("/settings")
def get_payout_settings(
    current_user: User = Depends(require_mentor),
    service: PayoutService = Depends(get_payout_service),
):
    return service.get_settings(current_user)


@router.put("/settings")
def update_payout_settings(
    data: PayoutSettingsUpdate,
    current_user: User = Depends(require_mentor),
    service: PayoutService = Depends(get_payout_service),
):
    return {"settings": service.update_settings(current_user, data)}


@router.post("/request")
def request_payout(
    current_user: User = Depends(require_mentor),
    service: PayoutService = Depends(get_payout_service),
):
    transaction = service.request_payout(current_user)
    return {
        "message": "Payout request processed successfully",
        "transaction": TransactionResponse.from_model(transaction),
    }


@router.get("/history")
def get_payout_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(require_mentor),
    service: PayoutService = Depends(get_payout_service),
):
    payouts, pagination = service.history(current_user, page, limit)
    return {"payouts": [TransactionResponse.from_model(t) for t in payouts], "pagination": pagination}
