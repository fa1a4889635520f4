"""Payout service - mentor payout settings, threshold payouts and scheduled processing"""

import logging
import math

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ... import config
from ...database import run_in_transaction
from ...models import Transaction, User
from ...shared.time_utils import utcnow
from ..ledger.service import LedgerService
from ..notifications.service import NotificationService
from .repository import PayoutRepository
from .schemas import PayoutSettingsUpdate

logger = logging.getLogger(__name__)


def serialize_settings(settings: dict | None) -> dict:
    settings = settings or {}
    return {
        "paymentMethod": settings.get("payment_method"),
        "paypalEmail": settings.get("paypal_email"),
        "bankDetails": settings.get("bank_details"),
        "autoPayout": bool(settings.get("auto_payout", False)),
        "lastUpdated": settings.get("last_updated"),
    }


class PayoutService:
    """Service layer for mentor payouts"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PayoutRepository()
        self.ledger = LedgerService(db)
        self.notifications = NotificationService(db)

    def get_settings(self, user: User) -> dict:
        total, count, latest = self.repo.payout_summary(self.db, user.id)
        return {
            "settings": serialize_settings(user.payout_settings),
            "stats": {
                "totalPaidOut": round(total, 2),
                "payoutCount": count,
                "lastPayoutAt": latest.isoformat() if latest else None,
            },
            "currentBalance": self.ledger.get_balance(user),
            "minimumPayout": config.PAYOUT_MINIMUM,
        }

    def update_settings(self, user: User, data: PayoutSettingsUpdate) -> dict:
        if data.paymentMethod == "paypal" and not data.paypalEmail:
            raise HTTPException(status_code=400, detail="PayPal email is required for PayPal payouts")
        if data.paymentMethod == "bank_transfer" and not data.bankDetails:
            raise HTTPException(status_code=400, detail="Bank details are required for bank transfers")

        user.payout_settings = {
            "payment_method": data.paymentMethod,
            "paypal_email": data.paypalEmail if data.paymentMethod == "paypal" else None,
            "bank_details": data.bankDetails.model_dump() if data.paymentMethod == "bank_transfer" else None,
            "auto_payout": data.autoPayout,
            "last_updated": utcnow().isoformat(),
        }
        self.db.commit()
        logger.info(f"✅ Payout settings updated for mentor {user.id} ({data.paymentMethod})")
        return serialize_settings(user.payout_settings)

    def pay_out(self, user: User) -> Transaction:
        """Debit the mentor's whole balance as one payout and notify them"""

        def operation():
            amount = self.ledger.get_balance(user)
            method = (user.payout_settings or {}).get("payment_method")
            transaction = self.ledger.apply(
                user.id,
                -amount,
                "payout",
                f"Payout via {method}",
                meta={"paymentMethod": method},
            )
            self.notifications.payout_processed(user.id, amount, transaction.id)
            return transaction

        transaction = run_in_transaction(self.db, operation)
        self.db.refresh(transaction)
        logger.info(f"💸 Paid out {-transaction.amount:.2f} to mentor {user.id}")
        return transaction

    def request_payout(self, user: User) -> Transaction:
        balance = self.ledger.get_balance(user)
        if balance < config.PAYOUT_MINIMUM:
            raise HTTPException(status_code=400, detail=f"Minimum payout amount is ${config.PAYOUT_MINIMUM:.0f}")
        if not (user.payout_settings or {}).get("payment_method"):
            raise HTTPException(status_code=400, detail="Please configure your payout settings first")
        return self.pay_out(user)

    def history(self, user: User, page: int = 1, limit: int = 10) -> tuple[list[Transaction], dict]:
        _, total, _ = self.repo.payout_summary(self.db, user.id)
        payouts = self.repo.list_payouts(self.db, user.id, offset=(page - 1) * limit, limit=limit)
        return payouts, {
            "total": total,
            "page": page,
            "pages": math.ceil(total / limit) if limit else 0,
            "limit": limit,
        }


def process_scheduled_payouts(db: Session) -> int:
    """Pay out every approved mentor with auto payout enabled and a balance over the minimum"""
    service = PayoutService(db)
    paid = 0
    for mentor in service.repo.auto_payout_candidates(db, config.PAYOUT_MINIMUM):
        if not (mentor.payout_settings or {}).get("payment_method"):
            logger.warning(f"⚠️ Mentor {mentor.id} has auto payout enabled but no payment method")
            continue
        try:
            service.pay_out(mentor)
            paid += 1
        except (HTTPException, SQLAlchemyError) as e:
            logger.error(f"❌ Scheduled payout failed for mentor {mentor.id}: {e}")
    logger.info(f"💸 Scheduled payouts processed: {paid} mentor(s) paid")
    return paid
