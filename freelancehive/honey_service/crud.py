"""
Honey Drops ledger.

Every movement inserts one `honey_transactions` row and shifts
`profiles.honey_drops_balance` by the same signed amount inside a single
database transaction, so the balance always equals the sum of the user's
transaction amounts. The balance change is one `UPDATE ... SET balance =
balance + n` statement; debits also carry `WHERE balance >= n` so two
concurrent spends can never take the balance below zero.
"""

from sqlalchemy.orm import Session
from typing import Optional, List
import logging

from freelancehive.user_service.models import Profile
from freelancehive.honey_service.models import HoneyTransaction, HoneyTransactionType
from freelancehive.project_service.crud import get_other_applications

logger = logging.getLogger(__name__)


class ProfileNotFoundError(LookupError):
    pass


class InsufficientBalanceError(ValueError):
    pass


def get_profile(db: Session, user_id: int):
    return db.query(Profile).filter(Profile.user_id == user_id).first()


def get_balance(db: Session, user_id: int) -> int:
    profile = get_profile(db, user_id)
    if not profile:
        raise ProfileNotFoundError("Profile not found")
    return profile.honey_drops_balance


def list_transactions(db: Session, user_id: int, type: Optional[str] = None, limit: int = 50):
    query = db.query(HoneyTransaction).filter(HoneyTransaction.user_id == user_id)
    if type:
        query = query.filter(HoneyTransaction.type == type)
    return query.order_by(HoneyTransaction.created_at.desc(), HoneyTransaction.id.desc()).limit(limit).all()


def record_movement(
    db: Session,
    user_id: int,
    amount: int,
    type: HoneyTransactionType,
    description: Optional[str] = None,
    payment_id: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> HoneyTransaction:
    """Apply a signed balance change and its ledger row as one unit."""
    try:
        query = db.query(Profile).filter(Profile.user_id == user_id)
        if amount < 0:
            query = query.filter(Profile.honey_drops_balance >= -amount)
        updated = query.update(
            {Profile.honey_drops_balance: Profile.honey_drops_balance + amount},
            synchronize_session=False,
        )
        if not updated:
            db.rollback()
            if amount < 0 and get_profile(db, user_id):
                raise InsufficientBalanceError("Insufficient Honey Drops balance")
            raise ProfileNotFoundError("Profile not found")

        transaction = HoneyTransaction(
            user_id=user_id,
            amount=amount,
            type=type.value,
            description=description,
            payment_id=payment_id,
            transaction_metadata=metadata,
        )
        db.add(transaction)
        db.commit()
    except (ProfileNotFoundError, InsufficientBalanceError):
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(transaction)
    logger.info("Honey %s of %+d for user %s (transaction %s)", type.value, amount, user_id, transaction.id)
    return transaction


def purchase(db: Session, user_id: int, amount: int, payment_id: Optional[str] = None, description: Optional[str] = None):
    return record_movement(
        db,
        user_id,
        amount,
        HoneyTransactionType.PURCHASE,
        description=description or f"Purchased {amount} Honey Drops",
        payment_id=payment_id,
    )


def spend(db: Session, user_id: int, amount: int, description: Optional[str] = None):
    return record_movement(
        db,
        user_id,
        -amount,
        HoneyTransactionType.SPEND,
        description=description or "Honey Drops spent",
    )


def refund(
    db: Session,
    user_id: int,
    amount: int,
    description: Optional[str] = None,
    original_transaction_id: Optional[int] = None,
    metadata: Optional[dict] = None,
):
    if original_transaction_id is not None:
        metadata = dict(metadata or {}, originalTransactionId=original_transaction_id)
    return record_movement(
        db,
        user_id,
        amount,
        HoneyTransactionType.REFUND,
        description=description or "Honey Drops refund",
        metadata=metadata,
    )


def refund_rejected_applicants(db: Session, job_id: int, selected_applicant_id: int, amount: int) -> List[int]:
    """Credit `amount` to every applicant of the job except the selected one.

    Each applicant is refunded in its own transaction. A failure for one
    applicant is logged and the batch moves on; applicants without a profile
    are skipped. Returns the ids of the users actually refunded.
    """
    rejected = [
        (application.id, application.freelancer_id)
        for application in get_other_applications(db, job_id, selected_applicant_id)
    ]
    refunded_users = []
    for application_id, freelancer_id in rejected:
        if not get_profile(db, freelancer_id):
            logger.info("Skipping refund for user %s without profile", freelancer_id)
            continue
        try:
            refund(
                db,
                freelancer_id,
                amount,
                description="Refund for rejected job application",
                metadata={"jobId": job_id, "applicationId": application_id},
            )
        except Exception:
            db.rollback()
            logger.exception("Error refunding user %s for job %s", freelancer_id, job_id)
            continue
        refunded_users.append(freelancer_id)

    logger.info("Refunded %s rejected applicants of job %s", len(refunded_users), job_id)
    return refunded_users
