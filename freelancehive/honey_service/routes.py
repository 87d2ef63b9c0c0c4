from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from freelancehive.config import Settings, get_settings
from freelancehive.database import get_db
from freelancehive.events import publish_event
from freelancehive.auth_service.auth import get_current_user, is_admin
from freelancehive.auth_service.models import User
from freelancehive.project_service.crud import get_job
from freelancehive.honey_service.models import HoneyTransactionType
from freelancehive.honey_service.schemas import (
    PurchaseRequest, SpendRequest, RefundRequest, HoneyTransactionResponse, HoneyTransactionEnvelope,
    HoneyTransactionListResponse, BalanceResponse, ApplicationRefundRequest, ApplicationRefundResponse,
)
from freelancehive.honey_service.crud import (
    ProfileNotFoundError, InsufficientBalanceError, get_balance, list_transactions,
    purchase, spend, refund, refund_rejected_applicants,
)

router = APIRouter(prefix="/api/honey", tags=["honey"])
refunds_router = APIRouter(prefix="/api/refunds", tags=["refunds"])


def ledger_error(exc: Exception) -> HTTPException:
    if isinstance(exc, InsufficientBalanceError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.get("/balance", response_model=BalanceResponse)
def get_balance_endpoint(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    try:
        return {"balance": get_balance(db, current_user.id)}
    except ProfileNotFoundError as exc:
        raise ledger_error(exc)


@router.get("/transactions", response_model=HoneyTransactionListResponse)
def get_transactions_endpoint(
    type: Optional[HoneyTransactionType] = None,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    transactions = list_transactions(db, current_user.id, type.value if type else None, limit)
    return {"transactions": [HoneyTransactionResponse.from_transaction(t) for t in transactions]}


@router.post("/purchase", response_model=HoneyTransactionEnvelope, status_code=status.HTTP_201_CREATED)
def purchase_endpoint(
    request: PurchaseRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        transaction = purchase(db, current_user.id, request.amount, request.payment_id, request.description)
    except (ProfileNotFoundError, InsufficientBalanceError) as exc:
        raise ledger_error(exc)
    publish_event("honey.purchased", {"user_id": current_user.id, "amount": request.amount})
    return {
        "transaction": HoneyTransactionResponse.from_transaction(transaction),
        "message": "Honey Drops purchased successfully",
    }


@router.post("/spend", response_model=HoneyTransactionEnvelope)
def spend_endpoint(
    request: SpendRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        transaction = spend(db, current_user.id, request.amount, request.description)
    except (ProfileNotFoundError, InsufficientBalanceError) as exc:
        raise ledger_error(exc)
    publish_event("honey.spent", {"user_id": current_user.id, "amount": request.amount})
    return {
        "transaction": HoneyTransactionResponse.from_transaction(transaction),
        "message": "Honey Drops spent successfully",
    }


@router.post("/refund", response_model=HoneyTransactionEnvelope)
def refund_endpoint(
    request: RefundRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    if not settings.honey_self_refund_enabled and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    try:
        transaction = refund(
            db,
            current_user.id,
            request.amount,
            description=request.description,
            original_transaction_id=request.original_transaction_id,
        )
    except (ProfileNotFoundError, InsufficientBalanceError) as exc:
        raise ledger_error(exc)
    publish_event("honey.refunded", {"user_id": current_user.id, "amount": request.amount})
    return {
        "transaction": HoneyTransactionResponse.from_transaction(transaction),
        "message": "Honey Drops refunded successfully",
    }


@refunds_router.post("/application-honey-drops", response_model=ApplicationRefundResponse)
def refund_application_honey_drops_endpoint(
    request: ApplicationRefundRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    job = get_job(db, request.job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    if job.client_id != current_user.id and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to refund applicants of this job")

    amount = settings.application_refund_amount
    refunded_users = refund_rejected_applicants(db, job.id, request.selected_applicant_id, amount)
    publish_event("honey.applications_refunded", {"job_id": job.id, "refunded_users": refunded_users})
    return {
        "message": "Honey drops refunded successfully",
        "refunded_count": len(refunded_users),
        "refund_amount": amount,
        "refunded_users": refunded_users,
    }
