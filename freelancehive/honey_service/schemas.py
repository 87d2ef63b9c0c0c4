from pydantic import Field
from typing import List, Optional, Any, Dict
from datetime import datetime

from freelancehive.schemas import CamelModel


class PurchaseRequest(CamelModel):
    amount: int = Field(gt=0)
    payment_id: Optional[str] = None
    description: Optional[str] = None


class SpendRequest(CamelModel):
    amount: int = Field(gt=0)
    description: Optional[str] = None


class RefundRequest(CamelModel):
    amount: int = Field(gt=0)
    description: Optional[str] = None
    original_transaction_id: Optional[int] = None


class HoneyTransactionResponse(CamelModel):
    id: int
    user_id: int
    amount: int
    type: str
    description: Optional[str] = None
    payment_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_transaction(cls, transaction):
        # the ORM attribute `metadata` belongs to the declarative base
        return cls(
            id=transaction.id,
            user_id=transaction.user_id,
            amount=transaction.amount,
            type=transaction.type,
            description=transaction.description,
            payment_id=transaction.payment_id,
            metadata=transaction.transaction_metadata,
            created_at=transaction.created_at,
        )


class HoneyTransactionEnvelope(CamelModel):
    transaction: HoneyTransactionResponse
    message: Optional[str] = None


class HoneyTransactionListResponse(CamelModel):
    transactions: List[HoneyTransactionResponse]


class BalanceResponse(CamelModel):
    balance: int


class ApplicationRefundRequest(CamelModel):
    job_id: int
    selected_applicant_id: int


class ApplicationRefundResponse(CamelModel):
    message: str
    refunded_count: int
    refund_amount: int
    refunded_users: List[int]
