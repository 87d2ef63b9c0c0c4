from pydantic import Field, field_validator
from typing import List, Optional
from datetime import datetime

from freelancehive.schemas import CamelModel


class EscrowCreateRequest(CamelModel):
    contract_id: int
    amount: float = Field(gt=0)
    description: Optional[str] = None


class EscrowReleaseRequest(CamelModel):
    contract_id: int
    payment_id: str = Field(min_length=1)


class EscrowPaymentResponse(CamelModel):
    id: str
    contract_id: int
    amount: float
    status: str
    type: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class EscrowPaymentEnvelope(CamelModel):
    payment: EscrowPaymentResponse
    message: Optional[str] = None


class EscrowPaymentListResponse(CamelModel):
    payments: List[EscrowPaymentResponse]


def escrow_payment_dict(payment) -> dict:
    """JSON-ready camelCase view of a payment, as nested in contract metadata."""
    return EscrowPaymentResponse.model_validate(payment).model_dump(by_alias=True, mode="json")


# ------- Coupons -------
class CouponCodeRequest(CamelModel):
    code: str = Field(min_length=1)


class CouponCreate(CamelModel):
    code: str = Field(min_length=1, max_length=64)
    discount: float = Field(gt=0)
    max_uses: Optional[int] = Field(None, ge=1)
    expires_at: Optional[datetime] = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: str) -> str:
        return value.strip().upper()


class CouponUpdate(CamelModel):
    discount: Optional[float] = Field(None, gt=0)
    max_uses: Optional[int] = Field(None, ge=1)
    expires_at: Optional[datetime] = None
    is_active: Optional[bool] = None


class CouponResponse(CamelModel):
    id: int
    code: str
    discount: float
    max_uses: Optional[int] = None
    used_count: int
    expires_at: Optional[datetime] = None
    is_active: bool
    created_at: Optional[datetime] = None


class CouponEnvelope(CamelModel):
    coupon: CouponResponse
    message: Optional[str] = None


class CouponListResponse(CamelModel):
    coupons: List[CouponResponse]


class CouponValidationResponse(CamelModel):
    valid: bool
    discount: float
    coupon: CouponResponse
