from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional

from freelancehive.config import Settings, get_settings
from freelancehive.database import get_db
from freelancehive.events import publish_event
from freelancehive.schemas import MessageResponse
from freelancehive.auth_service.auth import get_current_user, require_admin, is_admin
from freelancehive.auth_service.models import User
from freelancehive.contract_service.crud import get_contract
from freelancehive.contract_service.lifecycle import party_for
from freelancehive.payments_service.schemas import (
    EscrowCreateRequest, EscrowReleaseRequest, EscrowPaymentResponse, EscrowPaymentEnvelope,
    EscrowPaymentListResponse, CouponCodeRequest, CouponCreate, CouponUpdate, CouponResponse,
    CouponEnvelope, CouponListResponse, CouponValidationResponse,
)
from freelancehive.payments_service.crud import (
    create_escrow_payment, get_escrow_payment, list_escrow_payments, release_escrow_payment,
    coupon_problem, get_coupon, get_coupon_by_code, list_coupons, create_coupon, update_coupon,
    delete_coupon, use_coupon,
)
from freelancehive.user_service.crud import record_earning, award_referral_bonus

router = APIRouter(prefix="/api/payments", tags=["payments"])
coupons_router = APIRouter(prefix="/api/coupons", tags=["coupons"])
admin_coupons_router = APIRouter(prefix="/api/admin/coupons", tags=["admin"])


def load_client_contract(db: Session, contract_id: int, current_user: User, action: str, for_update: bool = False):
    contract = get_contract(db, contract_id, for_update=for_update)
    if not contract:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contract not found")
    if contract.client_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not authorized to {action} payment for this contract",
        )
    return contract


@router.post("/escrow/create", response_model=EscrowPaymentEnvelope)
def create_escrow_endpoint(
    request: EscrowCreateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    contract = load_client_contract(db, request.contract_id, current_user, "create")
    payment = create_escrow_payment(db, contract.id, request.amount, request.description)
    publish_event("escrow.created", {
        "payment_id": payment.id,
        "contract_id": contract.id,
        "amount": payment.amount,
    })
    return {"payment": EscrowPaymentResponse.model_validate(payment), "message": "Escrow payment created successfully"}


@router.post("/escrow/release", response_model=EscrowPaymentEnvelope)
def release_escrow_endpoint(
    request: EscrowReleaseRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    contract = load_client_contract(db, request.contract_id, current_user, "release")
    payment = get_escrow_payment(db, contract.id, request.payment_id, for_update=True)
    if not payment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")

    already_released = payment.completed_at is not None
    payment = release_escrow_payment(db, payment)
    if not already_released:
        if contract.freelancer_id is not None:
            record_earning(db, contract, payment, currency=settings.currency)
            award_referral_bonus(
                db,
                contract.freelancer_id,
                threshold=settings.referral_bonus_threshold,
                amount=settings.referral_bonus_amount,
                currency=settings.currency,
            )
        publish_event("escrow.released", {
            "payment_id": payment.id,
            "contract_id": contract.id,
            "freelancer_id": contract.freelancer_id,
            "amount": payment.amount,
        })
    return {"payment": EscrowPaymentResponse.model_validate(payment), "message": "Escrow payment released successfully"}


@router.get("/escrow/{contract_id}", response_model=EscrowPaymentListResponse)
def list_escrow_endpoint(
    contract_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    contract = get_contract(db, contract_id)
    if not contract:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contract not found")
    if party_for(contract, current_user.id) is None and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view payments for this contract")
    return {"payments": [EscrowPaymentResponse.model_validate(p) for p in list_escrow_payments(db, contract.id)]}


# ------- Coupons -------
def check_coupon(db: Session, code: str, for_update: bool = False):
    coupon = get_coupon_by_code(db, code, for_update=for_update)
    if not coupon:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Coupon not found")
    problem = coupon_problem(coupon)
    if problem:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=problem)
    return coupon


def validation_result(coupon) -> dict:
    return {"valid": True, "discount": float(coupon.discount), "coupon": CouponResponse.model_validate(coupon)}


@coupons_router.post("/validate", response_model=CouponValidationResponse)
def validate_coupon_endpoint(
    request: CouponCodeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return validation_result(check_coupon(db, request.code))


@coupons_router.post("/apply", response_model=CouponValidationResponse)
def apply_coupon_endpoint(
    request: CouponCodeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # Applying only prices the purchase; redemption is counted by the admin use endpoint
    return validation_result(check_coupon(db, request.code))


@admin_coupons_router.get("", response_model=CouponListResponse)
def list_coupons_endpoint(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return {"coupons": [CouponResponse.model_validate(c) for c in list_coupons(db, is_active)]}


@admin_coupons_router.post("", response_model=CouponEnvelope, status_code=status.HTTP_201_CREATED)
def create_coupon_endpoint(
    payload: CouponCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if get_coupon_by_code(db, payload.code):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Coupon code already exists")
    try:
        coupon = create_coupon(db, **payload.model_dump())
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Coupon code already exists")
    return {"coupon": CouponResponse.model_validate(coupon), "message": "Coupon created successfully"}


@admin_coupons_router.get("/validate/{code}", response_model=CouponValidationResponse)
def admin_validate_coupon_endpoint(
    code: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return validation_result(check_coupon(db, code))


@admin_coupons_router.post("/use/{code}", response_model=CouponEnvelope)
def use_coupon_endpoint(
    code: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    coupon = check_coupon(db, code, for_update=True)
    coupon = use_coupon(db, coupon)
    publish_event("coupon.used", {"coupon_id": coupon.id, "code": coupon.code})
    return {"coupon": CouponResponse.model_validate(coupon), "message": "Coupon applied successfully"}


@admin_coupons_router.put("/{coupon_id}", response_model=CouponEnvelope)
def update_coupon_endpoint(
    coupon_id: int,
    payload: CouponUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    coupon = get_coupon(db, coupon_id)
    if not coupon:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Coupon not found")
    coupon = update_coupon(db, coupon, **payload.model_dump(exclude_unset=True))
    return {"coupon": CouponResponse.model_validate(coupon), "message": "Coupon updated successfully"}


@admin_coupons_router.delete("/{coupon_id}", response_model=MessageResponse)
def delete_coupon_endpoint(
    coupon_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    coupon = get_coupon(db, coupon_id)
    if not coupon:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Coupon not found")
    delete_coupon(db, coupon)
    return {"message": "Coupon deleted successfully"}
