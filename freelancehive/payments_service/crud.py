from sqlalchemy.orm import Session
from datetime import datetime, timezone
from typing import Optional
import logging

from freelancehive.payments_service.models import EscrowPayment, EscrowStatus, Coupon

logger = logging.getLogger(__name__)

DEFAULT_ESCROW_DESCRIPTION = "Escrow payment"


# ------- Escrow -------
def create_escrow_payment(db: Session, contract_id: int, amount: float, description: Optional[str] = None):
    payment = EscrowPayment(
        contract_id=contract_id,
        amount=amount,
        status=EscrowStatus.PENDING.value,
        type="escrow",
        description=description or DEFAULT_ESCROW_DESCRIPTION,
        created_at=datetime.utcnow(),
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    logger.info("Escrow payment %s of %s created on contract %s", payment.id, amount, contract_id)
    return payment


def get_escrow_payment(db: Session, contract_id: int, payment_id: str, for_update: bool = False):
    query = db.query(EscrowPayment).filter(
        EscrowPayment.id == payment_id,
        EscrowPayment.contract_id == contract_id,
    )
    if for_update:
        query = query.with_for_update()
    return query.first()


def list_escrow_payments(db: Session, contract_id: int):
    return db.query(EscrowPayment).filter(
        EscrowPayment.contract_id == contract_id
    ).order_by(EscrowPayment.created_at).all()


def release_escrow_payment(db: Session, payment: EscrowPayment):
    """Mark a pending payment completed; an already released one is returned as is."""
    if payment.status == EscrowStatus.COMPLETED.value:
        db.commit()
        return payment
    payment.status = EscrowStatus.COMPLETED.value
    payment.completed_at = datetime.utcnow()
    db.commit()
    db.refresh(payment)
    logger.info("Escrow payment %s released", payment.id)
    return payment


# ------- Coupons -------
def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def coupon_problem(coupon: Coupon, now: Optional[datetime] = None) -> Optional[str]:
    """Why a coupon cannot be redeemed, or None when it can."""
    now = _naive_utc(now or datetime.utcnow())
    if not coupon.is_active:
        return "Coupon is not active"
    if coupon.expires_at is not None and _naive_utc(coupon.expires_at) < now:
        return "Coupon has expired"
    if coupon.max_uses is not None and (coupon.used_count or 0) >= coupon.max_uses:
        return "Coupon usage limit reached"
    return None


def coupon_is_valid(coupon: Coupon, now: Optional[datetime] = None) -> bool:
    return coupon_problem(coupon, now) is None


def get_coupon(db: Session, coupon_id: int):
    return db.query(Coupon).filter(Coupon.id == coupon_id).first()


def get_coupon_by_code(db: Session, code: str, for_update: bool = False):
    query = db.query(Coupon).filter(Coupon.code == code.strip().upper())
    if for_update:
        query = query.with_for_update()
    return query.first()


def list_coupons(db: Session, is_active: Optional[bool] = None):
    query = db.query(Coupon)
    if is_active is not None:
        query = query.filter(Coupon.is_active == is_active)
    return query.order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()


def create_coupon(db: Session, code: str, discount: float, max_uses: Optional[int] = None, expires_at: Optional[datetime] = None):
    coupon = Coupon(
        code=code.strip().upper(),
        discount=discount,
        max_uses=max_uses,
        expires_at=expires_at,
        used_count=0,
        is_active=True,
    )
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    logger.info("Coupon %s created", coupon.code)
    return coupon


def update_coupon(db: Session, coupon: Coupon, **kwargs):
    for key, value in kwargs.items():
        if not hasattr(coupon, key):
            continue
        # max_uses and expires_at may be cleared with an explicit null
        if value is None and key not in ("max_uses", "expires_at"):
            continue
        setattr(coupon, key, value)
    db.commit()
    db.refresh(coupon)
    return coupon


def delete_coupon(db: Session, coupon: Coupon):
    db.delete(coupon)
    db.commit()


def use_coupon(db: Session, coupon: Coupon):
    db.query(Coupon).filter(Coupon.id == coupon.id).update(
        {Coupon.used_count: Coupon.used_count + 1}, synchronize_session=False
    )
    db.commit()
    db.refresh(coupon)
    logger.info("Coupon %s used (%s/%s)", coupon.code, coupon.used_count, coupon.max_uses or "unlimited")
    return coupon
