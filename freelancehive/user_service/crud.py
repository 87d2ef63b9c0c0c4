from sqlalchemy.orm import Session
from sqlalchemy import func, or_
from datetime import datetime
from typing import Optional, List
import logging
import math

from freelancehive.auth_service.models import User, UserRole
from freelancehive.user_service.models import Profile, Referral, ReferralStatus, Earning, ReferralBonus
from freelancehive.project_service.models import Job, JobApplication
from freelancehive.contract_service.models import Contract, ContractStatus
from freelancehive.contract_service.crud import serialize_contract
from freelancehive.payments_service.models import EscrowPayment
from freelancehive.honey_service.models import HoneyTransaction, HoneyTransactionType
from freelancehive.honey_service.schemas import HoneyTransactionResponse
from freelancehive.auth_service.schemas import UserResponse
from freelancehive.project_service.schemas import JobResponse, ApplicationResponse
from freelancehive.contract_service.schemas import ContractResponse
from freelancehive.user_service.schemas import (
    ProfileResponse, ReferralResponse, EarningResponse, ReferralBonusResponse,
)

logger = logging.getLogger(__name__)

# Profile fields an explicit null clears; the rest keep their value
CLEARABLE_PROFILE_FIELDS = {"company_name", "cvr_number", "bio", "location", "avatar_url"}


# ------- Profiles -------
def get_profile_by_user_id(db: Session, user_id: int):
    return db.query(Profile).filter(Profile.user_id == user_id).first()


def get_profile(db: Session, profile_id: int):
    return db.query(Profile).filter(Profile.id == profile_id).first()


def update_profile(db: Session, profile: Profile, **kwargs):
    for key, value in kwargs.items():
        if not hasattr(profile, key):
            continue
        if value is None and key not in CLEARABLE_PROFILE_FIELDS:
            continue
        setattr(profile, key, value)
    db.commit()
    db.refresh(profile)
    return profile


def search_freelancers(
    db: Session,
    location: Optional[str] = None,
    min_rate: Optional[float] = None,
    max_rate: Optional[float] = None,
    search: Optional[str] = None,
):
    query = db.query(Profile).join(User, User.id == Profile.user_id).filter(
        User.role == UserRole.FREELANCER,
        User.is_active == True,  # noqa: E712
    )
    if location:
        query = query.filter(Profile.location.contains(location))
    if min_rate is not None:
        query = query.filter(Profile.hourly_rate >= min_rate)
    if max_rate is not None:
        query = query.filter(Profile.hourly_rate <= max_rate)
    if search:
        query = query.filter(or_(Profile.full_name.contains(search), Profile.bio.contains(search)))
    return query.order_by(Profile.created_at.desc(), Profile.id.desc()).all()


# ------- Referrals -------
def count_referrals(db: Session, referrer_id: int) -> int:
    return db.query(func.count(Referral.id)).filter(Referral.referrer_id == referrer_id).scalar() or 0


def get_referrals(db: Session, referrer_id: int):
    return db.query(Referral).filter(
        Referral.referrer_id == referrer_id
    ).order_by(Referral.created_at.desc(), Referral.id.desc()).all()


def get_referral_by_email(db: Session, email: str):
    return db.query(Referral).filter(Referral.referred_email == email.strip().lower()).first()


def create_referral(db: Session, referrer_id: int, referred_email: str):
    referral = Referral(
        referrer_id=referrer_id,
        referred_email=referred_email.strip().lower(),
        status=ReferralStatus.PENDING.value,
    )
    db.add(referral)
    db.commit()
    db.refresh(referral)
    logger.info("User %s referred %s", referrer_id, referral.referred_email)
    return referral


def link_referral(db: Session, user: User):
    """Mark a pending referral for the new user's email as registered."""
    referral = get_referral_by_email(db, user.email)
    if not referral or referral.status != ReferralStatus.PENDING.value or referral.referrer_id == user.id:
        return None
    referral.referred_user_id = user.id
    referral.status = ReferralStatus.REGISTERED.value
    db.commit()
    db.refresh(referral)
    logger.info("Referral %s registered as user %s", referral.id, user.id)
    return referral


def get_referral_bonuses(db: Session, referrer_id: int):
    return db.query(ReferralBonus).filter(
        ReferralBonus.referrer_id == referrer_id
    ).order_by(ReferralBonus.created_at.desc(), ReferralBonus.id.desc()).all()


def award_referral_bonus(db: Session, user_id: int, threshold: float, amount: float, currency: str):
    """Pay the referrer of `user_id` once, when that user's earnings reach `threshold`."""
    referral = db.query(Referral).filter(
        Referral.referred_user_id == user_id,
        Referral.status == ReferralStatus.REGISTERED.value,
    ).first()
    if not referral:
        return None
    if total_earnings(db, user_id) < threshold:
        return None

    bonus = ReferralBonus(
        referrer_id=referral.referrer_id,
        referral_id=referral.id,
        amount=amount,
        currency=currency,
        status="pending",
    )
    referral.status = ReferralStatus.REWARDED.value
    db.add(bonus)
    db.commit()
    db.refresh(bonus)
    logger.info("Referral bonus %s of %s %s for user %s", bonus.id, amount, currency, referral.referrer_id)
    return bonus


# ------- Earnings -------
def get_earnings(db: Session, user_id: int):
    return db.query(Earning).filter(
        Earning.user_id == user_id
    ).order_by(Earning.created_at.desc(), Earning.id.desc()).all()


def total_earnings(db: Session, user_id: int) -> float:
    return float(db.query(func.sum(Earning.amount)).filter(Earning.user_id == user_id).scalar() or 0)


def record_earning(db: Session, contract: Contract, payment: EscrowPayment, currency: str):
    """Book a released escrow payment as income of the contract's freelancer."""
    existing = db.query(Earning).filter(Earning.escrow_payment_id == payment.id).first()
    if existing:
        return existing
    released_at = payment.completed_at or datetime.utcnow()
    earning = Earning(
        user_id=contract.freelancer_id,
        job_id=contract.job_id,
        contract_id=contract.id,
        escrow_payment_id=payment.id,
        amount=payment.amount,
        currency=currency,
        payment_period_start=contract.created_at or released_at,
        payment_period_end=released_at,
        status="pending",
        description=payment.description,
    )
    db.add(earning)
    db.commit()
    db.refresh(earning)
    logger.info("Earning %s of %s for user %s", earning.id, earning.amount, earning.user_id)
    return earning


# ------- Admin -------
def list_users(
    db: Session,
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
):
    """One page of users plus the total matching count."""
    query = db.query(User).outerjoin(Profile, Profile.user_id == User.id)
    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    if search:
        query = query.filter(or_(User.email.contains(search), Profile.full_name.contains(search)))
    total = query.count()
    users = query.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return users, total


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def update_user(db: Session, user: User, **kwargs):
    for key, value in kwargs.items():
        if value is None or not hasattr(user, key):
            continue
        setattr(user, key, value.lower() if key == "email" else value)
    db.commit()
    db.refresh(user)
    logger.info("User %s updated: %s", user.id, ", ".join(sorted(k for k, v in kwargs.items() if v is not None)))
    return user


def dashboard_stats(db: Session) -> dict:
    revenue = db.query(func.sum(HoneyTransaction.amount)).filter(
        HoneyTransaction.type == HoneyTransactionType.PURCHASE.value
    ).scalar()
    return {
        "total_users": db.query(func.count(User.id)).scalar() or 0,
        "total_jobs": db.query(func.count(Job.id)).scalar() or 0,
        "total_applications": db.query(func.count(JobApplication.id)).scalar() or 0,
        "total_contracts": db.query(func.count(Contract.id)).scalar() or 0,
        "active_contracts": db.query(func.count(Contract.id)).filter(
            Contract.status == ContractStatus.ACTIVE.value
        ).scalar() or 0,
        "total_revenue": revenue or 0,
    }


# ------- GDPR -------
def _rows(schema, rows) -> List[dict]:
    return [schema.model_validate(row).model_dump(by_alias=True, mode="json") for row in rows]


def export_user_data(db: Session, user: User) -> dict:
    """Everything stored about `user`, as JSON-ready camelCase dicts."""
    profile = get_profile_by_user_id(db, user.id)
    jobs = db.query(Job).filter(Job.client_id == user.id).order_by(Job.id).all()
    applications = db.query(JobApplication).filter(JobApplication.freelancer_id == user.id).order_by(JobApplication.id).all()
    contracts = db.query(Contract).filter(
        or_(Contract.client_id == user.id, Contract.freelancer_id == user.id)
    ).order_by(Contract.id).all()
    transactions = db.query(HoneyTransaction).filter(HoneyTransaction.user_id == user.id).order_by(HoneyTransaction.id).all()
    referrals = db.query(Referral).filter(Referral.referrer_id == user.id).order_by(Referral.id).all()
    earnings = db.query(Earning).filter(Earning.user_id == user.id).order_by(Earning.id).all()
    bonuses = db.query(ReferralBonus).filter(ReferralBonus.referrer_id == user.id).order_by(ReferralBonus.id).all()

    return {
        "user": UserResponse.model_validate(user).model_dump(by_alias=True, mode="json"),
        "profile": ProfileResponse.model_validate(profile).model_dump(by_alias=True, mode="json") if profile else None,
        "jobs": _rows(JobResponse, jobs),
        "applications": _rows(ApplicationResponse, applications),
        "contracts": [
            ContractResponse.model_validate(serialize_contract(c)).model_dump(by_alias=True, mode="json")
            for c in contracts
        ],
        "transactions": [
            HoneyTransactionResponse.from_transaction(t).model_dump(by_alias=True, mode="json")
            for t in transactions
        ],
        "referrals": _rows(ReferralResponse, referrals),
        "earnings": _rows(EarningResponse, earnings),
        "referralBonuses": _rows(ReferralBonusResponse, bonuses),
        "exportedAt": datetime.utcnow().isoformat(),
    }


def delete_account(db: Session, user: User):
    """Hard-delete a user and every row that belongs to them.

    Rows are removed explicitly, children first, so the result does not
    depend on the database enforcing ON DELETE rules. Contracts on which the
    user is only the freelancer stay with the client and lose their
    freelancer reference.
    """
    user_id = user.id
    job_ids = [row.id for row in db.query(Job.id).filter(Job.client_id == user_id)]
    owned_contracts = db.query(Contract.id).filter(
        or_(Contract.client_id == user_id, Contract.job_id.in_(job_ids))
    )
    contract_ids = [row.id for row in owned_contracts]

    # Other freelancers keep their income history without the deleted links
    db.query(Earning).filter(Earning.contract_id.in_(contract_ids)).update(
        {Earning.contract_id: None, Earning.job_id: None}, synchronize_session=False
    )
    db.query(Earning).filter(Earning.user_id == user_id).delete(synchronize_session=False)
    db.query(EscrowPayment).filter(EscrowPayment.contract_id.in_(contract_ids)).delete(synchronize_session=False)
    db.query(Contract).filter(Contract.id.in_(contract_ids)).delete(synchronize_session=False)
    db.query(Contract).filter(Contract.freelancer_id == user_id).update(
        {Contract.freelancer_id: None}, synchronize_session=False
    )
    db.query(JobApplication).filter(
        or_(JobApplication.job_id.in_(job_ids), JobApplication.freelancer_id == user_id)
    ).delete(synchronize_session=False)
    db.query(Job).filter(Job.id.in_(job_ids)).delete(synchronize_session=False)
    db.query(HoneyTransaction).filter(HoneyTransaction.user_id == user_id).delete(synchronize_session=False)
    db.query(ReferralBonus).filter(ReferralBonus.referrer_id == user_id).delete(synchronize_session=False)
    db.query(Referral).filter(Referral.referrer_id == user_id).delete(synchronize_session=False)
    db.query(Referral).filter(Referral.referred_user_id == user_id).update(
        {Referral.referred_user_id: None}, synchronize_session=False
    )
    db.query(Profile).filter(Profile.user_id == user_id).delete(synchronize_session=False)
    db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
    db.commit()
    logger.info("Account %s deleted with all owned data", user_id)
