from sqlalchemy import Column, Integer, String, Float, Text, DateTime, ForeignKey, CheckConstraint, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from freelancehive.database import Base


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("honey_drops_balance >= 0", name="ck_profiles_honey_balance_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    full_name = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    hourly_rate = Column(Float, nullable=True)
    company_name = Column(String, nullable=True)
    cvr_number = Column(String, nullable=True)
    skills = Column(JSON, default=list)
    birthday = Column(DateTime(timezone=True), nullable=True)
    location = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    # Denormalized sum of the user's honey_transactions.amount
    honey_drops_balance = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="profile")


class Referral(Base):
    __tablename__ = "referrals"

    id = Column(Integer, primary_key=True, index=True)
    referrer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    referred_email = Column(String, unique=True, nullable=False)
    referred_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    status = Column(String, default="pending")  # ReferralStatus
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ReferralStatus(str, enum.Enum):
    PENDING = "pending"
    REGISTERED = "registered"
    REWARDED = "rewarded"


class Earning(Base):
    """Freelancer income, one row per released escrow payment."""

    __tablename__ = "earnings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)
    contract_id = Column(Integer, ForeignKey("contracts.id", ondelete="SET NULL"), nullable=True)
    escrow_payment_id = Column(String(36), unique=True, nullable=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(8), nullable=False, default="DKK")
    payment_period_start = Column(DateTime(timezone=True), nullable=False)
    payment_period_end = Column(DateTime(timezone=True), nullable=False)
    payout_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(16), nullable=False, default="pending")  # pending, paid
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ReferralBonus(Base):
    __tablename__ = "referral_bonuses"

    id = Column(Integer, primary_key=True, index=True)
    referrer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    referral_id = Column(Integer, ForeignKey("referrals.id", ondelete="CASCADE"), unique=True, nullable=False)
    amount = Column(Float, nullable=False)
    currency = Column(String(8), nullable=False, default="DKK")
    status = Column(String(16), nullable=False, default="pending")  # pending, paid
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
