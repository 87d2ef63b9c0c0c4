from pydantic import EmailStr, Field, field_validator
from typing import List, Optional, Any, Dict
from datetime import datetime

from freelancehive.schemas import CamelModel
from freelancehive.auth_service.models import UserRole
from freelancehive.auth_service.schemas import UserResponse


class ReferralCreate(CamelModel):
    referred_email: EmailStr


class ReferralResponse(CamelModel):
    id: int
    referrer_id: int
    referred_email: str
    referred_user_id: Optional[int] = None
    status: str
    created_at: Optional[datetime] = None


class ReferralEnvelope(CamelModel):
    referral: ReferralResponse


class ReferralListResponse(CamelModel):
    referrals: List[ReferralResponse]


class ReferralSummary(CamelModel):
    referral_limit: int
    referrals_used: int


class ReferralBonusResponse(CamelModel):
    id: int
    referrer_id: int
    referral_id: int
    amount: float
    currency: str
    status: str
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ReferralBonusListResponse(CamelModel):
    bonuses: List[ReferralBonusResponse]


# ------- Profiles -------
class ProfileUpdate(CamelModel):
    full_name: Optional[str] = None
    company_name: Optional[str] = None
    cvr_number: Optional[str] = None
    bio: Optional[str] = None
    skills: Optional[List[str]] = None
    hourly_rate: Optional[float] = Field(None, ge=0)
    location: Optional[str] = None
    avatar_url: Optional[str] = None
    birthday: Optional[datetime] = None


class ProfileResponse(CamelModel):
    id: int
    user_id: int
    full_name: Optional[str] = None
    bio: Optional[str] = None
    skills: List[Any] = []
    hourly_rate: Optional[float] = None
    company_name: Optional[str] = None
    cvr_number: Optional[str] = None
    location: Optional[str] = None
    avatar_url: Optional[str] = None
    birthday: Optional[datetime] = None
    honey_drops_balance: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("skills", mode="before")
    @classmethod
    def empty_skills(cls, value):
        return value or []


class ProfileOwner(CamelModel):
    id: int
    email: str
    role: UserRole
    email_verified: bool
    phone_verified: bool


class PublicProfileResponse(ProfileResponse):
    user: Optional[ProfileOwner] = None


class ProfileEnvelope(CamelModel):
    profile: PublicProfileResponse
    message: Optional[str] = None


class ProfileListResponse(CamelModel):
    profiles: List[PublicProfileResponse]


# ------- Earnings -------
class EarningResponse(CamelModel):
    id: int
    user_id: int
    job_id: Optional[int] = None
    contract_id: Optional[int] = None
    escrow_payment_id: Optional[str] = None
    amount: float
    currency: str
    payment_period_start: datetime
    payment_period_end: datetime
    payout_date: Optional[datetime] = None
    status: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class EarningListResponse(CamelModel):
    earnings: List[EarningResponse]
    total: float


# ------- Admin -------
class AdminUserResponse(UserResponse):
    profile: Optional[ProfileResponse] = None


class AdminUserUpdate(CamelModel):
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    is_admin: Optional[bool] = None
    email_verified: Optional[bool] = None
    phone_verified: Optional[bool] = None


class AdminUserEnvelope(CamelModel):
    user: AdminUserResponse
    message: Optional[str] = None


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int


class AdminUserListResponse(CamelModel):
    users: List[AdminUserResponse]
    pagination: Pagination


class DashboardStats(CamelModel):
    total_users: int
    total_jobs: int
    total_applications: int
    total_contracts: int
    active_contracts: int
    total_revenue: int


class DashboardStatsResponse(CamelModel):
    stats: DashboardStats


# ------- GDPR -------
class DeleteAccountRequest(CamelModel):
    confirmation: Optional[str] = None


class ExportResponse(CamelModel):
    success: bool = True
    data: Dict[str, Any]
    message: str
