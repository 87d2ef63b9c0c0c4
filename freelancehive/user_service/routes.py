from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional

from freelancehive.config import Settings, get_settings
from freelancehive.database import get_db
from freelancehive.events import publish_event
from freelancehive.schemas import MessageResponse
from freelancehive.auth_service.auth import get_current_user, require_admin
from freelancehive.auth_service.crud import get_user_by_id, get_user_by_email
from freelancehive.auth_service.models import User, UserRole
from freelancehive.user_service.schemas import (
    ReferralCreate, ReferralResponse, ReferralEnvelope, ReferralListResponse, ReferralSummary,
    ReferralBonusResponse, ReferralBonusListResponse, ProfileUpdate, PublicProfileResponse,
    ProfileEnvelope, ProfileListResponse, EarningResponse, EarningListResponse, AdminUserUpdate,
    AdminUserResponse, AdminUserEnvelope, AdminUserListResponse, DashboardStatsResponse,
    DeleteAccountRequest, ExportResponse,
)
from freelancehive.user_service.crud import (
    get_profile_by_user_id, get_profile, update_profile, search_freelancers,
    count_referrals, get_referrals, get_referral_by_email, create_referral, get_referral_bonuses,
    get_earnings, total_earnings, list_users, page_count, update_user, dashboard_stats,
    export_user_data, delete_account,
)

profiles_router = APIRouter(prefix="/api/profiles", tags=["profiles"])
earnings_router = APIRouter(prefix="/api/earnings", tags=["earnings"])
referrals_router = APIRouter(prefix="/api/referrals", tags=["referrals"])
gdpr_router = APIRouter(prefix="/api/gdpr", tags=["gdpr"])
admin_router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])

DELETE_CONFIRMATION = "DELETE"


# ------- Profiles -------
@profiles_router.get("/me", response_model=ProfileEnvelope)
def get_my_profile_endpoint(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    profile = get_profile_by_user_id(db, current_user.id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return {"profile": PublicProfileResponse.model_validate(profile)}


@profiles_router.put("/me", response_model=ProfileEnvelope)
def update_my_profile_endpoint(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    profile = get_profile_by_user_id(db, current_user.id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    profile = update_profile(db, profile, **payload.model_dump(exclude_unset=True))
    return {"profile": PublicProfileResponse.model_validate(profile), "message": "Profile updated successfully"}


@profiles_router.get("/freelancers", response_model=ProfileListResponse)
def list_freelancers_endpoint(
    location: Optional[str] = None,
    min_rate: Optional[float] = Query(None, alias="minRate"),
    max_rate: Optional[float] = Query(None, alias="maxRate"),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    profiles = search_freelancers(db, location=location, min_rate=min_rate, max_rate=max_rate, search=search)
    return {"profiles": [PublicProfileResponse.model_validate(p) for p in profiles]}


@profiles_router.get("/{profile_id}", response_model=ProfileEnvelope)
def get_profile_endpoint(profile_id: int, db: Session = Depends(get_db)):
    profile = get_profile(db, profile_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return {"profile": PublicProfileResponse.model_validate(profile)}


# ------- Earnings -------
@earnings_router.get("/me", response_model=EarningListResponse)
def get_my_earnings_endpoint(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {
        "earnings": [EarningResponse.model_validate(e) for e in get_earnings(db, current_user.id)],
        "total": total_earnings(db, current_user.id),
    }


# ------- Referrals -------
@referrals_router.get("/summary", response_model=ReferralSummary)
def get_referral_summary_endpoint(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    # Single global limit until per-profile limits exist
    return {
        "referral_limit": settings.referral_limit_default,
        "referrals_used": count_referrals(db, current_user.id),
    }


@referrals_router.get("", response_model=ReferralListResponse)
def list_referrals_endpoint(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"referrals": [ReferralResponse.model_validate(r) for r in get_referrals(db, current_user.id)]}


@referrals_router.get("/bonuses", response_model=ReferralBonusListResponse)
def list_referral_bonuses_endpoint(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"bonuses": [ReferralBonusResponse.model_validate(b) for b in get_referral_bonuses(db, current_user.id)]}


@referrals_router.post("", response_model=ReferralEnvelope, status_code=status.HTTP_201_CREATED)
def create_referral_endpoint(
    payload: ReferralCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    if count_referrals(db, current_user.id) >= settings.referral_limit_default:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Referral limit reached")
    if get_referral_by_email(db, payload.referred_email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already referred")
    try:
        referral = create_referral(db, current_user.id, payload.referred_email)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already referred")

    publish_event("referral.created", {"referrer_id": current_user.id, "referral_id": referral.id})
    return {"referral": ReferralResponse.model_validate(referral)}


# ------- Admin moderation -------
@admin_router.get("/dashboard/stats", response_model=DashboardStatsResponse)
def get_dashboard_stats_endpoint(db: Session = Depends(get_db)):
    return {"stats": dashboard_stats(db)}


@admin_router.get("/users", response_model=AdminUserListResponse)
def list_users_endpoint(
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    users, total = list_users(db, role=role, is_active=is_active, search=search, page=page, limit=limit)
    return {
        "users": [AdminUserResponse.model_validate(u) for u in users],
        "pagination": {"total": total, "page": page, "limit": limit, "total_pages": page_count(total, limit)},
    }


@admin_router.put("/users/{user_id}", response_model=AdminUserEnvelope)
def update_user_endpoint(user_id: int, payload: AdminUserUpdate, db: Session = Depends(get_db)):
    user = get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if payload.email and payload.email.lower() != user.email and get_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    user = update_user(db, user, **payload.model_dump(exclude_unset=True))
    if payload.is_active is False:
        publish_event("user.deactivated", {"user_id": user.id})
    return {"user": AdminUserResponse.model_validate(user), "message": "User updated successfully"}


@admin_router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if user_id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete your own account")
    user = get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    delete_account(db, user)
    publish_event("user.deleted", {"user_id": user_id, "deleted_by": admin.id})
    return {"message": "User deleted successfully"}


# ------- GDPR -------
@gdpr_router.get("/export-data", response_model=ExportResponse)
def export_data_endpoint(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {
        "success": True,
        "data": export_user_data(db, current_user),
        "message": "User data exported successfully",
    }


@gdpr_router.post("/delete-account", response_model=MessageResponse)
def delete_account_endpoint(
    payload: DeleteAccountRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if payload.confirmation != DELETE_CONFIRMATION:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Confirmation required. Send confirmation: "DELETE"',
        )
    user_id = current_user.id
    delete_account(db, current_user)
    publish_event("user.deleted", {"user_id": user_id})
    return {"message": "User account deleted successfully"}
