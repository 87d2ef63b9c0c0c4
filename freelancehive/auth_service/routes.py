from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from freelancehive.database import get_db
from freelancehive.events import publish_event
from freelancehive.auth_service.auth import get_current_user, token_for_user
from freelancehive.auth_service.crud import get_user_by_email, create_user, verify_password
from freelancehive.auth_service.models import User, UserRole
from freelancehive.auth_service.schemas import UserRegister, UserLogin, UserResponse, AuthSuccessResponse
from freelancehive.user_service.crud import link_referral

router = APIRouter(prefix="/api/auth", tags=["auth"])


def auth_payload(user: User) -> AuthSuccessResponse:
    return AuthSuccessResponse(
        access_token=token_for_user(user),
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=AuthSuccessResponse, status_code=status.HTTP_201_CREATED)
def register(payload: UserRegister, db: Session = Depends(get_db)):
    if payload.role == UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot self-register as admin")
    if get_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    user = create_user(
        db,
        email=payload.email,
        password=payload.password,
        role=payload.role,
        full_name=payload.full_name,
        company_name=payload.company_name,
        phone_number=payload.phone_number,
    )
    link_referral(db, user)
    publish_event("user.registered", {"user_id": user.id, "email": user.email, "role": user.role.value})
    return auth_payload(user)


@router.post("/login", response_model=AuthSuccessResponse)
def login(payload: UserLogin, db: Session = Depends(get_db)):
    user = get_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is disabled")
    return auth_payload(user)


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
