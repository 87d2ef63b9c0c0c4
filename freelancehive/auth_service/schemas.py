from pydantic import EmailStr, Field
from typing import Optional
from datetime import datetime

from freelancehive.schemas import CamelModel
from freelancehive.auth_service.models import UserRole


class UserRegister(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8)
    role: UserRole = UserRole.CLIENT
    full_name: Optional[str] = None
    company_name: Optional[str] = None
    phone_number: Optional[str] = None


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class UserResponse(CamelModel):
    id: int
    email: str
    role: UserRole
    is_admin: bool
    is_active: bool
    email_verified: bool
    phone_verified: bool
    payment_verified: bool
    created_at: Optional[datetime] = None


class AuthSuccessResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
