from sqlalchemy.orm import Session
from passlib.context import CryptContext
from typing import Optional
import hashlib
import logging

from freelancehive.auth_service.models import User, UserRole
from freelancehive.user_service.models import Profile

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def _prehash_password(password: str) -> str:
    """
    Pre-hash the raw password using SHA-256 before passing it to bcrypt,
    which rejects inputs longer than 72 bytes.
    """
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def hash_password(password: str) -> str:
    return pwd_context.hash(_prehash_password(password))


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(_prehash_password(plain_password), password_hash)


def get_user_by_email(db: Session, email: str):
    return db.query(User).filter(User.email == email.lower()).first()


def get_user_by_id(db: Session, user_id: int):
    return db.query(User).filter(User.id == user_id).first()


def create_user(
    db: Session,
    email: str,
    password: str,
    role: UserRole,
    full_name: Optional[str] = None,
    company_name: Optional[str] = None,
    phone_number: Optional[str] = None,
):
    """Create the account together with its (single) profile."""
    db_user = User(
        email=email.lower(),
        password_hash=hash_password(password),
        role=role,
        is_admin=role == UserRole.ADMIN,
        phone_number=phone_number,
    )
    db_user.profile = Profile(
        full_name=full_name,
        company_name=company_name,
        honey_drops_balance=0,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info("Registered user %s as %s", db_user.id, role.value)
    return db_user
