"""
Populate the database with sample users and coupons.

Safe to run repeatedly: existing emails and coupon codes are left alone.
"""
from datetime import datetime
import logging

from freelancehive.database import SessionLocal, init_db
from freelancehive.auth_service.crud import get_user_by_email, create_user
from freelancehive.auth_service.models import UserRole
from freelancehive.honey_service.crud import purchase
from freelancehive.payments_service.crud import get_coupon_by_code, create_coupon, update_coupon

logger = logging.getLogger(__name__)

USERS = [
    {
        "email": "admin@freelancehive.com",
        "password": "admin12345",
        "role": UserRole.ADMIN,
        "full_name": "Admin User",
    },
    {
        "email": "freelancer1@freelancehive.com",
        "password": "freelancer123",
        "role": UserRole.FREELANCER,
        "full_name": "John Developer",
        "honey_drops": 20,
    },
    {
        "email": "freelancer2@freelancehive.com",
        "password": "freelancer123",
        "role": UserRole.FREELANCER,
        "full_name": "Jane Designer",
        "honey_drops": 10,
    },
    {
        "email": "client1@freelancehive.com",
        "password": "client12345",
        "role": UserRole.CLIENT,
        "full_name": "Client One",
        "company_name": "Acme Studio",
    },
]

COUPONS = [
    {"code": "WELCOME10", "discount": 10.0, "max_uses": 100, "used_count": 15,
     "expires_at": datetime(2027, 12, 31), "is_active": True},
    {"code": "SUMMER2024", "discount": 20.0, "max_uses": 50, "used_count": 32,
     "expires_at": datetime(2024, 8, 31), "is_active": False},
    {"code": "PREMIUM50", "discount": 50.0, "max_uses": 10, "used_count": 5,
     "expires_at": datetime(2027, 12, 31), "is_active": True},
]


def seed_users(db):
    for data in USERS:
        if get_user_by_email(db, data["email"]):
            logger.info("User %s already exists, skipping", data["email"])
            continue
        user = create_user(
            db,
            email=data["email"],
            password=data["password"],
            role=data["role"],
            full_name=data.get("full_name"),
            company_name=data.get("company_name"),
        )
        if data.get("honey_drops"):
            # Through the ledger so the balance matches the transaction history
            purchase(db, user.id, data["honey_drops"], description="Welcome Honey Drops")
        logger.info("Created %s (%s)", user.email, user.role.value)


def seed_coupons(db):
    for data in COUPONS:
        if get_coupon_by_code(db, data["code"]):
            logger.info("Coupon %s already exists, skipping", data["code"])
            continue
        coupon = create_coupon(
            db,
            code=data["code"],
            discount=data["discount"],
            max_uses=data["max_uses"],
            expires_at=data["expires_at"],
        )
        update_coupon(db, coupon, used_count=data["used_count"], is_active=data["is_active"])
        logger.info("Created coupon %s", coupon.code)


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    init_db()
    db = SessionLocal()
    try:
        seed_users(db)
        seed_coupons(db)
    finally:
        db.close()
    logger.info("Seeding finished")


if __name__ == "__main__":
    main()
