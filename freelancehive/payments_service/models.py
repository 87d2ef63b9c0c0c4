from sqlalchemy import Column, Integer, String, Float, Text, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
import uuid

from freelancehive.database import Base


class EscrowStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class EscrowPayment(Base):
    __tablename__ = "escrow_payments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    contract_id = Column(Integer, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    status = Column(String(16), default=EscrowStatus.PENDING.value, nullable=False)
    type = Column(String(16), default="escrow", nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    contract = relationship("Contract", back_populates="payments")


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(64), unique=True, nullable=False, index=True)
    discount = Column(Float, nullable=False)  # percentage
    max_uses = Column(Integer, nullable=True)  # NULL means unlimited
    used_count = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
