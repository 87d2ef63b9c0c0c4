from sqlalchemy import Column, Integer, String, Float, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from freelancehive.database import Base


class ContractStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    SIGNED = "signed"  # legacy "fully signed" value, new contracts go straight to ACTIVE
    ACTIVE = "active"
    COMPLETED = "completed"


class Contract(Base):
    __tablename__ = "contracts"

    id = Column(Integer, primary_key=True, index=True)
    contract_number = Column(String(32), unique=True, nullable=False, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    freelancer_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    terms = Column(Text, nullable=True)
    payment_terms = Column(Text, nullable=True)
    deadline = Column(DateTime(timezone=True), nullable=True)
    total_amount = Column(Float, nullable=True)
    status = Column(String(32), default=ContractStatus.DRAFT.value, nullable=False)
    client_signature_date = Column(DateTime(timezone=True), nullable=True)
    client_signature_data = Column(Text, nullable=True)
    freelancer_signature_date = Column(DateTime(timezone=True), nullable=True)
    freelancer_signature_data = Column(Text, nullable=True)
    # `metadata` is reserved on declarative classes
    extra_metadata = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    payments = relationship(
        "EscrowPayment",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="EscrowPayment.created_at",
    )
