from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
import enum

from freelancehive.database import Base


class HoneyTransactionType(str, enum.Enum):
    PURCHASE = "purchase"
    SPEND = "spend"
    REFUND = "refund"


class HoneyTransaction(Base):
    """One ledger line. Rows are only ever inserted; the profile balance is their running sum."""

    __tablename__ = "honey_transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # signed: spends are negative
    type = Column(String(16), nullable=False, index=True)
    description = Column(Text, nullable=True)
    payment_id = Column(String, nullable=True)  # External payment ID
    transaction_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
