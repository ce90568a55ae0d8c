"""
Credit Report Parser - SQLAlchemy ORM Models
Tables written by the persistence layer after a report is parsed
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Float, DateTime, Date, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from ..database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class ClientDB(Base):
    """Person whose credit reports are being ingested."""
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=_uuid)  # UUID
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    credit_items = relationship("CreditItemDB", back_populates="client", cascade="all, delete-orphan")
    credit_scores = relationship("CreditScoreDB", back_populates="client", cascade="all, delete-orphan")
    personal_profiles = relationship("PersonalProfileDB", back_populates="client", cascade="all, delete-orphan")


class CreditItemDB(Base):
    """One account as reported by one bureau - the unit disputes are tracked on."""
    __tablename__ = "credit_items"

    id = Column(String(36), primary_key=True, default=_uuid)  # UUID
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)

    bureau = Column(String(20), nullable=False, index=True)  # transunion / experian / equifax
    account_name = Column(String(255), nullable=False)
    account_number = Column(String(100), nullable=True)
    account_number_last4 = Column(String(50), nullable=True, index=True)  # normalized identifier
    account_type = Column(String(100), nullable=True)
    original_creditor = Column(String(255), nullable=True)

    balance = Column(Float, default=0.0)
    high_limit = Column(Float, nullable=True)
    monthly_pay = Column(Float, nullable=True)
    past_due = Column(Float, nullable=True)

    status = Column(String(100), nullable=True)  # canonical account state, e.g. CURRENT
    payment_status = Column(String(255), nullable=True)  # as printed, e.g. "Late 30 Days"

    date_opened = Column(Date, nullable=True)
    date_last_active = Column(Date, nullable=True)
    date_reported = Column(Date, nullable=True)

    payment_history = Column(Text, nullable=True)
    terms = Column(String(100), nullable=True)
    reason = Column(Text, nullable=True)

    # Discrepancy flags found when the item was first saved
    discrepancy_flags = Column(JSON, nullable=True, default=list)

    # pending / sent / deleted / verified
    dispute_status = Column(String(20), default="pending", index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    client = relationship("ClientDB", back_populates="credit_items")


class CreditScoreDB(Base):
    """Scores from one report."""
    __tablename__ = "credit_scores"

    id = Column(String(36), primary_key=True, default=_uuid)  # UUID
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)

    transunion = Column(Integer, nullable=True)
    experian = Column(Integer, nullable=True)
    equifax = Column(Integer, nullable=True)
    report_date = Column(Date, nullable=True)
    reference_number = Column(String(100), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    client = relationship("ClientDB", back_populates="credit_scores")


class PersonalProfileDB(Base):
    """Identity data as one bureau reports it; one row per (client, bureau)."""
    __tablename__ = "personal_profiles"

    id = Column(String(36), primary_key=True, default=_uuid)  # UUID
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)

    bureau = Column(String(20), nullable=False)
    name = Column(String(255), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    current_address = Column(String(500), nullable=True)
    previous_address = Column(String(500), nullable=True)
    employer = Column(String(255), nullable=True)
    date_reported = Column(Date, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    client = relationship("ClientDB", back_populates="personal_profiles")
