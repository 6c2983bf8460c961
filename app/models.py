from enum import Enum

from sqlalchemy import Column, String, Text, DateTime, Numeric
from app.database import Base


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    VERIFIED = "VERIFIED"      # set by an admin, never by reconciliation
    EXPIRED = "EXPIRED"


class PayoutStatus(str, Enum):
    WAITING_VERIFICATION = "WAITING_VERIFICATION"
    PROCESSING = "PROCESSING"
    TRANSFERRED = "TRANSFERRED"


class Team(Base):
    __tablename__ = "teams"

    id = Column(String, primary_key=True)
    name = Column(String)

    # Payment lifecycle
    payment_trx_id = Column(String, unique=True, index=True, nullable=True)
    payment_url = Column(String, nullable=True)
    payment_status = Column(String, nullable=False, default=PaymentStatus.PENDING.value)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)

    # Payout (net amount received, entered by an admin)
    recorded_amount = Column(Numeric(14, 2), nullable=True)
    payout_status = Column(String, nullable=False, default=PayoutStatus.WAITING_VERIFICATION.value)
    bank_account_name = Column(String, nullable=True)
    bank_account_number = Column(String, nullable=True)
    payout_admin_notes = Column(Text, nullable=True)
    payout_updated_by = Column(String, nullable=True)
    payout_updated_at = Column(DateTime(timezone=True), nullable=True)


class GlobalSetting(Base):
    __tablename__ = "global_settings"

    key = Column(String, primary_key=True)     # e.g. payment_gateway_key
    value = Column(Text, nullable=False)
