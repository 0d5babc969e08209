from enum import Enum
import uuid

from sqlalchemy import Column, String, DateTime, Boolean, Index

from pg_finder.models.base import Base, utcnow


class OtpPurpose(str, Enum):
    REGISTRATION = "registration"
    PASSWORD_RESET = "password-reset"


class OneTimeCode(Base):
    """
    A numeric code mailed to an address for one purpose.

    is_used only ever goes from False to True. Expired rows are not deleted,
    the expiry check alone makes them unusable. verified_at and redeemed_at
    are only stamped on password-reset codes.
    """
    __tablename__ = "otps"
    __table_args__ = (Index("ix_otps_email_purpose", "email", "purpose"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, nullable=False)
    code = Column(String, nullable=False)
    purpose = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False)
    is_used = Column(Boolean, nullable=False, default=False)
    verified_at = Column(DateTime, nullable=True)
    redeemed_at = Column(DateTime, nullable=True)

    def mark_used(self):
        self.is_used = True

    def __repr__(self):
        return f"<OneTimeCode email={self.email} purpose={self.purpose} is_used={self.is_used}>"
