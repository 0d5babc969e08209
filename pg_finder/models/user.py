"""
User Model for Authentication

Handles user accounts, roles and password hashes.
"""

from enum import Enum

from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.orm import relationship
import uuid

from pg_finder.models.base import Base, utcnow


class UserRole(str, Enum):
    SEEKER = "seeker"
    OWNER = "owner"


class User(Base):
    """User model for authentication"""
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, nullable=False, index=True)  # stored lower-case
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default=UserRole.SEEKER.value)
    is_verified = Column(Boolean, nullable=False, default=False)
    profile_image = Column(String, nullable=True)

    # Metadata
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    listings = relationship(
        "PGListingRecord",
        back_populates="owner",
        cascade="all, delete-orphan",
    )

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER.value

    def to_dict(self):
        """Convert to dictionary (exclude password)"""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "profileImage": self.profile_image,
            "isVerified": self.is_verified,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def to_owner_dict(self):
        """Contact block embedded into listings"""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "profileImage": self.profile_image,
        }
