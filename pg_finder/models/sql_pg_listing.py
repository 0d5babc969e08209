from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship
import uuid

from pg_finder.models.base import Base, utcnow


class PGListingRecord(Base):
    __tablename__ = "pg_listings"
    __table_args__ = (Index("ix_pg_listings_filter", "city", "gender", "monthly_price", "is_available"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Core Fields
    name = Column(String(100), nullable=False)
    description = Column(String(1000), nullable=False)
    gender = Column(String, nullable=False)

    # Location (flattened)
    address = Column(String, nullable=False)
    city = Column(String, nullable=False)
    state = Column(String, nullable=False)
    pincode = Column(String(6), nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)

    # Numeric/Price
    monthly_price = Column(Integer, nullable=False)
    deposit = Column(Integer, nullable=False, default=0)

    # Sub-records, kept as JSON so SQLite and PostgreSQL both work
    amenities = Column(JSON, default=list)
    room_types = Column(JSON, default=list)
    images = Column(JSON, default=list)
    rules = Column(JSON, default=list)

    # Flattened Contact Details
    contact_phone = Column(String, nullable=False)
    contact_email = Column(String, nullable=False)

    # Flags/Rating
    is_available = Column(Boolean, nullable=False, default=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    rating_average = Column(Float, nullable=False, default=0)
    rating_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="listings")

    def apply(self, data: dict):
        """Copy a (possibly partial) validated payload onto the columns."""
        location = data.get("location")
        if location is not None:
            self.address = location["address"]
            self.city = location["city"]
            self.state = location["state"]
            self.pincode = location["pincode"]
            coordinates = location.get("coordinates") or {}
            self.latitude = coordinates.get("latitude")
            self.longitude = coordinates.get("longitude")

        price = data.get("price")
        if price is not None:
            self.monthly_price = price["monthly"]
            if "deposit" in price or self.deposit is None:
                self.deposit = price.get("deposit") or 0

        contact = data.get("contact_info")
        if contact is not None:
            self.contact_phone = contact["phone"]
            self.contact_email = contact["email"].lower()

        for key in ("name", "description", "gender", "amenities", "room_types", "images", "rules", "is_available"):
            if key in data and data[key] is not None:
                setattr(self, key, data[key])

    def to_dict(self, include_owner: bool = True):
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "location": {
                "address": self.address,
                "city": self.city,
                "state": self.state,
                "pincode": self.pincode,
                "coordinates": {"latitude": self.latitude, "longitude": self.longitude},
            },
            "price": {"monthly": self.monthly_price, "deposit": self.deposit},
            "amenities": list(self.amenities or []),
            "gender": self.gender,
            "roomTypes": list(self.room_types or []),
            "images": list(self.images or []),
            "contactInfo": {"phone": self.contact_phone, "email": self.contact_email},
            "rules": list(self.rules or []),
            "isAvailable": self.is_available,
            "isVerified": self.is_verified,
            "rating": {"average": self.rating_average, "count": self.rating_count},
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_owner:
            data["owner"] = self.owner.to_owner_dict() if self.owner else {"id": self.owner_id}
        else:
            data["owner"] = self.owner_id
        return data
