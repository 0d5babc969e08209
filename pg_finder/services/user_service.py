import logging
from typing import Optional

from fastapi import Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from pg_finder.core.auth import get_password_hash, verify_password
from pg_finder.core.database_client import get_db
from pg_finder.core.exceptions import InputValidationError
from pg_finder.models.otp import OneTimeCode
from pg_finder.models.sql_pg_listing import PGListingRecord
from pg_finder.models.user import User
from pg_finder.services.listing_service import ListingService, get_listing_service

logger = logging.getLogger(__name__)


class UserService:
    """Profile maintenance, dashboards and account deletion for a signed-in user."""

    def __init__(self, db: Session, listings: ListingService):
        self.db = db
        self.listings = listings

    def _listing_stats(self, user: User) -> dict:
        base = self.db.query(func.count(PGListingRecord.id)).filter(PGListingRecord.owner_id == user.id)
        total = base.scalar() or 0
        active = base.filter(PGListingRecord.is_available.is_(True)).scalar() or 0
        verified = (
            self.db.query(func.count(PGListingRecord.id))
            .filter(PGListingRecord.owner_id == user.id, PGListingRecord.is_verified.is_(True))
            .scalar()
            or 0
        )
        return {
            "totalListings": total,
            "activeListings": active,
            "verifiedListings": verified,
            "pendingVerification": total - verified,
        }

    def _recent_listings(self, user: User, limit: int) -> list:
        records = (
            self.db.query(PGListingRecord)
            .filter(PGListingRecord.owner_id == user.id)
            .order_by(PGListingRecord.created_at.desc())
            .limit(limit)
            .all()
        )
        return [record.to_dict(include_owner=False) for record in records]

    def update_profile(
        self,
        user: User,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        profile_image: Optional[str] = None,
    ) -> User:
        if name:
            user.name = name
        if phone:
            user.phone = phone
        if profile_image:
            user.profile_image = profile_image
        self.db.commit()

        if user.is_owner:
            self.listings.reindex_owner(user)
        return user

    def change_password(self, user: User, current_password: str, new_password: str):
        if not verify_password(current_password, user.hashed_password):
            raise InputValidationError("Current password is incorrect")
        try:
            user.hashed_password = get_password_hash(new_password)
        except ValueError as e:
            raise InputValidationError(str(e))
        self.db.commit()
        logger.info(f"User {user.id} changed their password")

    def dashboard(self, user: User) -> dict:
        data = {"user": user.to_dict(), "stats": {}}
        if user.is_owner:
            data["stats"] = self._listing_stats(user)
            data["recentListings"] = self._recent_listings(user, 5)
        return data

    def owner_dashboard(self, user: User) -> dict:
        stats = self._listing_stats(user)

        gender_rows = (
            self.db.query(PGListingRecord.gender, func.count(PGListingRecord.id))
            .filter(PGListingRecord.owner_id == user.id)
            .group_by(PGListingRecord.gender)
            .all()
        )
        stats["genderDistribution"] = [{"_id": gender, "count": count} for gender, count in gender_rows]

        avg_price, min_price, max_price = (
            self.db.query(
                func.avg(PGListingRecord.monthly_price),
                func.min(PGListingRecord.monthly_price),
                func.max(PGListingRecord.monthly_price),
            )
            .filter(PGListingRecord.owner_id == user.id)
            .one()
        )
        stats["priceRange"] = {
            "avgPrice": float(avg_price) if avg_price is not None else 0,
            "minPrice": min_price or 0,
            "maxPrice": max_price or 0,
        }

        return {
            "user": {"id": user.id, "name": user.name, "email": user.email, "role": user.role},
            "stats": stats,
            "recentListings": self._recent_listings(user, 10),
        }

    def delete_account(self, user: User, password: str):
        if not verify_password(password, user.hashed_password):
            raise InputValidationError("Password is incorrect")

        listing_ids = [
            listing_id for (listing_id,) in
            self.db.query(PGListingRecord.id).filter(PGListingRecord.owner_id == user.id).all()
        ]

        # listings go with the user through the relationship cascade
        self.db.query(OneTimeCode).filter(OneTimeCode.email == user.email).delete(synchronize_session=False)
        self.db.delete(user)
        self.db.commit()
        logger.info(f"Deleted account {user.id} with {len(listing_ids)} listing(s)")

        for listing_id in listing_ids:
            self.listings.unindex_listing(listing_id)


def get_user_service(
    db: Session = Depends(get_db),
    listings: ListingService = Depends(get_listing_service),
) -> UserService:
    return UserService(db, listings)
