from sqlalchemy.orm import Session

from pg_finder.core.auth import get_password_hash
from pg_finder.core.config import get_settings
from pg_finder.core.database_client import DatabaseClient
from pg_finder.core.initialise_db import initialize_db
from pg_finder.core.opensearch_client import build_opensearch_client
from pg_finder.core.opensearch_init import initialize_opensearch
from pg_finder.models.pg_listing import PGListingCreate
from pg_finder.models.sql_pg_listing import PGListingRecord
from pg_finder.models.user import User, UserRole
from pg_finder.services.listing_service import ListingService

#python -m pg_finder.core.seed_data to load sample listings for local development
#re-running replaces the sample owner's listings, other data is left alone

SAMPLE_OWNER = {
    "name": "Test Owner",
    "email": "owner@test.com",
    "password": "password123",
    "phone": "9876543210",
}

SAMPLE_IMAGES = [
    {"url": "https://images.unsplash.com/photo-1560448204-e02f11c3d0e2?w=500", "caption": "Main entrance", "isPrimary": True},
    {"url": "https://images.unsplash.com/photo-1560448075-bb485b067938?w=500", "caption": "Common area"},
]

# (listing payload, rating average, rating count); sample listings are shown as verified
SAMPLE_LISTINGS = [
    ({
        "name": "Sunshine PG for Girls",
        "description": "A comfortable and safe PG accommodation for girls with modern amenities and 24/7 security.",
        "location": {"address": "123 Sunshine Street", "city": "Ahmedabad", "state": "Gujarat", "pincode": "380001"},
        "price": {"monthly": 8000, "deposit": 5000},
        "amenities": ["WiFi", "AC", "Food", "Laundry", "Security"],
        "gender": "girls",
        "roomTypes": [
            {"type": "Single", "available": 5, "price": 8000},
            {"type": "Double", "available": 3, "price": 6000},
            {"type": "Triple", "available": 2, "price": 4500},
        ],
        "images": SAMPLE_IMAGES,
        "contactInfo": {"phone": "9876543210", "email": "sunshine@pg.com"},
        "rules": ["No smoking", "No pets", "Quiet hours after 10 PM"],
    }, 4.5, 12),
    ({
        "name": "Royal PG for Boys",
        "description": "Premium PG accommodation for boys with excellent facilities and convenient location.",
        "location": {"address": "456 Royal Avenue", "city": "Ahmedabad", "state": "Gujarat", "pincode": "380002"},
        "price": {"monthly": 7500, "deposit": 4000},
        "amenities": ["WiFi", "AC", "Food", "Gym", "Parking"],
        "gender": "boys",
        "roomTypes": [
            {"type": "Single", "available": 3, "price": 7500},
            {"type": "Double", "available": 4, "price": 5500},
        ],
        "images": SAMPLE_IMAGES,
        "contactInfo": {"phone": "9876543211", "email": "royal@pg.com"},
        "rules": ["No smoking", "No pets", "Maintain cleanliness"],
    }, 4.3, 8),
    ({
        "name": "Green Valley PG",
        "description": "Eco-friendly PG accommodation with garden and peaceful environment.",
        "location": {"address": "789 Green Valley Road", "city": "Mumbai", "state": "Maharashtra", "pincode": "400001"},
        "price": {"monthly": 12000, "deposit": 8000},
        "amenities": ["WiFi", "AC", "Food", "Security"],
        "gender": "girls",
        "roomTypes": [
            {"type": "Single", "available": 2, "price": 12000},
            {"type": "Double", "available": 3, "price": 9000},
        ],
        "images": SAMPLE_IMAGES,
        "contactInfo": {"phone": "9876543212", "email": "greenvalley@pg.com"},
        "rules": ["No smoking", "No pets", "Respect garden area"],
    }, 4.7, 15),
]


def get_or_create_owner(db: Session) -> User:
    owner = db.query(User).filter(User.email == SAMPLE_OWNER["email"]).first()
    if owner:
        if not owner.is_owner:
            owner.role = UserRole.OWNER.value
            db.commit()
        return owner

    owner = User(
        name=SAMPLE_OWNER["name"],
        email=SAMPLE_OWNER["email"],
        phone=SAMPLE_OWNER["phone"],
        hashed_password=get_password_hash(SAMPLE_OWNER["password"]),
        role=UserRole.OWNER.value,
        is_verified=True,
    )
    db.add(owner)
    db.commit()
    print(f"Created sample owner {owner.email}")
    return owner


def seed_database(db: Session, listings: ListingService) -> list:
    """Replaces the sample owner's listings with the sample set. Returns the new listing ids."""
    owner = get_or_create_owner(db)

    existing = [record.id for record in db.query(PGListingRecord).filter(PGListingRecord.owner_id == owner.id)]
    for listing_id in existing:
        listings.delete(listing_id, owner)
    print(f"Cleared {len(existing)} existing sample listings")

    created = []
    for payload, rating_average, rating_count in SAMPLE_LISTINGS:
        listing = listings.create(owner, PGListingCreate.model_validate(payload))

        record = db.query(PGListingRecord).filter(PGListingRecord.id == listing["id"]).one()
        record.is_verified = True
        record.rating_average = rating_average
        record.rating_count = rating_count
        db.commit()
        listings.index_listing(record)

        created.append(record.id)
    print(f"Inserted {len(created)} sample PG listings")
    return created


if __name__ == "__main__":
    settings = get_settings()
    client = DatabaseClient(settings.DATABASE_URL)
    search = build_opensearch_client(settings)
    db = None
    try:
        initialize_db(client)
        initialize_opensearch(search, settings.LISTING_INDEX, settings.OPENSEARCH_STARTUP_RETRIES)
        db = client.session()
        seed_database(db, ListingService(db, search, settings.LISTING_INDEX))
        print("Database seeded successfully!")
    except Exception as e:
        print(f"Error seeding database: {e}")
    finally:
        if db is not None:
            db.close()
        client.dispose()
