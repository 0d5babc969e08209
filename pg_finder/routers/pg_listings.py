from fastapi import APIRouter, Depends, Query, status
from typing import Optional

from ..core.auth import require_owner
from ..models.pg_listing import (
    Gender,
    ListingFilters,
    PGListingCreate,
    PGListingUpdate,
    QuickSearch,
    SortField,
    SortOrder,
)
from ..models.user import User
from ..services.listing_service import ListingService, get_listing_service

router = APIRouter(prefix="/api/pg", tags=["PG Listings"])

# --- PUBLIC READ ENDPOINTS (OpenSearch for search, DB for single records) ---

# GET /api/pg
#hard filters: availability, location substrings, gender, amenities, price range
#soft match: free text search over name, description and location
@router.get("")
def get_all_pg_listings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    location: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    gender: Optional[Gender] = None,
    min_price: Optional[int] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[int] = Query(None, ge=0, alias="maxPrice"),
    amenities: Optional[str] = Query(None, description="Comma separated, matches any"),
    search: Optional[str] = None,
    sort_by: SortField = Query(SortField.CREATED_AT, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    listings: ListingService = Depends(get_listing_service),
):
    filters = ListingFilters(
        page=page,
        limit=limit,
        location=location,
        city=city,
        state=state,
        gender=gender,
        min_price=min_price,
        max_price=max_price,
        amenities=amenities,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {"success": True, "data": listings.list_listings(filters)}


@router.get("/search")
def search_pg_listings(
    q: Optional[str] = None,
    location: Optional[str] = None,
    gender: Optional[Gender] = None,
    min_price: Optional[int] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[int] = Query(None, ge=0, alias="maxPrice"),
    listings: ListingService = Depends(get_listing_service),
):
    params = QuickSearch(q=q, location=location, gender=gender, min_price=min_price, max_price=max_price)
    return {"success": True, "data": {"pgListings": listings.quick_search(params)}}


@router.get("/cities")
def get_cities(listings: ListingService = Depends(get_listing_service)):
    return {"success": True, "data": {"cities": listings.cities()}}


# --- OWNER ENDPOINTS ---

@router.get("/owner/my-listings")
def get_my_pg_listings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    owner: User = Depends(require_owner),
    listings: ListingService = Depends(get_listing_service),
):
    return {"success": True, "data": listings.list_by_owner(owner, page, limit)}


@router.get("/{listing_id}")
def get_pg_listing(listing_id: str, listings: ListingService = Depends(get_listing_service)):
    return {"success": True, "data": {"pgListing": listings.get(listing_id)}}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_pg_listing(
    body: PGListingCreate,
    owner: User = Depends(require_owner),
    listings: ListingService = Depends(get_listing_service),
):
    pg_listing = listings.create(owner, body)
    return {"success": True, "message": "PG listing created successfully", "data": {"pgListing": pg_listing}}


@router.put("/{listing_id}")
def update_pg_listing(
    listing_id: str,
    body: PGListingUpdate,
    owner: User = Depends(require_owner),
    listings: ListingService = Depends(get_listing_service),
):
    pg_listing = listings.update(listing_id, owner, body)
    return {"success": True, "message": "PG listing updated successfully", "data": {"pgListing": pg_listing}}


@router.delete("/{listing_id}")
def delete_pg_listing(
    listing_id: str,
    owner: User = Depends(require_owner),
    listings: ListingService = Depends(get_listing_service),
):
    listings.delete(listing_id, owner)
    return {"success": True, "message": "PG listing deleted successfully"}
