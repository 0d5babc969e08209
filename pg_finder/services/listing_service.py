import logging
import math

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from pg_finder.core.database_client import get_db
from pg_finder.core.exceptions import Forbidden, NotFound
from pg_finder.models.pg_listing import ListingFilters, PGListingCreate, PGListingUpdate, QuickSearch
from pg_finder.models.sql_pg_listing import PGListingRecord
from pg_finder.models.user import User
from pg_finder.services import listing_query

logger = logging.getLogger(__name__)


def pagination(page: int, limit: int, total: int) -> dict:
    return {
        "currentPage": page,
        "totalPages": math.ceil(total / limit) if limit else 0,
        "totalItems": total,
        "itemsPerPage": limit,
    }


class ListingService:
    """
    PG listings: PostgreSQL is the source of truth, OpenSearch serves the
    public list/search queries. Every write commits to the DB first and
    then (re)indexes the document.
    """

    def __init__(self, db: Session, search_client, index_name: str):
        self.db = db
        self.search = search_client
        self.index_name = index_name

    # --- HELPERS: keep the index in step with the DB ---

    def index_listing(self, record: PGListingRecord):
        """Indexes one listing; failures are logged, reindex repairs them."""
        try:
            self.search.index(index=self.index_name, id=record.id, body=record.to_dict())
        except Exception as e:
            logger.error(f"Error indexing PG listing {record.id}: {e}")

    def unindex_listing(self, listing_id: str):
        try:
            self.search.delete(index=self.index_name, id=listing_id, ignore=[404])
        except Exception as e:
            logger.error(f"Error removing PG listing {listing_id} from index: {e}")

    def reindex_owner(self, owner: User):
        """Refresh the denormalised owner block on every listing of one owner."""
        for record in self._owner_query(owner).all():
            self.index_listing(record)

    def _get_record(self, listing_id: str) -> PGListingRecord:
        record = self.db.query(PGListingRecord).filter(PGListingRecord.id == listing_id).first()
        if not record:
            raise NotFound("PG listing not found")
        return record

    def _owner_query(self, owner: User):
        return self.db.query(PGListingRecord).filter(PGListingRecord.owner_id == owner.id)

    # --- WRITE ---

    def create(self, owner: User, payload: PGListingCreate) -> dict:
        record = PGListingRecord(owner_id=owner.id)
        record.apply(payload.to_record_fields(exclude_unset=False))
        record.owner = owner

        self.db.add(record)
        self.db.commit()
        logger.info(f"Owner {owner.id} created PG listing {record.id}")

        self.index_listing(record)
        return record.to_dict()

    def update(self, listing_id: str, owner: User, payload: PGListingUpdate) -> dict:
        record = self._get_record(listing_id)
        if record.owner_id != owner.id:
            raise Forbidden("Not authorized to update this PG listing")

        record.apply(payload.to_record_fields())
        self.db.commit()

        self.index_listing(record)
        return record.to_dict()

    def delete(self, listing_id: str, owner: User):
        record = self._get_record(listing_id)
        if record.owner_id != owner.id:
            raise Forbidden("Not authorized to delete this PG listing")

        self.db.delete(record)
        self.db.commit()
        logger.info(f"Owner {owner.id} deleted PG listing {listing_id}")

        self.unindex_listing(listing_id)

    # --- READ (DB for single records and owner views, OpenSearch for search) ---

    def get(self, listing_id: str) -> dict:
        return self._get_record(listing_id).to_dict()

    def list_by_owner(self, owner: User, page: int = 1, limit: int = 10) -> dict:
        query = self._owner_query(owner)
        total = query.count()
        records = (
            query.order_by(PGListingRecord.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "pgListings": [record.to_dict() for record in records],
            "pagination": pagination(page, limit, total),
        }

    def list_listings(self, filters: ListingFilters) -> dict:
        body = listing_query.build_listing_search(filters)
        response = self.search.search(index=self.index_name, body=body)
        return {
            "pgListings": listing_query.hits_sources(response),
            "pagination": pagination(filters.page, filters.limit, listing_query.hits_total(response)),
        }

    def quick_search(self, params: QuickSearch) -> list:
        body = listing_query.build_quick_search(params)
        response = self.search.search(index=self.index_name, body=body)
        return listing_query.hits_sources(response)

    def cities(self) -> list:
        response = self.search.search(index=self.index_name, body=listing_query.build_city_aggregation())
        buckets = response.get("aggregations", {}).get("cities", {}).get("buckets", [])
        return sorted(bucket["key"] for bucket in buckets)


def get_listing_service(request: Request, db: Session = Depends(get_db)) -> ListingService:
    state = request.app.state
    return ListingService(db, state.search, state.settings.LISTING_INDEX)
