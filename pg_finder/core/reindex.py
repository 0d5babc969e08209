"""
OpenSearch Reindexing Utility

Rebuilds the listing index from the pg_listings table.
Use cases:
- Recover from index deletion/corruption or failed writes
- Apply new mapping changes
- Sync data after manual DB modifications

Usage:
    python -m pg_finder.core.reindex
    python -m pg_finder.core.reindex --recreate-index
    python -m pg_finder.core.reindex --dry-run
"""

import sys
import argparse
from typing import List, Dict, Any
from datetime import datetime
from sqlalchemy.orm import Session, joinedload
from opensearchpy.helpers import bulk, BulkIndexError

from pg_finder.core.config import get_settings
from pg_finder.core.database_client import DatabaseClient
from pg_finder.core.opensearch_client import build_opensearch_client
from pg_finder.core.opensearch_init import ANALYSIS_SETTINGS, LISTING_MAPPING
from pg_finder.models.sql_pg_listing import PGListingRecord


class ReindexStats:
    """Track statistics during reindexing"""
    def __init__(self):
        self.total_records = 0
        self.indexed_records = 0
        self.failed_records = 0
        self.errors: List[Dict[str, Any]] = []
        self.start_time = datetime.now()

    def add_success(self, count: int):
        self.indexed_records += count

    def add_failure(self, doc_id: str, error: str):
        self.failed_records += 1
        self.errors.append({"id": doc_id, "error": str(error)})

    def print_summary(self, index_name: str):
        duration = (datetime.now() - self.start_time).total_seconds()
        print(f"\n{'='*60}")
        print(f"Reindexing Summary for: {index_name}")
        print(f"{'='*60}")
        print(f"Total Records:        {self.total_records}")
        print(f"Successfully Indexed: {self.indexed_records}")
        print(f"Failed:               {self.failed_records}")
        print(f"Duration:             {duration:.2f} seconds")
        print(f"{'='*60}")

        if self.errors:
            print("\nFirst 10 errors:")
            for error in self.errors[:10]:
                print(f"  - ID {error['id']}: {error['error']}")
            if len(self.errors) > 10:
                print(f"  ... and {len(self.errors) - 10} more errors")


def generate_bulk_actions(records: List[PGListingRecord], index_name: str) -> List[Dict[str, Any]]:
    """One bulk index action per listing, the document is the public listing dict."""
    return [
        {
            "_index": index_name,
            "_id": record.id,
            "_source": record.to_dict(),
        }
        for record in records
    ]


def recreate_index(client, index_name: str):
    if client.indices.exists(index=index_name):
        print(f"Deleting existing index: {index_name}")
        client.indices.delete(index=index_name)

    print(f"Creating new index: {index_name}")
    client.indices.create(index=index_name, body={"settings": ANALYSIS_SETTINGS, "mappings": LISTING_MAPPING})


def reindex_listings(
    db_session: Session,
    client,
    index_name: str,
    batch_size: int = 500,
    dry_run: bool = False,
) -> ReindexStats:
    """
    Reindex the pg_listings table into OpenSearch in batches.

    Args:
        db_session: SQLAlchemy database session
        client: OpenSearch client
        index_name: Target OpenSearch index name
        batch_size: Number of documents to index per batch
        dry_run: If True, don't actually index (just print what would happen)

    Returns:
        ReindexStats object with statistics
    """
    stats = ReindexStats()

    stats.total_records = db_session.query(PGListingRecord).count()
    print(f"Found {stats.total_records} listings in database")
    if stats.total_records == 0:
        return stats

    offset = 0
    batch_num = 0

    while offset < stats.total_records:
        batch_num += 1
        records = (
            db_session.query(PGListingRecord)
            .options(joinedload(PGListingRecord.owner))
            .order_by(PGListingRecord.id)
            .offset(offset)
            .limit(batch_size)
            .all()
        )
        if not records:
            break

        actions = generate_bulk_actions(records, index_name)
        print(f"Processing batch {batch_num} (records {offset} to {offset + len(actions)})...")

        if dry_run:
            print(f"   [DRY RUN] Would index {len(actions)} documents")
            stats.add_success(len(actions))
        else:
            try:
                success, failed = bulk(client, actions, stats_only=True, raise_on_error=False)
                stats.add_success(success)
                if failed:
                    print(f"   {failed} documents failed in this batch")
                    stats.failed_records += failed
            except BulkIndexError as e:
                print(f"   Bulk indexing error: {e}")
                for error_item in e.errors:
                    doc_id = error_item.get('index', {}).get('_id', 'unknown')
                    error_msg = error_item.get('index', {}).get('error', 'unknown error')
                    stats.add_failure(doc_id, error_msg)

        offset += batch_size

    # Refresh index to make documents immediately visible for verification
    if not dry_run and stats.indexed_records > 0:
        client.indices.refresh(index=index_name)

    return stats


def verify_sync(db_session: Session, client, index_name: str) -> bool:
    """True when the table and the index hold the same number of listings."""
    db_count = db_session.query(PGListingRecord).count()
    os_count = client.count(index=index_name).get('count', 0)

    print(f"\nVerification for {index_name}:")
    print(f"   Database:   {db_count} records")
    print(f"   OpenSearch: {os_count} records")

    if db_count == os_count:
        print("   Counts match!")
        return True
    print(f"   Counts differ by {abs(db_count - os_count)} records")
    return False


def main(argv=None):
    parser = argparse.ArgumentParser(description="Reindex PG listings from the database into OpenSearch")
    parser.add_argument(
        "--recreate-index",
        action="store_true",
        help="Delete and recreate the index before reindexing (applies fresh mappings)"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=500,
        help="Number of documents per batch (default: 500)"
    )
    parser.add_argument("--dry-run", action="store_true", help="Preview what would happen without making changes")
    parser.add_argument("--no-verify", action="store_true", help="Skip verification step after reindexing")
    parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation before recreating the index")
    args = parser.parse_args(argv)

    settings = get_settings()
    index_name = settings.LISTING_INDEX

    if args.recreate_index and not args.dry_run and not args.yes:
        print(f"WARNING: This will DELETE and RECREATE the index '{index_name}'!")
        response = input("Are you sure? Type 'yes' to continue: ")
        if response.lower() != 'yes':
            print("Aborted.")
            return 0

    database = DatabaseClient(settings.DATABASE_URL)
    client = build_opensearch_client(settings)
    db_session = database.session()

    try:
        if not client.ping():
            print("Error: Cannot connect to OpenSearch")
            return 1

        if args.recreate_index and not args.dry_run:
            recreate_index(client, index_name)

        stats = reindex_listings(db_session, client, index_name, args.batch_size, args.dry_run)
        stats.print_summary(index_name)

        if not args.dry_run and not args.no_verify:
            verify_sync(db_session, client, index_name)

        print("\nReindex complete!")
        return 0 if stats.failed_records == 0 else 1

    finally:
        db_session.close()
        database.dispose()


if __name__ == "__main__":
    sys.exit(main())
