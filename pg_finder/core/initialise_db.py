from sqlalchemy_utils import database_exists, create_database

from pg_finder.core.config import get_settings
from pg_finder.core.database_client import DatabaseClient
from pg_finder.models.base import Base
# Imported for their side effect of registering tables on Base.metadata
from pg_finder.models import user, otp, sql_pg_listing  # noqa: F401

#python -m pg_finder.core.initialise_db to run this file directly
#there are no migrations yet, changing a column means altering the table by hand
def initialize_db(db_client: DatabaseClient):
    """Checks if the DB exists, creates it if necessary, and ensures all tables are created."""
    if not database_exists(db_client.url):
        print("Database not found. Creating database...")
        create_database(db_client.url)

    # users, otps, pg_listings
    Base.metadata.create_all(bind=db_client.engine)
    print("✓ Tables ensured (users, otps, pg_listings)")


if __name__ == "__main__":
    client = DatabaseClient(get_settings().DATABASE_URL)
    try:
        initialize_db(client)
        print("Database initialization complete.")
    except Exception as e:
        print(f"Error during database initialization: {e}")
    finally:
        client.dispose()
