import logging
import time

from pg_finder.core.config import get_settings
from pg_finder.core.opensearch_client import build_opensearch_client

logger = logging.getLogger(__name__)

#python -m pg_finder.core.opensearch_init to create the listing index by hand
# --- 1. Analysis Settings ---
ANALYSIS_SETTINGS = {
    "analysis": {
      "analyzer": {
        "fuzzy_search_analyzer": {
          "type": "custom",
          "tokenizer": "standard",
          "filter": [
            "lowercase",
            "asciifolding",
            "stemmer",
            "synonym_filter",
            "stop"
          ]
        },
        "locality_analyzer": {
          "type": "custom",
          "tokenizer": "standard",
          "filter": [
            "lowercase",
            "asciifolding",
            "stop"
          ]
        }
      },
      "filter": {
        "synonym_filter": {
          "type": "synonym",
          "synonyms": [
            "pg,paying guest,hostel",
            "ac,air conditioned,air conditioning",
            "gym,fitness,gymnasium"
          ]
        }
      }
    }
}

# --- 2. Listing Mapping ---
#free text is analysed, everything filtered or sorted on is keyword/numeric
#location fields are dual purpose (text + keyword multi field)
LOCATION_TEXT = {
    "type": "text",
    "analyzer": "locality_analyzer",
    "fields": {"keyword": {"type": "keyword"}}
}

LISTING_MAPPING = {
    "properties": {
      "id": {"type": "keyword"},
      "name": {
        "type": "text",
        "analyzer": "fuzzy_search_analyzer",
        "fields": {"keyword": {"type": "keyword"}}
      },
      "description": {"type": "text", "analyzer": "fuzzy_search_analyzer"},

      "location": {
        "properties": {
          "address": LOCATION_TEXT,
          "city": LOCATION_TEXT,
          "state": LOCATION_TEXT,
          "pincode": {"type": "keyword"},
          "coordinates": {
            "properties": {
              "latitude": {"type": "float"},
              "longitude": {"type": "float"}
            }
          }
        }
      },

      "price": {
        "properties": {
          "monthly": {"type": "integer"},
          "deposit": {"type": "integer"}
        }
      },

      "amenities": {"type": "keyword"},
      "gender": {"type": "keyword"},
      "roomTypes": {
        "properties": {
          "type": {"type": "keyword"},
          "available": {"type": "integer"},
          "price": {"type": "integer"}
        }
      },
      # base64 images can be large, keep them in _source only
      "images": {"type": "object", "enabled": False},
      "contactInfo": {
        "properties": {
          "phone": {"type": "keyword"},
          "email": {"type": "keyword"}
        }
      },
      "rules": {"type": "text"},
      "isAvailable": {"type": "boolean"},
      "isVerified": {"type": "boolean"},
      "rating": {
        "properties": {
          "average": {"type": "float"},
          "count": {"type": "integer"}
        }
      },
      "owner": {
        "properties": {
          "id": {"type": "keyword"},
          "name": {"type": "text"},
          "email": {"type": "keyword"},
          "phone": {"type": "keyword"},
          # may be a base64 data URL, stored in _source only
          "profileImage": {"type": "keyword", "index": False, "doc_values": False}
        }
      },
      "createdAt": {"type": "date"},
      "updatedAt": {"type": "date"}
    }
  }

# --- 3. Initialization Logic ---

def create_index_if_not_exists(client, index_name: str, mapping: dict = LISTING_MAPPING):
    """Creates a single index with the specified mapping if it does not exist."""
    logger.info(f"Checking index: {index_name}...")
    try:
        if not client.indices.exists(index=index_name):
            logger.info(f"Creating index: {index_name}...")

            body = {
                "settings": ANALYSIS_SETTINGS,
                "mappings": mapping
            }

            client.indices.create(index=index_name, body=body)
            logger.info(f"Index {index_name} created successfully.")
        else:
            logger.info(f"Index {index_name} already exists. Skipping creation.")

    except Exception as e:
        logger.error(f"Error creating index {index_name}: {e}")
        logger.error("Ensure OpenSearch is running and accessible.")


def initialize_opensearch(client, index_name: str, max_retries: int = 5, retry_delay: float = 5) -> bool:
    """Waits for OpenSearch and creates the listing index."""
    logger.info("--- Starting OpenSearch Initialization ---")

    # Wait for OpenSearch to be available (useful when running with Docker Compose)
    for i in range(max_retries):
        try:
            if client.ping():
                logger.info("OpenSearch connection successful.")
                break
        except Exception as e:
            logger.debug(f"OpenSearch ping failed: {e}")
        logger.warning(f"Waiting for OpenSearch... Retry {i+1}/{max_retries}")
        time.sleep(retry_delay)
    else:
        logger.error("OpenSearch service is unreachable, listing search will fail until it is up.")
        return False

    create_index_if_not_exists(client, index_name)

    logger.info("--- OpenSearch Initialization Complete ---")
    return True


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    settings = get_settings()
    initialize_opensearch(build_opensearch_client(settings), settings.LISTING_INDEX)
