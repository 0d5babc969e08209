"""
OpenSearch request bodies for listing search.

Hard constraints (availability, gender, price, amenities, location
substrings) go in the bool filter; free text goes in must so it scores.
"""

from pg_finder.models.pg_listing import ListingFilters, QuickSearch, SortField, SortOrder

SORT_FIELDS = {
    SortField.CREATED_AT: "createdAt",
    SortField.PRICE: "price.monthly",
    SortField.RATING: "rating.average",
    SortField.NAME: "name.keyword",
}

TEXT_FIELDS = ["name^3", "description", "location.city^2", "location.state", "location.address"]

MAX_CITIES = 1000


def escape_wildcard(value: str) -> str:
    for char in ("\\", "*", "?"):
        value = value.replace(char, "\\" + char)
    return value


def contains(field: str, value: str) -> dict:
    """Case-insensitive substring match on a keyword field"""
    return {
        "wildcard": {
            f"{field}.keyword": {
                "value": f"*{escape_wildcard(value.strip())}*",
                "case_insensitive": True,
            }
        }
    }


def price_range(min_price=None, max_price=None):
    monthly_range = {}
    if min_price is not None:
        monthly_range["gte"] = min_price
    if max_price is not None:
        monthly_range["lte"] = max_price
    if not monthly_range:
        return None
    return {"range": {"price.monthly": monthly_range}}


def build_listing_search(filters: ListingFilters) -> dict:
    query = {"bool": {"must": [], "filter": [{"term": {"isAvailable": True}}]}}

    # Location Filters
    if filters.location: query["bool"]["filter"].append(contains("location.address", filters.location))
    if filters.city: query["bool"]["filter"].append(contains("location.city", filters.city))
    if filters.state: query["bool"]["filter"].append(contains("location.state", filters.state))

    # Term Filters
    if filters.gender: query["bool"]["filter"].append({"term": {"gender": filters.gender.value}})
    if filters.amenities: query["bool"]["filter"].append({"terms": {"amenities": filters.amenities}})

    # Range Filters
    monthly = price_range(filters.min_price, filters.max_price)
    if monthly: query["bool"]["filter"].append(monthly)

    # Free text
    if filters.search:
        query["bool"]["must"].append({
            "multi_match": {"query": filters.search, "fields": TEXT_FIELDS, "fuzziness": "AUTO"}
        })

    order = "asc" if filters.sort_order == SortOrder.ASC else "desc"
    return {
        "query": query,
        "sort": [{SORT_FIELDS[filters.sort_by]: {"order": order}}],
        "from": (filters.page - 1) * filters.limit,
        "size": filters.limit,
        "track_total_hits": True,
    }


def build_quick_search(params: QuickSearch) -> dict:
    query = {"bool": {"must": [], "filter": [{"term": {"isAvailable": True}}]}}

    if params.q:
        query["bool"]["must"].append({
            "multi_match": {"query": params.q, "fields": TEXT_FIELDS, "fuzziness": "AUTO"}
        })

    # location matches any of city, state or address
    if params.location:
        query["bool"]["filter"].append({
            "bool": {
                "should": [
                    contains("location.city", params.location),
                    contains("location.state", params.location),
                    contains("location.address", params.location),
                ],
                "minimum_should_match": 1,
            }
        })

    if params.gender: query["bool"]["filter"].append({"term": {"gender": params.gender.value}})

    monthly = price_range(params.min_price, params.max_price)
    if monthly: query["bool"]["filter"].append(monthly)

    return {"query": query, "sort": [{"createdAt": {"order": "desc"}}], "size": params.size}


def build_city_aggregation() -> dict:
    return {
        "size": 0,
        "aggs": {"cities": {"terms": {"field": "location.city.keyword", "size": MAX_CITIES}}},
    }


def hits_total(response: dict) -> int:
    total = response.get("hits", {}).get("total", 0)
    # OpenSearch reports {"value": n, "relation": "eq"}; older clusters a bare int
    if isinstance(total, dict):
        return total.get("value", 0)
    return total or 0


def hits_sources(response: dict) -> list:
    return [hit["_source"] for hit in response.get("hits", {}).get("hits", [])]
