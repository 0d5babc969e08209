from pg_finder.models.pg_listing import Gender, ListingFilters, QuickSearch, SortField, SortOrder
from pg_finder.services import listing_query
from pg_finder.services.listing_service import pagination


def test_default_search_only_filters_on_availability():
    body = listing_query.build_listing_search(ListingFilters())
    assert body["query"]["bool"]["filter"] == [{"term": {"isAvailable": True}}]
    assert body["query"]["bool"]["must"] == []
    assert body["sort"] == [{"createdAt": {"order": "desc"}}]
    assert body["from"] == 0
    assert body["size"] == 10
    assert body["track_total_hits"] is True


def test_location_filters_are_case_insensitive_substrings():
    body = listing_query.build_listing_search(ListingFilters(city=" bengal ", state="Karna", location="MG Road"))
    filters = body["query"]["bool"]["filter"]
    assert {
        "wildcard": {"location.city.keyword": {"value": "*bengal*", "case_insensitive": True}}
    } in filters
    assert {
        "wildcard": {"location.state.keyword": {"value": "*Karna*", "case_insensitive": True}}
    } in filters
    assert {
        "wildcard": {"location.address.keyword": {"value": "*MG Road*", "case_insensitive": True}}
    } in filters


def test_wildcard_characters_are_escaped():
    assert listing_query.escape_wildcard("a*b?c") == "a\\*b\\?c"


def test_free_text_goes_into_must():
    body = listing_query.build_listing_search(ListingFilters(search="near metro"))
    match = body["query"]["bool"]["must"][0]["multi_match"]
    assert match["query"] == "near metro"
    assert match["fuzziness"] == "AUTO"
    assert "name^3" in match["fields"]


def test_price_range_bounds():
    assert listing_query.price_range() is None
    assert listing_query.price_range(min_price=4000) == {"range": {"price.monthly": {"gte": 4000}}}
    assert listing_query.price_range(4000, 9000) == {"range": {"price.monthly": {"gte": 4000, "lte": 9000}}}


def test_sort_fields_map_to_index_fields():
    body = listing_query.build_listing_search(ListingFilters(sort_by=SortField.RATING, sort_order=SortOrder.ASC))
    assert body["sort"] == [{"rating.average": {"order": "asc"}}]
    body = listing_query.build_listing_search(ListingFilters(sort_by=SortField.NAME))
    assert body["sort"] == [{"name.keyword": {"order": "desc"}}]


def test_amenities_string_is_split():
    filters = ListingFilters(amenities="WiFi, Hot Water,,")
    assert filters.amenities == ["WiFi", "Hot Water"]


def test_quick_search_matches_location_anywhere():
    body = listing_query.build_quick_search(QuickSearch(location="pune", gender=Gender.BOYS, max_price=8000))
    filters = body["query"]["bool"]["filter"]
    location = filters[1]["bool"]
    assert location["minimum_should_match"] == 1
    assert len(location["should"]) == 3
    assert {"term": {"gender": "boys"}} in filters
    assert {"range": {"price.monthly": {"lte": 8000}}} in filters
    assert body["size"] == 20
    assert body["sort"] == [{"createdAt": {"order": "desc"}}]


def test_hits_helpers():
    response = {"hits": {"total": {"value": 4, "relation": "eq"}, "hits": [{"_source": {"id": "x"}}]}}
    assert listing_query.hits_total(response) == 4
    assert listing_query.hits_total({"hits": {"total": 7}}) == 7
    assert listing_query.hits_total({}) == 0
    assert listing_query.hits_sources(response) == [{"id": "x"}]


def test_pagination():
    assert pagination(1, 10, 0) == {"currentPage": 1, "totalPages": 0, "totalItems": 0, "itemsPerPage": 10}
    assert pagination(3, 10, 21)["totalPages"] == 3
