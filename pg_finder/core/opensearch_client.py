from opensearchpy import OpenSearch

from pg_finder.core.config import Settings


def build_opensearch_client(settings: Settings) -> OpenSearch:
    # OpenSearch host defaults to the Docker service name.
    # For local development outside Docker, set OPENSEARCH_HOST="localhost"
    http_auth = None
    if settings.OPENSEARCH_USER and settings.OPENSEARCH_PASSWORD:
        http_auth = (settings.OPENSEARCH_USER, settings.OPENSEARCH_PASSWORD)

    return OpenSearch(
        hosts=[{"host": settings.OPENSEARCH_HOST, "port": settings.OPENSEARCH_PORT}],
        http_auth=http_auth,
        use_ssl=settings.OPENSEARCH_USE_SSL,
        verify_certs=settings.OPENSEARCH_VERIFY_CERTS,
        ssl_show_warn=False,
    )
