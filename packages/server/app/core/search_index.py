"""OpenSearch client management and the users index mapping."""

from __future__ import annotations

from opensearchpy import AsyncOpenSearch

from app.core.config import get_settings

settings = get_settings()

_client: AsyncOpenSearch | None = None

_TEXT_WITH_KEYWORD = {
    "type": "text",
    "fields": {"keyword": {"type": "keyword"}},
}

USERS_INDEX_BODY = {
    "settings": {
        "index": {
            "number_of_shards": 1,
            "number_of_replicas": 0,
        }
    },
    "mappings": {
        "properties": {
            "id": {"type": "integer"},
            "name": _TEXT_WITH_KEYWORD,
            "email": _TEXT_WITH_KEYWORD,
            "createdAt": {"type": "date"},
            "organizationIds": {"type": "integer"},
            "organizationNames": _TEXT_WITH_KEYWORD,
            "teamIds": {"type": "integer"},
            "teamNames": _TEXT_WITH_KEYWORD,
        }
    },
}


def get_search_client() -> AsyncOpenSearch:
    """Get or create the process-wide OpenSearch client."""
    global _client
    if _client is None:
        hosts = settings.opensearch_hosts
        auth = None
        if settings.opensearch_username and settings.opensearch_password:
            auth = (settings.opensearch_username, settings.opensearch_password)
        _client = AsyncOpenSearch(
            hosts=hosts,
            http_auth=auth,
            use_ssl=hosts[0].startswith("https"),
            verify_certs=settings.opensearch_verify_certs,
            ssl_show_warn=False,
            timeout=settings.opensearch_timeout,
        )
    return _client


async def close_search_client() -> None:
    """Close the OpenSearch client and its connection pool."""
    global _client
    if _client is not None:
        await _client.close()
        _client = None
