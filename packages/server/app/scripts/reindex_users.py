"""
Rebuild the users search index from the relational store.

Usage:
    python -m app.scripts.reindex_users [--recreate]
"""

import argparse
import asyncio

from app.core.config import get_settings
from app.core.database import dispose_engine
from app.core.logging import configure_logging
from app.core.search_index import close_search_client
from app.services.user_search import get_user_search_service


async def reindex(recreate: bool) -> int:
    search = get_user_search_service()
    try:
        created = await search.documents.ensure_index(recreate=recreate)
        if created:
            print(f"Created index '{search.documents.index_name}'.")
        count = await search.reindex_all()
        print(f"Indexed {count} users.")
        return count
    finally:
        await close_search_client()
        await dispose_engine()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rebuild the users search index.")
    parser.add_argument(
        "--recreate",
        action="store_true",
        help="Drop and recreate the index (with its mapping) before indexing",
    )
    args = parser.parse_args()

    settings = get_settings()
    configure_logging("user-directory-reindex", settings.log_level, settings.log_format)
    asyncio.run(reindex(args.recreate))
