"""
User Directory API Server

Entry point for the FastAPI application.
"""

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.database import dispose_engine
from app.core.errors import StoreUnavailableError, store_unavailable_handler
from app.core.logging import configure_logging
from app.core.search_index import close_search_client
from app.api.v1 import router as api_v1_router
from app.services.user_search import UserSearchService, get_user_search_service

settings = get_settings()
log = structlog.get_logger()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="User Directory",
        description="Searchable directory of users, their organizations, teams and invites.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.add_exception_handler(StoreUnavailableError, store_unavailable_handler)

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check(
        search: UserSearchService = Depends(get_user_search_service),
    ):
        """Readiness check: the search index must answer a ping."""
        if not await search.documents.ping():
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        configure_logging("user-directory", settings.log_level, settings.log_format)
        log.info("User directory starting", index=settings.opensearch_index)
        search = get_user_search_service()
        try:
            await search.documents.ensure_index()
        except StoreUnavailableError as exc:
            # Searches fail with 503 until the index is reachable.
            log.warning("directory_index.not_reachable", error=exc.message)

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("User directory shutting down")
        await close_search_client()
        await dispose_engine()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.host, port=settings.port, reload=settings.debug)
