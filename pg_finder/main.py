import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import Settings, get_settings
from .core.database_client import DatabaseClient
from .core.email_service import build_notification_sender
from .core.exceptions import PGFinderError
from .core.initialise_db import initialize_db
from .core.opensearch_client import build_opensearch_client
from .core.opensearch_init import initialize_opensearch
from .core.otp import generate_otp
from .core.rate_limit import build_limiter
from .routers import auth, pg_listings, user

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_app(
    settings: Settings = None,
    database: DatabaseClient = None,
    search_client=None,
    notifier=None,
    otp_generator=None,
) -> FastAPI:
    """
    Builds the API. Collaborators that are not passed in are constructed
    from settings when the app starts.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting PG Finder API...")
        owns_database = database is None
        app.state.db = database or DatabaseClient(settings.DATABASE_URL)
        initialize_db(app.state.db)

        if search_client is None:
            app.state.search = build_opensearch_client(settings)
            initialize_opensearch(app.state.search, settings.LISTING_INDEX, settings.OPENSEARCH_STARTUP_RETRIES)
        else:
            app.state.search = search_client

        app.state.notifier = notifier or build_notification_sender(settings)
        logger.info("PG Finder API startup complete")
        try:
            yield
        finally:
            if owns_database:
                app.state.db.dispose()
            logger.info("PG Finder API shutdown complete")

    app = FastAPI(title="PG Finder API", lifespan=lifespan)
    app.state.settings = settings
    app.state.otp_generator = otp_generator or generate_otp
    app.state.limiter = build_limiter(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info(f"{request.method} {request.url.path} -> {response.status_code}")
        return response

    @app.exception_handler(PGFinderError)
    async def domain_error_handler(request: Request, exc: PGFinderError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message, "error": exc.error},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(part) for part in error["loc"][1:]), "message": error["msg"]}
            for error in exc.errors()
        ]
        logger.info(f"Validation failed on {request.url.path}: {errors}")
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Validation failed", "error": "ValidationError", "errors": errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Something went wrong!",
                "error": str(exc) if settings.is_development else "Internal server error",
            },
        )

    @app.get("/api/health", tags=["Health Check"])
    def health_check():
        return {
            "status": "OK",
            "message": "PG Finder backend is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # Register routers
    app.include_router(auth.router)
    app.include_router(pg_listings.router)
    app.include_router(user.router)

    return app


app = create_app()
