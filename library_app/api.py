"""FastAPI application factory for the library REST API.

Run with ``uvicorn library_app.api:create_app --factory`` or ``library-cli serve``.
"""
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .accounts import AccountManager
from .config import settings
from .database import get_db_connection
from .deps import require_admin
from .email_service import EmailService
from .library import Library
from .logging_config import get_logger, setup_logging
from .openlibrary import RateLimiter
from .reviews import ReviewBoard
from .routers import admin, auth, authors, books, reviews

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("%s %s starting (%s)", settings.app_name, settings.app_version, settings.environment)
    yield
    logger.info("%s shutting down", settings.app_name)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Some handlers attach extra fields (needsVerification, retryAfter, author)
        content = exc.detail if isinstance(exc.detail, dict) else {"message": exc.detail}
        if exc.status_code == 404 and exc.detail == "Not Found":
            # Raised by the router itself when no route matches
            content = {"message": "Route not found"}
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid request data", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Server error"})


def create_app() -> FastAPI:
    setup_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

    app.state.library = Library()
    app.state.accounts = AccountManager()
    app.state.reviews = ReviewBoard()
    app.state.email_service = EmailService()
    app.state.openlibrary_limiter = RateLimiter(settings.openlibrary_rate_limit)

    # --- CORS ---
    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()] or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.api_limiters = {}

    @app.middleware("http")
    async def limit_requests(request: Request, call_next):
        """Per-client request budget over a sliding window, disabled when the limit is 0."""
        if settings.api_rate_limit > 0:
            client_host = request.client.host if request.client else "unknown"
            limiter = app.state.api_limiters.get(client_host)
            if limiter is None:
                limiter = RateLimiter(settings.api_rate_limit, settings.api_rate_window)
                app.state.api_limiters[client_host] = limiter
            if not limiter.allow():
                logger.warning("Rate limit hit by %s on %s %s", client_host, request.method, request.url.path)
                return JSONResponse(
                    status_code=429,
                    content={"message": "Too many requests, please try again later."},
                    headers={"Retry-After": str(limiter.retry_after)},
                )
        return await call_next(request)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    _register_exception_handlers(app)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(books.router, prefix="/api/books", tags=["books"])
    app.include_router(authors.router, prefix="/api/authors", tags=["authors"])
    app.include_router(reviews.router, prefix="/api", tags=["reviews"])
    app.include_router(admin.router, prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])

    @app.get("/health")
    def health():
        """Liveness probe with a quick database round trip."""
        db_ok = True
        try:
            conn = get_db_connection()
            try:
                conn.execute("SELECT 1")
            finally:
                conn.close()
        except Exception as e:
            logger.error("Health check database probe failed: %s", e)
            db_ok = False
        return {"status": "healthy" if db_ok else "degraded", "db": db_ok, "version": settings.app_version}

    @app.get("/")
    def root():
        return {"message": "Library API is running"}

    return app
