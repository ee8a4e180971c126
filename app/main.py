"""
Application entry point.

Run locally:
    uvicorn app.main:app --reload --port 8000

API docs available at:
    http://localhost:8000/docs   (Swagger UI)
    http://localhost:8000/redoc  (ReDoc)
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.core.rate_limiter import limiter
from app.routers import auth, users, otp, audio

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Storage failures surface as a plain 500; details stay in the log."""
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Twiller API",
        description=(
            "Account and login backend for the Twiller social platform. "
            "Device-aware login policy, email/SMS OTP verification, login history "
            "and time-gated audio uploads."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ── Rate Limiter ──────────────────────────────────────────────────────────
    # Attach limiter to app state (required by slowapi)
    # Register the 429 handler so exceeded limits return proper JSON
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    # ── CORS ──────────────────────────────────────────────────────────────────
    # In production, CORS_ORIGINS in .env should only list the frontend domain
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    # Auth (public: login/register/reset carry no auth dependency)
    app.include_router(auth.router, prefix="/auth", tags=["Auth"])

    # User profile management
    app.include_router(users.router, prefix="/users", tags=["Users"])

    # Account verifications (audio upload, language switch, phone)
    app.include_router(otp.router, prefix="/otp", tags=["OTP"])

    # Audio upload gate
    app.include_router(audio.router, prefix="/audio", tags=["Audio"])

    # ── Health Check ──────────────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Simple health check endpoint for load balancers and Docker health checks.
        Returns 200 if the application is running.
        """
        return {"status": "ok", "version": "1.0.0"}

    return app


app = create_app()
