# policy_approval/main.py
"""
Insurance Policy Approval Service - Main Application

Policies are created as drafts, fraud-checked, and routed through an
Underwriter -> Manager approval chain with a full audit log.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from . import __version__
from .settings import settings
from .logging import configure_logging, get_logger
from .db.engine import check_connection, init_db
from .api import profiles_router, policies_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Runs startup checks and cleanup on shutdown.
    """
    configure_logging(level=settings.log_level, json_output=settings.log_json)
    logger.info("service_starting", version=__version__)

    if not check_connection():
        logger.warning("database_unavailable")
    else:
        init_db()
        logger.info("database_ready")

    yield

    logger.info("service_stopping")


app = FastAPI(
    title="Insurance Policy Approval Service",
    description="""
    Insurance policy approval workflow.

    - Creators draft policies; a fraud check annotates each new policy
    - Underwriters then Managers approve or reject submitted policies
    - Rejections require a comment
    - Every status change is recorded in an append-only audit log
    """,
    version=__version__,
    lifespan=lifespan,
)

allowed_origins = settings.allowed_origins.split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID", "X-User-ID"],
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add basic security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Server"] = "Insurance Policy Approval Service"
        return response


app.add_middleware(SecurityHeadersMiddleware)

app.include_router(profiles_router)
app.include_router(policies_router)


@app.get("/health")
async def health_check():
    """Basic health check."""
    return {"status": "ok", "service": "policy-approval"}


@app.get("/health/db")
async def db_health_check():
    """Database health check."""
    if check_connection():
        return {"status": "ok", "database": "connected"}
    raise HTTPException(status_code=503, detail="Database connection failed")


def run():
    """Run the server (entry point for CLI)."""
    import uvicorn
    uvicorn.run(
        "policy_approval.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


if __name__ == "__main__":
    run()
