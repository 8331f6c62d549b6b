"""FastAPI application for the TourneyMethod admin backend."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request

from .auth import AdminLoginRequired, auth_router
from .auth.cookies import clear_session_cookies
from .auth.errors import ProviderNotConfigured
from .auth.routes import failed_login_response, login_redirect
from .config import API_HOST, API_PORT
from .db import init_database
from .logging_config import configure_logging

configure_logging()
LOGGER = logging.getLogger(__name__)
LOGGER.info("Creating TourneyMethod FastAPI application")

app = FastAPI(
    title="TourneyMethod Admin API",
    version="1.0.0",
    description="Admin authentication for the TourneyMethod tournament listing.",
)

app.include_router(auth_router)


@app.exception_handler(AdminLoginRequired)
async def handle_admin_login_required(request: Request, exc: AdminLoginRequired):
    """Send browsers with a missing or stale admin session back to the login page."""
    LOGGER.info("Admin session rejected for %s: %s", request.url.path, exc.reason)
    response = login_redirect(message=exc.reason)
    clear_session_cookies(response)
    return response


@app.exception_handler(ProviderNotConfigured)
async def handle_provider_not_configured(request: Request, exc: ProviderNotConfigured):
    return failed_login_response(exc)


@app.on_event("startup")
def ensure_database() -> None:
    """Create the admin tables before the first request is served."""
    LOGGER.info("Startup hook triggered, ensuring database schema")
    init_database()


if __name__ == "__main__":
    import uvicorn

    LOGGER.info("Launching Uvicorn development server on %s:%s", API_HOST, API_PORT)
    uvicorn.run("tourneymethod.app:app", host=API_HOST, port=API_PORT, reload=True)
