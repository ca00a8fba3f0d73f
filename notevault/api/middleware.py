"""
API middleware: API key check and CORS.

When ``NOTEVAULT_API_KEY`` is set every request must carry it in the
``X-API-Key`` header, except the health check and the API docs. Browser
origins allowed through CORS come from ``CORS_ORIGINS``; with none
configured no CORS headers are sent.
"""

import logging
import secrets

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from notevault.config import config

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


def public_paths(app: FastAPI) -> frozenset:
    """The health check plus whichever docs pages the app serves."""
    paths = {"/health", app.openapi_url, app.docs_url, app.redoc_url}
    if app.docs_url:
        paths.add(app.swagger_ui_oauth2_redirect_url)
    return frozenset(path for path in paths if path)


async def api_key_middleware(request: Request, call_next):
    """
    Verify the API key for all endpoints except public ones.
    If NOTEVAULT_API_KEY is not configured, all requests are allowed (dev mode).
    """
    if not config.API_KEY or request.url.path in request.app.state.public_paths:
        return await call_next(request)

    api_key = request.headers.get(API_KEY_HEADER)
    if not api_key:
        return JSONResponse(
            status_code=401,
            content={"detail": f"Missing API key. Include '{API_KEY_HEADER}' header."},
        )

    if not secrets.compare_digest(api_key.encode(), config.API_KEY.encode()):
        logger.warning("Rejected request to %s: invalid API key", request.url.path)
        return JSONResponse(
            status_code=403,
            content={"detail": "Invalid API key"},
        )

    return await call_next(request)


def register_middleware(app: FastAPI) -> None:
    """Attach all middleware to the FastAPI app."""
    app.state.public_paths = public_paths(app)
    app.middleware("http")(api_key_middleware)

    # Added last so it wraps the key check: preflight requests and 401/403
    # replies still get CORS headers
    if config.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.CORS_ORIGINS,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        logger.info("CORS enabled for %s", ", ".join(config.CORS_ORIGINS))
