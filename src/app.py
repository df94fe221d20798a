"""Storefront FastAPI application.

Serves the cart, checkout, payment capture and order administration
endpoints. Commands are processed synchronously inside the request, with
the ordering domain context pushed for every request. Domain errors are
translated to HTTP responses here; route handlers never build error
responses themselves.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError

from ordering.domain import ordering
from shared.errors import (
    AmountMismatch,
    ConcurrentUpdate,
    Forbidden,
    GatewayUnavailable,
    InvalidTransition,
    OutOfStock,
)
from shared.logging import add_context, clear_context, configure_logging

# Initialized at module level so uvicorn workers share it
ordering.init()

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Error-to-status mapping
# ---------------------------------------------------------------------------
_STATUS_CODES = {
    ValidationError: 422,
    ObjectNotFoundError: 404,
    OutOfStock: 409,
    AmountMismatch: 409,
    InvalidTransition: 409,
    ConcurrentUpdate: 409,
    InvalidOperationError: 409,
    Forbidden: 403,
    GatewayUnavailable: 503,
}


# Roots of every error storefront_error_handler answers for
HANDLED_ERRORS = (ValidationError, ObjectNotFoundError, InvalidOperationError, GatewayUnavailable)


def _status_for(exc: Exception) -> int:
    for error_type in type(exc).__mro__:
        if error_type in _STATUS_CODES:
            return _STATUS_CODES[error_type]
    return 400


def _messages_for(exc: Exception) -> dict:
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict) and messages:
        return messages
    return {"_entity": [str(exc)]}


async def storefront_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code = _status_for(exc)
    content = {"error": type(exc).__name__, "messages": _messages_for(exc)}
    if isinstance(exc, GatewayUnavailable) and exc.order_id:
        content["order_id"] = exc.order_id

    log = logger.warning if status_code >= 500 else logger.info
    log("request.rejected", error=type(exc).__name__, status_code=status_code, path=request.url.path)
    return JSONResponse(status_code=status_code, content=content)


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    from shared.db import setup_db

    configure_logging()
    setup_db(ordering)
    logger.info("storefront.started", domain=ordering.name)
    yield


app = FastAPI(
    title="Storefront API",
    description="E-commerce storefront: carts, checkout, payment capture and order administration",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for _error_type in HANDLED_ERRORS:
    app.add_exception_handler(_error_type, storefront_error_handler)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Push the ordering domain context and bind a request id to every log line of the request."""
    clear_context()
    request_id = request.headers.get("x-request-id") or uuid4().hex
    add_context(request_id=request_id, user_id=request.headers.get("x-user-id"))
    with ordering.domain_context():
        response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ordering.api.routes import admin_router, cart_router, order_router  # noqa: E402
from payments.api.routes import payment_router  # noqa: E402

app.include_router(cart_router)
app.include_router(order_router)
app.include_router(admin_router)
app.include_router(payment_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": ordering.name})
