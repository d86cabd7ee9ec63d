"""Crate marketplace FastAPI application.

Every request runs inside the marketplace domain context and its commands
are processed synchronously.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# PROTEAN_ENV selects the config overlay from domain.toml:
#   - "test"       → in-memory database and event store
#   - "production" → PostgreSQL through DATABASE_URL
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from marketplace.domain import marketplace
from marketplace.utils.logging import add_context, clear_context

marketplace.init()

_DOMAIN_PREFIXES = ("/orders", "/suppliers", "/transfers", "/settlements")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Crate Marketplace API",
    description="Delivery orders, supplier offers, crate deposits and supplier payouts",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the marketplace domain context for API requests and tag their logs."""
    if not request.url.path.startswith(_DOMAIN_PREFIXES):
        # Health check, docs
        return await call_next(request)

    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    add_context(request_id=request_id, method=request.method, path=request.url.path)
    try:
        with marketplace.domain_context():
            response = await call_next(request)
    finally:
        clear_context()
    response.headers["X-Request-ID"] = request_id
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from marketplace.api import (  # noqa: E402
    order_router,
    register_exception_handlers,
    settlement_router,
    supplier_router,
    transfer_router,
)

app.include_router(order_router)
app.include_router(supplier_router)
app.include_router(transfer_router)
app.include_router(settlement_router)
register_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": marketplace.name})
