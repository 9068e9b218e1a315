"""Storefront FastAPI application.

Serves the cart and checkout endpoints of the Ordering domain. Every request
runs inside the ordering domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from ordering.domain import ordering
from ordering.utils.logging import configure_logging
from shared.cache import get_cache
from shared.http import register_storefront_exception_handlers

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Initialized at module level so uvicorn workers share it.
configure_logging()
ordering.init()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront API",
    description="Cart and checkout: carts, payment initiation and verification",
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
    """Push the Ordering domain context for each request."""
    with ordering.domain_context():
        response = await call_next(request)
    return response


register_exception_handlers(app)
register_storefront_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ordering.api.routes import cart_router, checkout_router  # noqa: E402

app.include_router(cart_router)
app.include_router(checkout_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": ordering.name,
            "cache": get_cache().stats(),
        }
    )
