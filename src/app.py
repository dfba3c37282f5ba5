"""AquaFlow Storefront FastAPI application.

Serves the cart, delivery-fee waiver and order endpoints. Each request runs
inside the storefront domain context; customer sessions live in a process-wide
registry and are closed when the application shuts down.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.api import cart_router, order_router, session_router
from storefront.api.dependencies import get_registry, reset_registry
from storefront.api.errors import register_exception_handlers
from storefront.domain import storefront
from storefront.utils.logging import clear_context

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
storefront.init()


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_registry()
    yield
    reset_registry()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="AquaFlow Storefront API",
    description="Water delivery storefront: cart, delivery fee waiver and orders",
    lifespan=lifespan,
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
    """Push the storefront domain context for each request."""
    clear_context()
    with storefront.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
register_exception_handlers(app)
app.include_router(cart_router)
app.include_router(order_router)
app.include_router(session_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": storefront.name,
            "sessions": len(get_registry()),
        }
    )
