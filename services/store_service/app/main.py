"""FastAPI application for the storefront API."""

from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter
from services.store_service.routers import (
    auth_router,
    cart_router,
    categories_router,
    checkout_router,
    customers_router,
    orders_router,
    payments_router,
    products_router,
    reviews_router,
    statistics_router,
)

API_PREFIX = "/api"


def create_app() -> FastAPI:
    """Create and configure the storefront FastAPI app."""
    settings = get_settings()
    app = FastAPI(
        title="Storefront API",
        version="0.1.0",
        description="E-commerce backend - catalog, cart, checkout, orders, reviews, payments.",
    )

    # Add rate limiter state to app
    app.state.limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Structured logging + request tracing
    add_observability_middleware(app)

    # Every error is rendered as {success: false, data: null, message}
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "store"}

    for router in (
        auth_router,
        categories_router,
        products_router,
        cart_router,
        checkout_router,
        orders_router,
        reviews_router,
        customers_router,
        payments_router,
        statistics_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    # Uploaded avatars, category and product images
    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=upload_dir), name="uploads")

    return app


app = create_app()
