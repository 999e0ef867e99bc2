"""
Art Gallery Storefront Backend Application.

FastAPI application for an online art gallery: catalog, cart, checkout
with Stripe or Razorpay, and FedEx shipping.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from loguru import logger

from artgallery.api.v1 import router as api_v1_router
from artgallery.core.config import settings
from artgallery.core.database import close_db, init_db
from artgallery.core.errors import register_exception_handlers
from artgallery.modules.fedex import get_fedex_config
from artgallery.modules.payments import get_stripe_config
from artgallery.modules.shop.cart import get_cart_service


def _report_integrations() -> None:
    fedex = get_fedex_config().validate()
    if fedex["is_valid"]:
        logger.info(f"FedEx configured ({fedex['environment']})")
    else:
        logger.warning(f"FedEx configuration incomplete: {', '.join(fedex['errors'])}")

    stripe = get_stripe_config().validate()
    if not stripe["is_valid"]:
        logger.warning(f"Stripe configuration incomplete: {', '.join(stripe['errors'])}")
    for warning in stripe["warnings"]:
        logger.warning(f"Stripe: {warning}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info(f"Starting {settings.app_name}...")

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    # Connect the cart store
    cart = await get_cart_service()
    logger.info("Cart store connected")

    _report_integrations()

    logger.info(f"{settings.app_name} started successfully")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")

    await cart.disconnect()
    await close_db()

    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Art Gallery Storefront API

    ## Features

    - **Catalog**: Artworks, categories, authors and price inquiries
    - **Cart & Checkout**: Server-held cart, coupons, order totals
    - **Payments**: Stripe and Razorpay with signed webhooks
    - **Shipping**: FedEx rates, address validation and tracking

    ## Documentation

    - [API Docs](/docs) - Interactive Swagger UI
    - [ReDoc](/redoc) - Alternative documentation
    """,
    openapi_url=f"{settings.api_v1_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

register_exception_handlers(app)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_v1_router, prefix=settings.api_v1_prefix)


@app.get("/health", tags=["System"])
async def health_check() -> dict:
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/", tags=["System"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "api": settings.api_v1_prefix,
    }
