"""
main.py - Storefront Cart & Order Service

PURPOSE:
    Hosts the cart → checkout → order pipeline of the storefront. Carts live in
    Redis; users, products, orders and flash sales live in PostgreSQL.

RESPONSIBILITIES:
    - Add/update/remove cart lines with price snapshots
    - Convert a cart into an order attributed to vendors (checkout)
    - Place single-product orders that bypass the cart and decrement stock
    - Compute flash-sale prices

API ENDPOINTS:
    GET    /cart                          - View cart contents and subtotal
    POST   /cart/items                    - Add product (merges on product id)
    POST   /cart/items/options            - Add size/color variant (enforces min/max quantity)
    PUT    /cart/items/{product_id}       - Update quantity (clamped to 1..10) and re-price
    DELETE /cart/items/{product_id}       - Remove product from cart
    POST   /checkout                      - Create order from cart, 303 to outcome page
    POST   /orders/direct                 - Order a single product directly
    GET    /orders/{order_id}             - Order confirmation lookup
    PATCH  /orders/{order_id}/status      - Move order to a new status
    POST   /flash-sales                   - Create a flash sale
    PATCH  /flash-sales/{sale_id}         - Activate/deactivate a flash sale
    GET    /health                        - Health check endpoint

IDENTITY:
    The authenticating proxy in front of this service forwards the caller as
    X-User-Id / X-User-Email / X-User-Given-Name / X-User-Family-Name headers.

TESTING COMMANDS:
    1. Add item to cart:
        curl -X POST http://localhost:8000/cart/items \
          -H "X-User-Id: user123" -H "Content-Type: application/json" \
          -d '{"product_id": "prod-1", "quantity": 2}'

    2. View cart:
        curl http://localhost:8000/cart -H "X-User-Id: user123"

    3. Checkout:
        curl -i -X POST http://localhost:8000/checkout -H "X-User-Id: user123"
"""

import logging
from contextlib import asynccontextmanager

import redis  # In-memory cache for cart data
from fastapi import FastAPI  # Web framework
from pydantic import BaseModel

from storefront import dependencies
from storefront.cart.routes import router as cart_router
from storefront.config import settings
from storefront.orders.routes import router as order_router
from storefront.promotions.routes import router as promotion_router
from storefront.shared.database import init_db, init_engine
from storefront.shared.logging_config import setup_logging

# Setup logging
setup_logging(settings.service_name, level=settings.log_level, timezone=settings.log_timezone)
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str
    service: str
    version: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage app lifecycle."""
    logger.info("Starting Storefront Service...")

    try:
        init_engine(settings.database_url)
        init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    # Carts degrade to "empty" when Redis is down, so a missing cache does not block startup
    client = redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        decode_responses=True,
    )
    try:
        client.ping()
        logger.info("Redis connected")
    except redis.RedisError as e:
        logger.error(f"Failed to connect to Redis, carts will be unavailable: {e}")
    dependencies.redis_client = client

    yield

    logger.info("Shutting down Storefront Service...")
    client.close()
    dependencies.redis_client = None


app = FastAPI(title="Storefront Service", version="1.0.0", lifespan=lifespan)
app.include_router(cart_router)
app.include_router(order_router)
app.include_router(promotion_router)


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", service=settings.service_name, version="1.0.0")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.service_port)
